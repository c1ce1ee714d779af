"""Per-product serialization of stock read-modify-write sequences.

Checkout and order reversal load products, check stock, mutate and persist.
Two of them touching the same product would otherwise both pass the check
on the same snapshot. ``inventory_guard.hold`` takes a re-entrant lock for
every product involved, always in sorted id order so that two orders
sharing products cannot deadlock.

The guard lives in process memory: it serializes requests served by one
process only.
"""

from contextlib import ExitStack, contextmanager
from threading import Lock, RLock

import structlog

logger = structlog.get_logger(__name__)


class InventoryGuard:
    def __init__(self):
        self._registry_lock = Lock()
        self._locks: dict[str, RLock] = {}

    def _lock_for(self, product_id: str) -> RLock:
        with self._registry_lock:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = self._locks[product_id] = RLock()
            return lock

    @contextmanager
    def hold(self, product_ids):
        ordered = sorted({str(pid) for pid in product_ids if pid})
        with ExitStack() as stack:
            for product_id in ordered:
                stack.enter_context(self._lock_for(product_id))
            logger.debug("inventory_locked", product_ids=ordered)
            yield ordered


inventory_guard = InventoryGuard()
