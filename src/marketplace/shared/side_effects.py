"""Isolation for side channels that must never fail the main operation.

Analytics counters, confirmation e-mails and location capture run inside
``isolated``: any exception is logged with its context and dropped.
"""

from contextlib import contextmanager

import structlog

logger = structlog.get_logger(__name__)


@contextmanager
def isolated(action: str, **context):
    try:
        yield
    except Exception:
        logger.warning("side_effect_failed", action=action, exc_info=True, **context)
