"""Marketplace bounded context — inventory, carts and orders.

Keeps product and variant stock, shopper carts and placed orders consistent
with each other. Catalogue editing, identity and store configuration are
modelled only as far as carts and checkout need them.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
