"""Loading and saving carts for cart commands.

Commands name their cart either by ``customer_id`` (persisted cart) or by
passing the guest's lines as JSON in ``guest_items`` (transient cart). The
handlers call these helpers so they never need to know which one they got.
"""

import json

import structlog
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart

logger = structlog.get_logger(__name__)


def decode_lines(raw) -> list[dict]:
    """Parse guest cart lines; anything malformed yields an empty cart."""
    if not raw:
        return []
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except (json.JSONDecodeError, TypeError):
        logger.info("guest_cart_unreadable")
        return []

    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        return []
    return [line for line in data if isinstance(line, dict)]


def encode_lines(lines) -> str:
    return json.dumps(lines or [])


def load_cart(customer_id=None, guest_items=None) -> ShoppingCart:
    if customer_id:
        return current_domain.repository_for(ShoppingCart).for_customer(customer_id)
    return ShoppingCart.from_lines(decode_lines(guest_items))


def save_cart(cart: ShoppingCart) -> None:
    if not cart.is_guest:
        current_domain.repository_for(ShoppingCart).add(cart)


def cart_summary(cart: ShoppingCart, warnings=None) -> dict:
    summary = {"item_count": cart.item_count, "items": cart.lines()}
    if warnings:
        summary["warnings"] = list(warnings)
    return summary
