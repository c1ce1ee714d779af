"""The ``guest_cart`` cookie: where an anonymous shopper's cart lives.

The cookie holds URL-encoded JSON ``{"items": [{productId, quantity,
variantId?, addedAt}]}``. Domain commands work with snake_case line dicts,
so this module translates in both directions. A cookie that cannot be read
is treated as an empty cart.
"""

import json
import os
from urllib.parse import quote, unquote

import structlog
from fastapi import Request, Response

from marketplace.cart.store import decode_lines

logger = structlog.get_logger(__name__)

COOKIE_NAME = "guest_cart"
MAX_AGE = 60 * 60 * 24 * 30

_WIRE_TO_LINE = {"productId": "product_id", "variantId": "variant_id", "quantity": "quantity", "addedAt": "added_at"}
_LINE_TO_WIRE = {snake: camel for camel, snake in _WIRE_TO_LINE.items()}


def _secure() -> bool:
    return os.getenv("GUEST_CART_COOKIE_SECURE", "false").lower() in ("1", "true", "yes")


def decode_cookie(raw: str | None) -> list[dict]:
    if not raw:
        return []
    try:
        payload = json.loads(unquote(raw))
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.info("guest_cart_cookie_unreadable")
        return []

    lines = []
    for entry in decode_lines(payload):
        lines.append({snake: entry[camel] for camel, snake in _WIRE_TO_LINE.items() if camel in entry})
    return lines


def encode_cookie(lines) -> str:
    items = []
    for line in lines or []:
        entry = {_LINE_TO_WIRE[key]: value for key, value in line.items() if key in _LINE_TO_WIRE}
        if entry.get("variantId") is None:
            entry.pop("variantId", None)
        items.append(entry)
    return quote(json.dumps({"items": items}, separators=(",", ":")), safe="")


def read_guest_lines(request: Request) -> list[dict]:
    return decode_cookie(request.cookies.get(COOKIE_NAME))


def write_guest_lines(response: Response, lines) -> None:
    response.set_cookie(
        COOKIE_NAME,
        encode_cookie(lines),
        max_age=MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=_secure(),
    )


def clear_guest_cart(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, path="/", httponly=True, samesite="lax", secure=_secure())
