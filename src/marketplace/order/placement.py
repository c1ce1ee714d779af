"""Order placement — command, handler and the guarded checkout entry point.

Placing an order is all-or-nothing. Every line is validated against freshly
loaded products before anything changes: publication, product and variant
availability, stock (summed over lines that share a stock holder) and
price. Only then are the sales committed on the in-memory aggregates, which
are persisted together with the order in the handler's unit of work. Any
failure leaves inventory untouched.

``checkout`` wraps the command in the inventory guard so that two checkouts
for the same product cannot validate against the same stock snapshot, and
runs the side channels (address book, location, confirmation mail) after
the order is committed.
"""

import hashlib
import json
from collections import defaultdict

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart, ensure_line_quantity
from marketplace.cart.store import decode_lines
from marketplace.customer.addresses import RecordLocation, SaveAddress
from marketplace.customer.customer import Customer
from marketplace.domain import marketplace
from marketplace.order import notifications
from marketplace.order.order import Currency, Order, PaymentMethod, ShippingAddress
from marketplace.order.pricing import line_total, shipping_fee, unit_price
from marketplace.product.availability import (
    ensure_any_variant_available,
    ensure_purchasable,
    resolve_variant,
    stock_limit,
)
from marketplace.product.guard import inventory_guard
from marketplace.product.product import Product
from marketplace.shared.email import EmailAddress
from marketplace.shared.errors import EmptyCartError, InsufficientStockError
from marketplace.shared.side_effects import isolated

logger = structlog.get_logger(__name__)

_ADDRESS_FIELDS = (
    "label",
    "first_name",
    "last_name",
    "address1",
    "address2",
    "city",
    "state",
    "postal_code",
    "country",
    "phone",
)


@marketplace.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier()
    guest_email = String(max_length=254)
    items = Text()  # JSON list of {product_id, variant_id, quantity}; empty means "use the saved cart"
    shipping_address = Text()  # JSON address with latitude/longitude
    payment_method = String(max_length=20)
    currency = String(max_length=3)
    customer_note = Text()
    save_address = Boolean(default=False)
    idempotency_key = String(max_length=255)


def _coordinates(address: dict):
    nested = address.get("coordinates") or {}
    return (
        address.get("latitude", nested.get("latitude")),
        address.get("longitude", nested.get("longitude")),
    )


def _parse_address(raw) -> ShippingAddress:
    data = json.loads(raw) if isinstance(raw, str) else dict(raw)
    if not isinstance(data, dict):
        raise ValidationError({"shipping_address": ["Shipping address must be an object"]})

    latitude, longitude = _coordinates(data)
    if latitude is None or longitude is None:
        raise ValidationError({"shipping_address": ["Shipping address coordinates are required"]})

    return ShippingAddress(
        latitude=latitude,
        longitude=longitude,
        **{name: data.get(name) for name in _ADDRESS_FIELDS},
    )


def _validate_choices(command):
    if command.payment_method not in {m.value for m in PaymentMethod}:
        raise ValidationError({"payment_method": [f"Unsupported payment method: {command.payment_method}"]})
    if command.currency not in {c.value for c in Currency}:
        raise ValidationError({"currency": [f"Unsupported currency: {command.currency}"]})


def idempotency_fingerprint(client_key, identity, request_lines) -> str | None:
    """Hash the client's key with who is ordering and what they sent."""
    if not client_key:
        return None
    payload = json.dumps(
        {"key": client_key, "identity": identity, "lines": request_lines or []},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _receipt(order, replayed=False) -> dict:
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "total": order.total,
        "status": order.status,
        "customer_id": str(order.customer_id) if order.customer_id else None,
        "guest_email": order.guest_email,
        "replayed": replayed,
    }


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        if not command.shipping_address or not command.payment_method or not command.currency:
            raise ValidationError({"order": ["Missing required fields: shippingAddress, paymentMethod, currency"]})
        if not command.customer_id and not command.guest_email:
            raise ValidationError({"guest_email": ["Email is required for guest checkout"]})

        _validate_choices(command)
        shipping_address = _parse_address(command.shipping_address)

        customer_id, guest_email = self._resolve_identity(command)

        request_lines = decode_lines(command.items)
        orders = current_domain.repository_for(Order)
        fingerprint = idempotency_fingerprint(command.idempotency_key, customer_id or guest_email, request_lines)
        existing = orders.find_by_idempotency_key(fingerprint)
        if existing is not None:
            logger.info("order_replayed", order_id=str(existing.id), order_number=existing.order_number)
            return _receipt(existing, replayed=True)

        cart = None
        lines = request_lines
        if not lines and command.customer_id:
            cart = current_domain.repository_for(ShoppingCart).find_for_customer(command.customer_id)
            lines = cart.lines() if cart is not None else []
        if not lines:
            raise EmptyCartError()

        products = {}
        planned = self._validate_lines(lines, products)

        subtotal = round(sum(line["total"] for line in planned), 2)
        order = Order.place(
            lines=planned,
            shipping_address=shipping_address,
            payment_method=command.payment_method,
            currency=command.currency,
            subtotal=subtotal,
            shipping=shipping_fee(subtotal),
            customer_id=customer_id,
            guest_email=guest_email,
            customer_note=command.customer_note,
            idempotency_key=fingerprint,
        )

        for line in planned:
            products[str(line["product_id"])].commit_sale(line["quantity"], line["variant_id"])

        product_repo = current_domain.repository_for(Product)
        for product in products.values():
            product_repo.add(product)
        orders.add(order)

        if cart is not None:
            cart.clear()
            current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "order_placed",
            order_id=str(order.id),
            order_number=order.order_number,
            line_count=len(planned),
            total=order.total,
        )
        return _receipt(order)

    def _resolve_identity(self, command):
        """Return ``(customer_id, guest_email)`` for the order."""
        if command.customer_id:
            return str(command.customer_id), None

        guest_email = EmailAddress(address=command.guest_email).normalized
        account = current_domain.repository_for(Customer).find_by_email(guest_email)
        if account is not None:
            logger.info("guest_order_attached_to_account", customer_id=str(account.id))
            return str(account.id), guest_email
        return None, guest_email

    def _validate_lines(self, lines, products):
        """Validate and price every line without touching stock."""
        product_repo = current_domain.repository_for(Product)
        demand = defaultdict(int)
        planned = []

        for line in lines:
            product_id = str(line.get("product_id") or "")
            if not product_id:
                raise ValidationError({"product_id": ["Valid product ID is required"]})
            ensure_line_quantity(line.get("quantity"))

            if product_id not in products:
                products[product_id] = product_repo.load(product_id)
            product = products[product_id]

            ensure_purchasable(product)
            variant = None
            if line.get("variant_id") or product.has_variants:
                ensure_any_variant_available(product)
                variant = resolve_variant(product, line.get("variant_id"))
                ensure_purchasable(product, variant)

            variant_id = str(variant.id) if variant is not None else None
            demand[(product_id, variant_id)] += line["quantity"]
            available = stock_limit(product, variant)
            if available is not None and demand[(product_id, variant_id)] > available:
                raise InsufficientStockError(f"Insufficient stock for {product.name}", available_quantity=available)

            price = unit_price(product, variant)
            planned.append(
                {
                    "product_id": product_id,
                    "variant_id": variant_id,
                    "product_name": product.name,
                    "quantity": line["quantity"],
                    "price": price,
                    "total": line_total(price, line["quantity"]),
                    "variant_sku": variant.sku if variant is not None else None,
                    "variant_title": variant.title if variant is not None else None,
                    "variant_options": variant.options if variant is not None else None,
                    "variant_price": variant.price if variant is not None else None,
                }
            )

        return planned


# ---------------------------------------------------------------------------
# Guarded entry point
# ---------------------------------------------------------------------------
_MAX_LOCK_ATTEMPTS = 3


def _line_product_ids(command) -> set[str]:
    lines = decode_lines(command.items)
    if not lines and command.customer_id:
        cart = current_domain.repository_for(ShoppingCart).find_for_customer(command.customer_id)
        lines = cart.lines() if cart is not None else []
    return {str(line["product_id"]) for line in lines if line.get("product_id")}


def checkout(command: PlaceOrder) -> dict:
    """Place an order while holding the inventory guard for its products.

    The set of products is read before locking; if the saved cart changed in
    between, the guard is taken again over the larger set.
    """
    held = _line_product_ids(command)
    for _ in range(_MAX_LOCK_ATTEMPTS):
        with inventory_guard.hold(held):
            current = _line_product_ids(command)
            if current <= held:
                receipt = current_domain.process(command, asynchronous=False)
                break
        held |= current
    else:
        with inventory_guard.hold(held | _line_product_ids(command)):
            receipt = current_domain.process(command, asynchronous=False)

    if not receipt["replayed"]:
        _after_placement(command, receipt)
    return receipt


def _after_placement(command, receipt):
    """Side channels of a committed order; none of them can fail the checkout."""
    address = json.loads(command.shipping_address) if isinstance(command.shipping_address, str) else {}
    latitude, longitude = _coordinates(address)
    customer_id = receipt["customer_id"]

    if command.customer_id and command.save_address and address.get("label"):
        with isolated("save_address", customer_id=customer_id):
            current_domain.process(
                SaveAddress(
                    customer_id=customer_id,
                    is_default=bool(address.get("is_default")),
                    latitude=latitude,
                    longitude=longitude,
                    **{name: address.get(name) for name in _ADDRESS_FIELDS},
                ),
                asynchronous=False,
            )

    if command.customer_id:
        with isolated("capture_location", customer_id=customer_id):
            current_domain.process(
                RecordLocation(
                    customer_id=customer_id,
                    latitude=latitude,
                    longitude=longitude,
                ),
                asynchronous=False,
            )

    recipient = receipt["guest_email"]
    if recipient is None and customer_id:
        account = current_domain.repository_for(Customer).find(customer_id)
        recipient = account.email if account is not None else None
    if recipient:
        with isolated("send_order_confirmation", order_id=receipt["order_id"]):
            notifications.confirmation_mailer.send(recipient, receipt)
