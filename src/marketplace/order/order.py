"""Order aggregate — a placed order with frozen line snapshots.

Everything about an order is fixed when it is placed: lines carry copies of
the product name, the variant SKU, title, options and price, and the totals
are computed once. Afterwards only the fulfilment status, the payment
status and the tracking number change.

Status:  pending → processing → shipped → delivered
         pending → cancelled
Payment: pending → paid | failed, paid → refunded
"""

import json
import time
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from marketplace.domain import marketplace
from marketplace.order.events import OrderPlaced, OrderStatusChanged, PaymentStatusChanged, TrackingNumberSet

GUEST_CONFIRMATION_WINDOW = timedelta(hours=24)


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"


class Currency(Enum):
    USD = "USD"
    AF = "AF"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{uuid4().hex[:6].upper()}"


def _parse_choice(enum_cls, value, field_name):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError({field_name: [f"Unknown {field_name.replace('_', ' ')} {value!r}"]}) from None


@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, as entered at checkout.

    Coordinates are mandatory: delivery is routed by location.
    """

    label = String(max_length=50)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)


@marketplace.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    variant_sku = String(max_length=100)
    variant_title = String(max_length=255)
    variant_options = Text()  # JSON list of {"name", "value"}
    variant_price = Float()


@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=50, unique=True)
    customer_id = Identifier()
    guest_email = String(max_length=254)
    lines = HasMany(OrderLine)
    subtotal = Float(required=True, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    currency = String(choices=Currency, default=Currency.USD.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, required=True)
    shipping_address = ValueObject(ShippingAddress, required=True)
    customer_note = Text()
    tracking_number = String(max_length=100)
    idempotency_key = String(max_length=64)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_belong_to_someone(self):
        if not self.customer_id and not self.guest_email:
            raise ValidationError({"customer": ["An order needs a customer or a guest email"]})

    @invariant.post
    def total_must_match_subtotal_and_shipping(self):
        if self.subtotal is None or self.total is None:
            return
        if abs((self.subtotal + (self.shipping or 0.0)) - self.total) > 0.005:
            raise ValidationError({"total": ["Total must equal subtotal plus shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        lines,
        shipping_address,
        payment_method,
        currency,
        subtotal,
        shipping,
        customer_id=None,
        guest_email=None,
        customer_note=None,
        idempotency_key=None,
    ):
        """Create a pending order from already validated and priced lines."""
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(),
            customer_id=customer_id,
            guest_email=guest_email,
            subtotal=subtotal,
            shipping=shipping,
            total=round(subtotal + shipping, 2),
            currency=currency,
            payment_method=payment_method,
            shipping_address=shipping_address,
            customer_note=customer_note,
            idempotency_key=idempotency_key,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_lines(OrderLine(**line))

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order.order_number,
                customer_id=customer_id,
                guest_email=guest_email,
                lines=json.dumps(
                    [
                        {
                            "product_id": str(line["product_id"]),
                            "variant_id": str(line["variant_id"]) if line.get("variant_id") else None,
                            "quantity": line["quantity"],
                            "price": line["price"],
                        }
                        for line in lines
                    ]
                ),
                subtotal=order.subtotal,
                shipping=order.shipping,
                total=order.total,
                currency=order.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_guest_order(self) -> bool:
        return bool(self.guest_email)

    def is_visible_to(self, customer_id=None, now=None) -> bool:
        """Owners always see their order; guest orders are open for 24 hours."""
        if customer_id and self.customer_id and str(self.customer_id) == str(customer_id):
            return True
        if self.is_guest_order and self.created_at:
            now = now or datetime.now(UTC)
            created_at = self.created_at
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=UTC)
            return now - created_at < GUEST_CONFIRMATION_WINDOW
        return False

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def transition_to(self, status):
        target = _parse_choice(OrderStatus, status, "status")
        self._assert_can_transition(target)

        previous = self.status
        self.status = target.value
        self.updated_at = datetime.now(UTC)
        self.raise_(OrderStatusChanged(order_id=self.id, previous_status=previous, new_status=target.value))

    def record_payment_status(self, payment_status):
        target = _parse_choice(PaymentStatus, payment_status, "payment_status")
        current = PaymentStatus(self.payment_status)
        if target not in _VALID_PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"payment_status": [f"Cannot change payment status from {current.value} to {target.value}"]}
            )

        self.payment_status = target.value
        self.updated_at = datetime.now(UTC)
        self.raise_(PaymentStatusChanged(order_id=self.id, previous_status=current.value, new_status=target.value))

    def set_tracking_number(self, tracking_number):
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise ValidationError({"tracking_number": ["Cancelled orders cannot be tracked"]})

        self.tracking_number = tracking_number
        self.updated_at = datetime.now(UTC)
        self.raise_(TrackingNumberSet(order_id=self.id, tracking_number=tracking_number))
