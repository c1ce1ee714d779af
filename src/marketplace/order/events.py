"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """An order was placed and its stock committed."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier()
    guest_email = String()
    lines = Text(required=True)  # JSON: list of {product_id, variant_id, quantity, price}
    subtotal = Float(required=True)
    shipping = Float(required=True)
    total = Float(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)


@marketplace.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)


@marketplace.event(part_of="Order")
class TrackingNumberSet:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
