"""Domain events for the Customer aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Customer")
class CustomerRegistered:
    __version__ = 1

    customer_id: Identifier(required=True)
    email: String(required=True)
    registered_at: DateTime(required=True)


@marketplace.event(part_of="Customer")
class AddressSaved:
    __version__ = 1

    customer_id: Identifier(required=True)
    address_id: Identifier(required=True)
    label: String()
    is_default: String()


@marketplace.event(part_of="Customer")
class LocationCaptured:
    __version__ = 1

    customer_id: Identifier(required=True)
    latitude: Float(required=True)
    longitude: Float(required=True)
    captured_at: DateTime(required=True)
