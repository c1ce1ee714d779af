"""Customer aggregate root with SavedAddress entity.

Only what carts and checkout need from a shopper account: a unique e-mail
(used to attach guest orders to an existing account), the address book that
checkout can append to, and the last location captured at checkout.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, String, ValueObject

from marketplace.customer.events import AddressSaved, CustomerRegistered, LocationCaptured
from marketplace.domain import marketplace
from marketplace.shared.email import EmailAddress
from marketplace.shared.geo import GeoCoordinates

MAX_SAVED_ADDRESSES = 10


@marketplace.entity(part_of="Customer")
class SavedAddress:
    label: String(required=True, max_length=50)
    first_name: String(required=True, max_length=100)
    last_name: String(required=True, max_length=100)
    address1: String(required=True, max_length=255)
    address2: String(max_length=255)
    city: String(required=True, max_length=100)
    state: String(max_length=100)
    postal_code: String(required=True, max_length=20)
    country: String(required=True, max_length=100)
    phone: String(max_length=30)
    is_default: Boolean(default=False)
    coordinates: ValueObject(GeoCoordinates)


@marketplace.aggregate
class Customer:
    email: String(required=True, max_length=254, unique=True)
    first_name: String(max_length=100)
    last_name: String(max_length=100)
    addresses: HasMany(SavedAddress)
    last_known_location: ValueObject(GeoCoordinates)
    location_captured_at: DateTime()
    registered_at: DateTime()

    @invariant.post
    def addresses_cannot_exceed_maximum(self):
        if len(self.addresses) > MAX_SAVED_ADDRESSES:
            raise ValidationError({"addresses": [f"Cannot have more than {MAX_SAVED_ADDRESSES} addresses"]})

    @invariant.post
    def exactly_one_default_address_when_addresses_exist(self):
        if not self.addresses:
            return
        defaults = [a for a in self.addresses if a.is_default]
        if len(defaults) != 1:
            raise ValidationError({"addresses": ["Exactly one address must be marked as default"]})

    @classmethod
    def register(cls, email, first_name=None, last_name=None):
        email_vo = EmailAddress(address=email)
        now = datetime.now(UTC)

        customer = cls(
            email=email_vo.normalized,
            first_name=first_name,
            last_name=last_name,
            registered_at=now,
        )
        customer.raise_(CustomerRegistered(customer_id=customer.id, email=customer.email, registered_at=now))
        return customer

    def save_address(self, label, first_name, last_name, address1, city, postal_code, country, **optional):
        is_default = bool(optional.pop("is_default", False))

        # First address is always default
        if not self.addresses:
            is_default = True

        with atomic_change(self):
            if is_default:
                for addr in self.addresses:
                    if addr.is_default:
                        addr.is_default = False

            address = SavedAddress(
                label=label,
                first_name=first_name,
                last_name=last_name,
                address1=address1,
                city=city,
                postal_code=postal_code,
                country=country,
                is_default=is_default,
                **optional,
            )
            self.add_addresses(address)

        self.raise_(
            AddressSaved(
                customer_id=self.id,
                address_id=address.id,
                label=label,
                is_default=str(is_default),
            )
        )
        return address

    def record_location(self, latitude, longitude):
        now = datetime.now(UTC)
        self.last_known_location = GeoCoordinates(latitude=latitude, longitude=longitude)
        self.location_captured_at = now
        self.raise_(LocationCaptured(customer_id=self.id, latitude=latitude, longitude=longitude, captured_at=now))
