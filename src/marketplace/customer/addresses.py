"""Address book and location capture — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.customer.customer import Customer
from marketplace.domain import marketplace
from marketplace.shared.errors import not_found
from marketplace.shared.geo import GeoCoordinates


@marketplace.command(part_of="Customer")
class SaveAddress:
    customer_id: Identifier(required=True)
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
    latitude: Float()
    longitude: Float()


@marketplace.command(part_of="Customer")
class RecordLocation:
    customer_id: Identifier(required=True)
    latitude: Float(required=True)
    longitude: Float(required=True)


def _load_customer(customer_id):
    customer = current_domain.repository_for(Customer).find(customer_id)
    if customer is None:
        raise not_found("customer_id", "Customer not found")
    return customer


@marketplace.command_handler(part_of=Customer)
class CustomerAddressHandler:
    @handle(SaveAddress)
    def save_address(self, command):
        customer = _load_customer(command.customer_id)

        coordinates = None
        if command.latitude is not None or command.longitude is not None:
            coordinates = GeoCoordinates(latitude=command.latitude, longitude=command.longitude)

        address = customer.save_address(
            label=command.label,
            first_name=command.first_name,
            last_name=command.last_name,
            address1=command.address1,
            city=command.city,
            postal_code=command.postal_code,
            country=command.country,
            address2=command.address2,
            state=command.state,
            phone=command.phone,
            is_default=command.is_default,
            coordinates=coordinates,
        )
        current_domain.repository_for(Customer).add(customer)
        return str(address.id)

    @handle(RecordLocation)
    def record_location(self, command):
        customer = _load_customer(command.customer_id)
        customer.record_location(command.latitude, command.longitude)
        current_domain.repository_for(Customer).add(customer)
