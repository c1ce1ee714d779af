"""Application tests for customer registration and the address book."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.customer.addresses import RecordLocation, SaveAddress
from marketplace.customer.customer import Customer
from marketplace.customer.registration import RegisterCustomer


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _save(customer_id, label, **overrides):
    defaults = {
        "customer_id": customer_id,
        "label": label,
        "first_name": "Mary",
        "last_name": "Jackson",
        "address1": "5 Wind Tunnel Way",
        "city": "Kandahar",
        "postal_code": "3801",
        "country": "AF",
    }
    defaults.update(overrides)
    return _process(SaveAddress(**defaults))


@pytest.fixture
def customer_id():
    return _process(RegisterCustomer(email="Mary@Example.com", first_name="Mary"))


class TestRegisterCustomer:
    def test_email_is_normalized(self, customer_id):
        customer = current_domain.repository_for(Customer).get(customer_id)
        assert customer.email == "mary@example.com"

    def test_lookup_ignores_case(self, customer_id):
        customer = current_domain.repository_for(Customer).find_by_email("MARY@example.COM")
        assert str(customer.id) == customer_id

    def test_duplicate_email_rejected(self, customer_id):
        with pytest.raises(ValidationError) as exc:
            _process(RegisterCustomer(email="mary@example.com"))
        assert exc.value.messages["email"] == ["An account with this email already exists"]

    def test_invalid_email_rejected(self):
        with pytest.raises(ValidationError):
            _process(RegisterCustomer(email="not-an-email"))


class TestAddressBook:
    def test_first_address_is_default(self, customer_id):
        _save(customer_id, "Home")

        customer = current_domain.repository_for(Customer).get(customer_id)
        assert customer.addresses[0].is_default

    def test_new_default_replaces_old(self, customer_id):
        _save(customer_id, "Home")
        _save(customer_id, "Work", is_default=True)

        customer = current_domain.repository_for(Customer).get(customer_id)
        defaults = [a.label for a in customer.addresses if a.is_default]
        assert defaults == ["Work"]

    def test_address_keeps_coordinates(self, customer_id):
        _save(customer_id, "Home", latitude=31.6, longitude=65.7)

        address = current_domain.repository_for(Customer).get(customer_id).addresses[0]
        assert address.coordinates.latitude == 31.6
        assert address.coordinates.longitude == 65.7

    def test_partial_coordinates_rejected(self, customer_id):
        with pytest.raises(ValidationError):
            _save(customer_id, "Home", latitude=31.6)

    def test_address_book_limit(self, customer_id):
        for index in range(10):
            _save(customer_id, f"Address {index}")
        with pytest.raises(ValidationError):
            _save(customer_id, "One too many")

    def test_unknown_customer(self):
        with pytest.raises(ObjectNotFoundError):
            _save("missing", "Home")


class TestRecordLocation:
    def test_location_is_recorded(self, customer_id):
        _process(RecordLocation(customer_id=customer_id, latitude=34.5, longitude=69.2))

        customer = current_domain.repository_for(Customer).get(customer_id)
        assert customer.last_known_location.latitude == 34.5
        assert customer.location_captured_at is not None
