"""Tests for the Customer aggregate and its value objects."""

import pytest
from protean.exceptions import ValidationError

from marketplace.customer.customer import MAX_SAVED_ADDRESSES, Customer
from marketplace.customer.events import AddressSaved, CustomerRegistered, LocationCaptured
from marketplace.shared.email import EmailAddress


def _make_customer():
    return Customer.register(email="Ada@Example.com", first_name="Ada", last_name="Lovelace")


def _save(customer, label="Home", **overrides):
    fields = {
        "label": label,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address1": "12 Analytical Row",
        "city": "Kabul",
        "postal_code": "1001",
        "country": "AF",
    }
    fields.update(overrides)
    return customer.save_address(**fields)


class TestEmailAddress:
    def test_normalized(self):
        assert EmailAddress(address="Ada@Example.COM").normalized == "ada@example.com"

    @pytest.mark.parametrize(
        "address",
        ["no-at-sign", "two@@example.com", "ada@example", "ada@.example.com", "ada lovelace@example.com"],
    )
    def test_invalid(self, address):
        with pytest.raises(ValidationError) as exc:
            EmailAddress(address=address)
        assert "email" in exc.value.messages


class TestRegistration:
    def test_register_normalizes_email(self):
        customer = _make_customer()
        assert customer.email == "ada@example.com"

    def test_register_raises_event(self):
        customer = _make_customer()
        assert any(isinstance(e, CustomerRegistered) for e in customer._events)

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            Customer.register(email="not-an-email")


class TestSavedAddresses:
    def test_first_address_is_default(self):
        customer = _make_customer()
        address = _save(customer)
        assert address.is_default is True

    def test_new_default_replaces_old(self):
        customer = _make_customer()
        _save(customer, "Home")
        office = _save(customer, "Office", is_default=True)

        defaults = [a for a in customer.addresses if a.is_default]
        assert [a.id for a in defaults] == [office.id]

    def test_non_default_keeps_existing_default(self):
        customer = _make_customer()
        home = _save(customer, "Home")
        _save(customer, "Office")

        assert [a.id for a in customer.addresses if a.is_default] == [home.id]

    def test_address_limit(self):
        customer = _make_customer()
        for i in range(MAX_SAVED_ADDRESSES):
            _save(customer, f"Address {i}")
        with pytest.raises(ValidationError):
            _save(customer, "One too many")

    def test_save_raises_event(self):
        customer = _make_customer()
        _save(customer)
        assert any(isinstance(e, AddressSaved) for e in customer._events)


class TestLocation:
    def test_record_location(self):
        customer = _make_customer()
        customer.record_location(34.55, 69.2)

        assert customer.last_known_location.latitude == 34.55
        assert customer.location_captured_at is not None
        assert any(isinstance(e, LocationCaptured) for e in customer._events)

    def test_out_of_range_latitude(self):
        with pytest.raises(ValidationError):
            _make_customer().record_location(120.0, 69.2)
