"""Application tests for order history and order confirmation reads."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

from marketplace.customer.registration import RegisterCustomer
from marketplace.order.history import customer_orders, order_confirmation
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder, checkout
from marketplace.product.creation import CreateProduct
from marketplace.product.variants import AddVariant
from marketplace.shared.errors import AccessDeniedError

ADDRESS = {
    "label": "Office",
    "first_name": "Katherine",
    "last_name": "Johnson",
    "address1": "9 Orbit Street",
    "city": "Mazar",
    "postal_code": "1701",
    "country": "AF",
    "latitude": 36.7,
    "longitude": 67.1,
}


def _process(command):
    return current_domain.process(command, asynchronous=False)


@pytest.fixture
def product_id():
    return _process(CreateProduct(name="Wool Scarf", price=15.0, quantity=20, published=True))


def _place(product_id, variant_id=None, **identity):
    receipt = checkout(
        PlaceOrder(
            items=json.dumps([{"product_id": product_id, "variant_id": variant_id, "quantity": 1}]),
            shipping_address=json.dumps(ADDRESS),
            payment_method="cod",
            currency="USD",
            customer_note="Leave at the gate",
            **identity,
        )
    )
    return receipt["order_id"]


class TestCustomerOrders:
    def test_lists_own_orders_newest_first(self, product_id):
        customer_id = _process(RegisterCustomer(email="kj@example.com"))
        first = _place(product_id, customer_id=customer_id)
        second = _place(product_id, customer_id=customer_id)
        _place(product_id, guest_email="someone@example.com")

        orders = customer_orders(customer_id)

        assert {o["id"] for o in orders} == {first, second}
        assert orders[0]["created_at"] >= orders[1]["created_at"]
        assert set(orders[0]) == {
            "id",
            "order_number",
            "status",
            "payment_status",
            "total",
            "currency",
            "created_at",
        }

    def test_no_orders(self):
        assert customer_orders("nobody") == []


class TestOrderConfirmation:
    def test_owner_sees_details(self, product_id):
        customer_id = _process(RegisterCustomer(email="kj@example.com"))
        order_id = _place(product_id, customer_id=customer_id)

        details = order_confirmation(order_id, customer_id=customer_id)

        assert details["id"] == order_id
        assert details["customer_note"] == "Leave at the gate"
        assert details["shipping_address"]["label"] == "Office"
        assert details["shipping_address"]["latitude"] == 36.7
        assert details["lines"][0]["product_name"] == "Wool Scarf"
        assert details["lines"][0]["variant"] is None

    def test_other_customer_is_denied(self, product_id):
        owner_id = _process(RegisterCustomer(email="kj@example.com"))
        other_id = _process(RegisterCustomer(email="dv@example.com"))
        order_id = _place(product_id, customer_id=owner_id)

        with pytest.raises(AccessDeniedError):
            order_confirmation(order_id, customer_id=other_id)

    def test_recent_guest_order_is_open(self, product_id):
        order_id = _place(product_id, guest_email="guest@example.com")

        details = order_confirmation(order_id)

        assert details["guest_email"] == "guest@example.com"

    def test_old_guest_order_is_closed(self, product_id):
        order_id = _place(product_id, guest_email="guest@example.com")
        repo = current_domain.repository_for(Order)
        order = repo.get(order_id)
        order.created_at = datetime.now(UTC) - timedelta(hours=25)
        repo.add(order)

        with pytest.raises(AccessDeniedError):
            order_confirmation(order_id)

    def test_variant_details(self, product_id):
        variant_id = _process(
            AddVariant(
                product_id=product_id,
                sku="SCARF-GRN",
                options=json.dumps([{"name": "Colour", "value": "Green"}]),
                quantity=3,
            )
        )
        order_id = _place(product_id, variant_id=variant_id, guest_email="guest@example.com")

        variant = order_confirmation(order_id)["lines"][0]["variant"]

        assert variant == {
            "sku": "SCARF-GRN",
            "title": "Green",
            "options": [{"name": "Colour", "value": "Green"}],
            "price": None,
        }

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            order_confirmation("missing")
