"""Application tests for status, payment and tracking changes on placed orders."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.order.lifecycle import RecordPaymentStatus, SetTrackingNumber, UpdateOrderStatus
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder, checkout
from marketplace.product.creation import CreateProduct


def _process(command):
    return current_domain.process(command, asynchronous=False)


@pytest.fixture
def order_id():
    product_id = _process(CreateProduct(name="Clay Vase", price=22.0, quantity=5, published=True))
    receipt = checkout(
        PlaceOrder(
            items=json.dumps([{"product_id": product_id, "quantity": 1}]),
            shipping_address=json.dumps(
                {
                    "first_name": "Hedy",
                    "last_name": "Lamarr",
                    "address1": "3 Frequency Hop",
                    "city": "Kabul",
                    "postal_code": "1002",
                    "country": "AF",
                    "latitude": 34.5,
                    "longitude": 69.1,
                }
            ),
            payment_method="credit_card",
            currency="USD",
            guest_email="hedy@example.com",
        )
    )
    return receipt["order_id"]


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestOrderStatus:
    def test_walks_through_fulfilment(self, order_id):
        for status in ("processing", "shipped", "delivered"):
            _process(UpdateOrderStatus(order_id=order_id, status=status))
        assert _order(order_id).status == "delivered"

    def test_cannot_skip_a_step(self, order_id):
        with pytest.raises(ValidationError):
            _process(UpdateOrderStatus(order_id=order_id, status="shipped"))
        assert _order(order_id).status == "pending"

    def test_cancelled_is_terminal(self, order_id):
        _process(UpdateOrderStatus(order_id=order_id, status="cancelled"))
        with pytest.raises(ValidationError):
            _process(UpdateOrderStatus(order_id=order_id, status="processing"))

    def test_unknown_status(self, order_id):
        with pytest.raises(ValidationError):
            _process(UpdateOrderStatus(order_id=order_id, status="teleported"))

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _process(UpdateOrderStatus(order_id="missing", status="processing"))


class TestPaymentStatus:
    def test_paid_then_refunded(self, order_id):
        _process(RecordPaymentStatus(order_id=order_id, payment_status="paid"))
        _process(RecordPaymentStatus(order_id=order_id, payment_status="refunded"))
        assert _order(order_id).payment_status == "refunded"

    def test_refund_requires_payment(self, order_id):
        with pytest.raises(ValidationError):
            _process(RecordPaymentStatus(order_id=order_id, payment_status="refunded"))


class TestTrackingNumber:
    def test_sets_tracking_number(self, order_id):
        _process(SetTrackingNumber(order_id=order_id, tracking_number="AFG-00042"))
        assert _order(order_id).tracking_number == "AFG-00042"

    def test_cancelled_order_cannot_be_tracked(self, order_id):
        _process(UpdateOrderStatus(order_id=order_id, status="cancelled"))
        with pytest.raises(ValidationError):
            _process(SetTrackingNumber(order_id=order_id, tracking_number="AFG-00043"))
