"""BDD tests for checkout and order deletion."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder, checkout
from marketplace.order.reversal import delete_order

scenarios("features/order_placement.feature")

ADDRESS = {
    "first_name": "Guest",
    "last_name": "Buyer",
    "address1": "4 Bazaar Road",
    "city": "Kabul",
    "postal_code": "1001",
    "country": "AF",
    "latitude": 34.5,
    "longitude": 69.2,
}


@pytest.fixture()
def placed():
    return {"receipt": None}


def _order(catalogue, placed, error, lines):
    try:
        placed["receipt"] = checkout(
            PlaceOrder(
                items=json.dumps([{"product_id": catalogue[name], "quantity": qty} for name, qty in lines]),
                shipping_address=json.dumps(ADDRESS),
                payment_method="cod",
                currency="USD",
                guest_email="guest@example.com",
            )
        )
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('a guest checks out {first_qty:d} of "{first}" and {second_qty:d} of "{second}"'))
def guest_orders_two(catalogue, placed, error, first_qty, first, second_qty, second):
    _order(catalogue, placed, error, [(first, first_qty), (second, second_qty)])


@when(parsers.cfparse('a guest orders {quantity:d} of "{name}"'))
def guest_orders(catalogue, placed, error, quantity, name):
    _order(catalogue, placed, error, [(name, quantity)])


@when("the order is deleted")
def order_deleted(placed):
    delete_order(placed["receipt"]["order_id"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is placed")
def order_is_placed(placed, error):
    assert error["exc"] is None
    order = current_domain.repository_for(Order).get(placed["receipt"]["order_id"])
    assert order.status == "pending"
