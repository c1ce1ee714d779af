"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from marketplace.customer.registration import RegisterCustomer
from marketplace.product.creation import CreateProduct
from marketplace.product.inventory import SetProductStockStatus
from marketplace.product.product import Product
from marketplace.product.variants import AddVariant


def process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalogue():
    """Product and variant ids by the name or SKU used in the feature file."""
    return {}


@pytest.fixture()
def shopper():
    return {"customer_id": None}


@pytest.fixture()
def error():
    """Container for a captured validation error."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a published product "{name}" with {quantity:d} units in stock'))
def published_product(catalogue, name, quantity):
    catalogue[name] = process(CreateProduct(name=name, price=20.0, quantity=quantity, published=True))


@given(parsers.cfparse('"{name}" has a variant "{sku}" with {quantity:d} units'))
def product_variant(catalogue, name, sku, quantity):
    catalogue[sku] = process(AddVariant(product_id=catalogue[name], sku=sku, quantity=quantity))


@given(parsers.cfparse('"{name}" is marked "{status}"'))
def marked_status(catalogue, name, status):
    process(SetProductStockStatus(product_id=catalogue[name], stock_status=status))


@given("a registered shopper")
def registered_shopper(shopper):
    shopper["customer_id"] = process(RegisterCustomer(email="shopper@example.com"))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the request is refused with "{message}"'))
def request_refused(error, message):
    exc = error["exc"]
    assert isinstance(exc, ValidationError)
    assert message in [m for messages in exc.messages.values() for m in messages]


@then(parsers.cfparse('"{name}" has {quantity:d} units in stock'))
def product_quantity(catalogue, name, quantity):
    assert current_domain.repository_for(Product).get(catalogue[name]).quantity == quantity


@then(parsers.cfparse('"{name}" is "{status}"'))
def product_status(catalogue, name, status):
    assert current_domain.repository_for(Product).get(catalogue[name]).stock_status == status
