"""Application tests for merging a guest cart into a customer's cart."""

import json
from uuid import uuid4

import pytest
from protean import current_domain

from marketplace.cart.cart import MAX_CART_LINES, ShoppingCart
from marketplace.cart.items import AddToCart
from marketplace.cart.management import MergeGuestCart
from marketplace.product.creation import CreateProduct, UnpublishProduct
from marketplace.product.inventory import UpdateProductInventory


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _create_product(**overrides):
    defaults = {"name": "Linen Apron", "price": 18.0, "quantity": 10, "published": True}
    defaults.update(overrides)
    return _process(CreateProduct(**defaults))


def _guest(*lines):
    return json.dumps([{"product_id": pid, "variant_id": vid, "quantity": qty} for pid, vid, qty in lines])


def _merge(customer_id, *lines):
    return _process(MergeGuestCart(customer_id=customer_id, guest_items=_guest(*lines)))


@pytest.fixture
def customer_id():
    return str(uuid4())


class TestMergeGuestCart:
    def test_lines_are_added_and_persisted(self, customer_id):
        product_id = _create_product()

        summary = _merge(customer_id, (product_id, None, 3))

        assert summary["item_count"] == 3
        assert "warnings" not in summary
        cart = current_domain.repository_for(ShoppingCart).find_for_customer(customer_id)
        assert cart.quantity_of(product_id) == 3

    def test_matching_lines_are_summed(self, customer_id):
        product_id = _create_product()
        _process(AddToCart(customer_id=customer_id, product_id=product_id, quantity=2))

        summary = _merge(customer_id, (product_id, None, 4))

        assert summary["items"][0]["quantity"] == 6

    def test_sum_above_stock_is_clamped(self, customer_id):
        product_id = _create_product()
        _process(AddToCart(customer_id=customer_id, product_id=product_id, quantity=5))

        summary = _merge(customer_id, (product_id, None, 8))

        assert summary["items"][0]["quantity"] == 10
        assert summary["warnings"] == ["Linen Apron: adjusted to 10 (available stock)"]

    def test_unpublished_product_is_removed(self, customer_id):
        product_id = _create_product()
        _process(UnpublishProduct(product_id=product_id))

        summary = _merge(customer_id, (product_id, None, 1))

        assert summary["items"] == []
        assert summary["warnings"] == ["An item in your cart is no longer available and was removed"]

    def test_unknown_product_is_removed(self, customer_id):
        summary = _merge(customer_id, (str(uuid4()), None, 1))

        assert summary["items"] == []
        assert len(summary["warnings"]) == 1

    def test_out_of_stock_product_is_removed(self, customer_id):
        product_id = _create_product()
        _process(UpdateProductInventory(product_id=product_id, quantity=0))

        summary = _merge(customer_id, (product_id, None, 2))

        assert summary["items"] == []
        assert summary["warnings"] == ["Linen Apron: removed (out of stock)"]

    def test_missing_variant_is_removed(self, customer_id):
        product_id = _create_product()

        summary = _merge(customer_id, (product_id, str(uuid4()), 1))

        assert summary["items"] == []
        assert summary["warnings"] == ["Linen Apron: removed (option no longer available)"]

    def test_customer_line_survives_when_guest_line_is_unsellable(self, customer_id):
        product_id = _create_product()
        _process(AddToCart(customer_id=customer_id, product_id=product_id, quantity=3))
        _process(UnpublishProduct(product_id=product_id))

        summary = _merge(customer_id, (product_id, None, 2))

        assert summary["items"][0]["product_id"] == product_id
        assert summary["items"][0]["quantity"] == 3
        assert summary["warnings"] == ["An item in your cart is no longer available and was removed"]
        cart = current_domain.repository_for(ShoppingCart).find_for_customer(customer_id)
        assert cart.quantity_of(product_id) == 3

    def test_customer_line_is_not_lowered_when_stock_shrinks(self, customer_id):
        product_id = _create_product()
        _process(AddToCart(customer_id=customer_id, product_id=product_id, quantity=6))
        _process(UpdateProductInventory(product_id=product_id, quantity=4))

        summary = _merge(customer_id, (product_id, None, 2))

        assert summary["items"][0]["quantity"] == 6
        assert summary["warnings"] == ["Linen Apron: adjusted to 6 (available stock)"]

    def test_sellable_lines_merge_alongside_skipped_ones(self, customer_id):
        sold_out_id = _create_product(name="Sold Out")
        _process(UpdateProductInventory(product_id=sold_out_id, quantity=0))
        good_id = _create_product(name="Good")

        summary = _merge(customer_id, (sold_out_id, None, 1), (str(uuid4()), None, 1), (good_id, None, 2))

        assert [(line["product_id"], line["quantity"]) for line in summary["items"]] == [(good_id, 2)]
        assert len(summary["warnings"]) == 2
        cart = current_domain.repository_for(ShoppingCart).find_for_customer(customer_id)
        assert cart.quantity_of(good_id) == 2
        assert cart.quantity_of(sold_out_id) == 0

    def test_existing_lines_are_not_revalidated(self, customer_id):
        kept_id = _create_product(name="Kept")
        _process(AddToCart(customer_id=customer_id, product_id=kept_id, quantity=1))
        _process(UnpublishProduct(product_id=kept_id))
        added_id = _create_product(name="Added")

        summary = _merge(customer_id, (added_id, None, 1))

        assert {line["product_id"] for line in summary["items"]} == {kept_id, added_id}

    def test_lines_beyond_cart_capacity_are_dropped(self, customer_id):
        cart = ShoppingCart.create(customer_id=customer_id)
        for _ in range(MAX_CART_LINES):
            cart.add_item(str(uuid4()), None, 1)
        current_domain.repository_for(ShoppingCart).add(cart)
        product_id = _create_product()

        summary = _merge(customer_id, (product_id, None, 1))

        assert len(summary["items"]) == MAX_CART_LINES
        assert summary["warnings"] == ["1 item(s) could not be merged: cart is full"]

    def test_empty_guest_cart_is_a_no_op(self, customer_id):
        summary = _process(MergeGuestCart(customer_id=customer_id, guest_items=json.dumps([])))
        assert summary == {"item_count": 0, "items": []}
