"""Tests for the ShoppingCart aggregate."""

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.cart.cart import MAX_CART_LINES, MAX_LINE_QUANTITY, ShoppingCart, ensure_line_quantity
from marketplace.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated, CartsMerged


def _make_cart():
    return ShoppingCart.create(customer_id="cust-001")


class TestLineQuantity:
    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None])
    def test_rejects_non_positive_or_non_integer(self, quantity):
        with pytest.raises(ValidationError) as exc:
            ensure_line_quantity(quantity)
        assert exc.value.messages["quantity"] == ["Quantity must be a positive integer"]

    def test_zero_allowed_for_updates(self):
        ensure_line_quantity(0, allow_zero=True)

    def test_negative_update(self):
        with pytest.raises(ValidationError) as exc:
            ensure_line_quantity(-1, allow_zero=True)
        assert exc.value.messages["quantity"] == ["Quantity must be a non-negative integer"]

    def test_above_maximum(self):
        with pytest.raises(ValidationError) as exc:
            ensure_line_quantity(101)
        assert exc.value.messages["quantity"] == ["Maximum quantity per item is 100"]


class TestAddItem:
    def test_add_item(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 2)
        assert len(cart.items) == 1
        assert cart.item_count == 2

    def test_same_line_sums_quantities(self):
        cart = _make_cart()
        cart.add_item("prod-001", "var-001", 1)
        cart.add_item("prod-001", "var-001", 2)
        assert len(cart.items) == 1
        assert cart.quantity_of("prod-001", "var-001") == 3

    def test_variant_distinguishes_lines(self):
        cart = _make_cart()
        cart.add_item("prod-001", "var-001", 1)
        cart.add_item("prod-001", "var-002", 1)
        cart.add_item("prod-001", None, 1)
        assert len(cart.items) == 3

    def test_merged_line_cannot_exceed_maximum(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 60)
        with pytest.raises(ValidationError):
            cart.add_item("prod-001", None, 41)
        assert cart.quantity_of("prod-001") == 60

    def test_cart_line_limit(self):
        cart = _make_cart()
        for i in range(MAX_CART_LINES):
            cart.add_item(f"prod-{i}", None, 1)
        with pytest.raises(ValidationError) as exc:
            cart.add_item("prod-extra", None, 1)
        assert exc.value.messages["items"] == ["Maximum cart size (50 items) reached"]

    def test_add_raises_event(self):
        cart = _make_cart()
        cart.add_item("prod-001", "var-001", 2)
        cart.add_item("prod-001", "var-001", 1)
        events = [e for e in cart._events if isinstance(e, CartItemAdded)]
        assert [e.line_quantity for e in events] == [2, 3]


class TestUpdateAndRemove:
    def test_update_quantity(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 1)
        cart._events.clear()
        cart.update_item_quantity("prod-001", None, 5)

        assert cart.quantity_of("prod-001") == 5
        event = cart._events[0]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 1
        assert event.new_quantity == 5

    def test_update_to_zero_removes(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 1)
        cart.update_item_quantity("prod-001", None, 0)
        assert cart.items == []
        assert any(isinstance(e, CartItemRemoved) for e in cart._events)

    def test_update_missing_line(self):
        cart = _make_cart()
        with pytest.raises(ObjectNotFoundError):
            cart.update_item_quantity("prod-001", None, 2)

    def test_remove_missing_line(self):
        cart = _make_cart()
        cart.add_item("prod-001", "var-001", 1)
        with pytest.raises(ObjectNotFoundError):
            cart.remove_item("prod-001", None)

    def test_clear(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 1)
        cart.add_item("prod-002", None, 1)
        cart.clear()
        assert cart.item_count == 0
        assert any(isinstance(e, CartCleared) for e in cart._events)


class TestGuestCartFromLines:
    def test_rebuilds_lines(self):
        cart = ShoppingCart.from_lines(
            [
                {"product_id": "prod-001", "quantity": 2, "added_at": "2026-01-05T10:00:00Z"},
                {"product_id": "prod-002", "variant_id": "var-009", "quantity": 1},
            ]
        )
        assert cart.is_guest
        assert cart.item_count == 3
        assert cart.find_item("prod-001").added_at.year == 2026
        assert cart._events == []

    def test_drops_malformed_lines(self):
        cart = ShoppingCart.from_lines(
            [
                {"product_id": "prod-001", "quantity": "lots"},
                {"quantity": 1},
                {"product_id": "prod-002", "quantity": 0},
                {"product_id": "prod-003", "quantity": 1},
            ]
        )
        assert [item.product_id for item in cart.items] == ["prod-003"]

    def test_clamps_and_sums_duplicates(self):
        cart = ShoppingCart.from_lines(
            [
                {"product_id": "prod-001", "quantity": 80},
                {"product_id": "prod-001", "quantity": 80},
                {"product_id": "prod-002", "quantity": 500},
            ]
        )
        assert cart.quantity_of("prod-001") == MAX_LINE_QUANTITY
        assert cart.quantity_of("prod-002") == MAX_LINE_QUANTITY

    def test_lines_round_trip(self):
        cart = ShoppingCart.from_lines([{"product_id": "prod-001", "variant_id": "var-1", "quantity": 2}])
        lines = cart.lines()
        assert lines[0]["product_id"] == "prod-001"
        assert lines[0]["variant_id"] == "var-1"
        assert lines[0]["quantity"] == 2
        assert lines[0]["added_at"] is not None


class TestMergeGuestCart:
    def test_sums_matching_lines_and_appends_new_ones(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 2)
        guest = ShoppingCart.from_lines(
            [{"product_id": "prod-001", "quantity": 3}, {"product_id": "prod-002", "quantity": 1}]
        )

        dropped = cart.merge_guest_cart(guest)

        assert dropped == []
        assert cart.quantity_of("prod-001") == 5
        assert cart.quantity_of("prod-002") == 1

    def test_caps_line_quantity(self):
        cart = _make_cart()
        cart.add_item("prod-001", None, 90)
        cart.merge_guest_cart(ShoppingCart.from_lines([{"product_id": "prod-001", "quantity": 30}]))
        assert cart.quantity_of("prod-001") == MAX_LINE_QUANTITY

    def test_drops_lines_beyond_cart_limit(self):
        cart = _make_cart()
        for i in range(MAX_CART_LINES):
            cart.add_item(f"prod-{i}", None, 1)
        guest = ShoppingCart.from_lines([{"product_id": "prod-0", "quantity": 1}, {"product_id": "new", "quantity": 1}])

        dropped = cart.merge_guest_cart(guest)

        assert dropped == [("new", None)]
        assert len(cart.items) == MAX_CART_LINES
        assert cart.quantity_of("prod-0") == 2

    def test_raises_event(self):
        cart = _make_cart()
        cart.merge_guest_cart(ShoppingCart.from_lines([{"product_id": "prod-001", "quantity": 1}]))
        events = [e for e in cart._events if isinstance(e, CartsMerged)]
        assert events[0].items_merged_count == 1
