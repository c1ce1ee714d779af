"""Shopping Cart aggregate.

A registered customer owns exactly one persisted cart. Guests never get a
stored cart: their lines travel in a cookie and are rebuilt into a
transient ``ShoppingCart`` for the duration of one request.

A line is identified by ``(product_id, variant_id)``; adding the same key
again sums the quantities. Each line holds 1 to 100 units and a cart holds
at most 50 lines. Stock and availability are checked by the command
handlers, which can see the products; the aggregate only guards its own
shape.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from marketplace.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartsMerged,
)
from marketplace.domain import marketplace
from marketplace.shared.errors import not_found

MAX_LINE_QUANTITY = 100
MAX_CART_LINES = 50


def line_key(product_id, variant_id=None):
    return str(product_id), (str(variant_id) if variant_id else None)


def ensure_line_quantity(quantity, allow_zero=False):
    """Validate a requested line quantity."""
    minimum = 0 if allow_zero else 1
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < minimum:
        message = "Quantity must be a non-negative integer" if allow_zero else "Quantity must be a positive integer"
        raise ValidationError({"quantity": [message]})
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError({"quantity": [f"Maximum quantity per item is {MAX_LINE_QUANTITY}"]})


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()  # Empty for products without variants
    quantity = Integer(required=True, min_value=1, max_value=MAX_LINE_QUANTITY)
    added_at = DateTime()

    @property
    def key(self):
        return line_key(self.product_id, self.variant_id)


@marketplace.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Empty for transient guest carts
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_cannot_exceed_maximum_lines(self):
        if len(self.items) > MAX_CART_LINES:
            raise ValidationError({"items": [f"Maximum cart size ({MAX_CART_LINES} items) reached"]})

    # -------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    @classmethod
    def from_lines(cls, lines):
        """Rebuild a transient guest cart from decoded cookie lines.

        Lines that are not well formed are dropped, quantities are clamped to
        the per-line maximum and duplicate keys are summed.
        """
        cart = cls.create()
        for line in lines or []:
            product_id = line.get("product_id")
            quantity = line.get("quantity")
            if not product_id or isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                continue

            existing = cart.find_item(product_id, line.get("variant_id"))
            if existing is not None:
                existing.quantity = min(existing.quantity + quantity, MAX_LINE_QUANTITY)
            elif len(cart.items) < MAX_CART_LINES:
                cart.add_items(
                    CartItem(
                        product_id=product_id,
                        variant_id=line.get("variant_id") or None,
                        quantity=min(quantity, MAX_LINE_QUANTITY),
                        added_at=_parse_timestamp(line.get("added_at")),
                    )
                )
        return cart

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_guest(self) -> bool:
        return not self.customer_id

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_item(self, product_id, variant_id=None):
        key = line_key(product_id, variant_id)
        return next((i for i in self.items if i.key == key), None)

    def quantity_of(self, product_id, variant_id=None) -> int:
        item = self.find_item(product_id, variant_id)
        return item.quantity if item else 0

    def lines(self) -> list[dict]:
        return [
            {
                "product_id": str(item.product_id),
                "variant_id": str(item.variant_id) if item.variant_id else None,
                "quantity": item.quantity,
                "added_at": item.added_at.isoformat() if item.added_at else None,
            }
            for item in self.items
        ]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, variant_id, quantity):
        """Add units of a product, merging with an existing line."""
        ensure_line_quantity(quantity)

        existing = self.find_item(product_id, variant_id)
        now = datetime.now(UTC)

        if existing is not None:
            if existing.quantity + quantity > MAX_LINE_QUANTITY:
                raise ValidationError({"quantity": [f"Maximum quantity per item is {MAX_LINE_QUANTITY}"]})
            existing.quantity += quantity
            line_quantity = existing.quantity
        else:
            if len(self.items) >= MAX_CART_LINES:
                raise ValidationError({"items": [f"Maximum cart size ({MAX_CART_LINES} items) reached"]})
            self.add_items(
                CartItem(
                    product_id=product_id,
                    variant_id=variant_id or None,
                    quantity=quantity,
                    added_at=now,
                )
            )
            line_quantity = quantity

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )

    def update_item_quantity(self, product_id, variant_id, new_quantity):
        """Set a line's quantity; zero removes the line."""
        ensure_line_quantity(new_quantity, allow_zero=True)

        item = self.find_item(product_id, variant_id)
        if item is None:
            raise not_found("item", "Item not found in cart")

        if new_quantity == 0:
            self.remove_item(product_id, variant_id)
            return

        previous_quantity = item.quantity
        item.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id, variant_id=None):
        item = self.find_item(product_id, variant_id)
        if item is None:
            raise not_found("item", "Item not found in cart")

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
            )
        )

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(CartCleared(cart_id=str(self.id), cleared_at=now))

    # -------------------------------------------------------------------
    # Cart merging (guest → registered)
    # -------------------------------------------------------------------
    def merge_guest_cart(self, guest_cart):
        """Fold a guest cart's lines into this cart.

        Quantities of matching lines are summed and capped at the per-line
        maximum. New lines are appended while there is room; the rest are
        dropped. Returns the keys of the dropped lines.
        """
        now = datetime.now(UTC)
        merged = 0
        dropped = []

        for guest_item in guest_cart.items:
            existing = self.find_item(guest_item.product_id, guest_item.variant_id)
            if existing is not None:
                existing.quantity = min(existing.quantity + guest_item.quantity, MAX_LINE_QUANTITY)
            elif len(self.items) < MAX_CART_LINES:
                self.add_items(
                    CartItem(
                        product_id=guest_item.product_id,
                        variant_id=guest_item.variant_id,
                        quantity=guest_item.quantity,
                        added_at=guest_item.added_at or now,
                    )
                )
            else:
                dropped.append(guest_item.key)
                continue
            merged += 1

        self.updated_at = now

        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                customer_id=str(self.customer_id) if self.customer_id else None,
                items_merged_count=merged,
            )
        )
        return dropped


def _parse_timestamp(value):
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(UTC)
    return datetime.now(UTC)
