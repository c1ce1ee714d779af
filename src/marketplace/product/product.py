"""Product aggregate root with Variant entity and stock value objects.

The product is the inventory ledger of the marketplace: quantities,
``total_sold`` and stock status for the product and each of its variants
change only through methods on this aggregate, so the stock rules hold on
every write:

* tracked stock always carries a derived status, except ``discontinued``,
  which sticks until an operator clears it;
* at most one variant is the default;
* a product whose variants are all unavailable is rolled up to
  ``out_of_stock`` and reverts once any variant is available again;
* quantities and sold counters never go below zero.
"""

import json
import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.product.analytics import ProductAnalytics, recompute_analytics
from marketplace.product.events import (
    DefaultVariantChanged,
    ProductCreated,
    ProductPricingChanged,
    ProductPublished,
    ProductUnpublished,
    StockCommitted,
    StockRestored,
    StockStatusChanged,
    VariantAdded,
    VariantRemoved,
)
from marketplace.product.stock_status import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    StockControl,
    StockStatus,
    calculate_stock_status,
    derive_control,
    is_unavailable,
)
from marketplace.shared.errors import InsufficientStockError, not_found

UNTITLED_VARIANT = "Untitled Variant"

# Variant attributes an operator may change through ``update_variant``
_VARIANT_EDITABLE_FIELDS = (
    "title",
    "price",
    "compare_at_price",
    "quantity",
    "track_quantity",
    "allow_backorders",
    "low_stock_threshold",
)

# Status a product with variants shows when its own derived status would block them
_SELLABLE_BY_PREFERENCE = (StockStatus.IN_STOCK, StockStatus.LOW_STOCK, StockStatus.ON_BACKORDER)


class PublicationStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")


def variant_title(options) -> str:
    values = [str(o.get("value")) for o in options or [] if o.get("value")]
    return " / ".join(values) if values else UNTITLED_VARIANT


def _ensure_known_status(status):
    if status not in {s.value for s in StockStatus}:
        raise ValidationError({"stock_status": [f"Unknown stock status {status!r}"]})


@marketplace.value_object(part_of="Product")
class StockState:
    """Stock status together with the control that produced it."""

    status: String(choices=StockStatus, default=StockStatus.IN_STOCK.value)
    control: String(choices=StockControl, default=StockControl.AUTO.value)

    @invariant.post
    def derived_status_cannot_be_discontinued(self):
        if self.control == StockControl.AUTO.value and self.status == StockStatus.DISCONTINUED.value:
            raise ValidationError({"stock": ["Discontinued is always a manual status"]})

    @property
    def is_unavailable(self) -> bool:
        return is_unavailable(self.status)


@marketplace.entity(part_of="Product")
class Variant:
    """A purchasable variation of a product (size, colour...).

    A variant keeps its own stock counters. ``price`` overrides the product
    price when set.
    """

    sku: String(required=True, max_length=100)
    title: String(max_length=255)
    options: Text()  # JSON list of {"name", "value"}
    price: Float(min_value=0.0)
    compare_at_price: Float(min_value=0.0)
    quantity: Integer(default=0, min_value=0)
    track_quantity: Boolean(default=True)
    allow_backorders: Boolean(default=False)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)
    stock_state: ValueObject(StockState)
    is_default: Boolean(default=False)
    total_sold: Integer(default=0, min_value=0)

    @property
    def stock_status(self):
        return self.stock_state.status if self.stock_state else StockStatus.IN_STOCK.value

    @property
    def is_available(self) -> bool:
        return not is_unavailable(self.stock_status)

    @property
    def option_list(self) -> list:
        return json.loads(self.options) if self.options else []

    def derived_stock(self, status=None) -> StockState:
        current = status if status is not None else self.stock_status
        new_status = calculate_stock_status(
            quantity=self.quantity,
            low_stock_threshold=self.low_stock_threshold,
            allow_backorders=self.allow_backorders,
            track_quantity=self.track_quantity,
            current_status=current,
        )
        return StockState(status=new_status, control=derive_control(self.track_quantity, new_status))


@marketplace.aggregate
class Product:
    """Product aggregate root."""

    name: String(required=True, max_length=255)
    slug: String(max_length=255)
    sku: String(max_length=100)
    price: Float(required=True, min_value=0.0)
    sale_price: Float(min_value=0.0)
    currency: String(max_length=3, default="USD")
    publication_status: String(choices=PublicationStatus, default=PublicationStatus.DRAFT.value)
    quantity: Integer(default=0, min_value=0)
    track_quantity: Boolean(default=True)
    allow_backorders: Boolean(default=False)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)
    stock_state: ValueObject(StockState)
    has_variants: Boolean(default=False)
    total_sold: Integer(default=0, min_value=0)
    analytics: ValueObject(ProductAnalytics)
    variants: HasMany(Variant)
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def at_most_one_default_variant(self):
        defaults = [v for v in self.variants if v.is_default]
        if len(defaults) > 1:
            raise ValidationError({"variants": ["Only one variant can be the default"]})

    @invariant.post
    def variant_skus_must_be_unique(self):
        skus = [v.sku for v in self.variants]
        if len(skus) != len(set(skus)):
            raise ValidationError({"variants": ["Variant SKUs must be unique"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        sku=None,
        slug=None,
        sale_price=None,
        currency="USD",
        quantity=0,
        track_quantity=True,
        allow_backorders=False,
        low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
        stock_status=None,
        published=False,
    ):
        if stock_status is not None:
            _ensure_known_status(stock_status)

        status = calculate_stock_status(
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            allow_backorders=allow_backorders,
            track_quantity=track_quantity,
            current_status=stock_status,
        )
        now = datetime.now(UTC)

        product = cls(
            name=name,
            slug=slug or slugify(name),
            sku=sku,
            price=price,
            sale_price=sale_price,
            currency=currency,
            publication_status=(PublicationStatus.PUBLISHED.value if published else PublicationStatus.DRAFT.value),
            quantity=quantity,
            track_quantity=track_quantity,
            allow_backorders=allow_backorders,
            low_stock_threshold=low_stock_threshold,
            stock_state=StockState(status=status, control=derive_control(track_quantity, status)),
            analytics=ProductAnalytics(),
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=product.id,
                name=name,
                price=price,
                quantity=quantity,
                stock_status=status,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def stock_status(self):
        return self.stock_state.status if self.stock_state else StockStatus.IN_STOCK.value

    @property
    def is_published(self) -> bool:
        return self.publication_status == PublicationStatus.PUBLISHED.value

    @property
    def effective_price(self) -> float:
        return self.sale_price or self.price or 0.0

    def find_variant(self, variant_id):
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def get_variant(self, variant_id):
        variant = self.find_variant(variant_id)
        if variant is None:
            raise not_found("variant_id", "Variant not found")
        return variant

    # -------------------------------------------------------------------
    # Catalogue maintenance
    # -------------------------------------------------------------------
    def publish(self):
        if self.is_published:
            return
        self.publication_status = PublicationStatus.PUBLISHED.value
        self._touch()
        self.raise_(ProductPublished(product_id=self.id, published_at=self.updated_at))

    def unpublish(self):
        if not self.is_published:
            return
        self.publication_status = PublicationStatus.DRAFT.value
        self._touch()
        self.raise_(ProductUnpublished(product_id=self.id, unpublished_at=self.updated_at))

    def update_pricing(self, price=None, sale_price=None, clear_sale_price=False):
        if price is not None:
            self.price = price
        if clear_sale_price:
            self.sale_price = None
        elif sale_price is not None:
            self.sale_price = sale_price
        self._touch()
        self.raise_(ProductPricingChanged(product_id=self.id, price=self.price, sale_price=self.sale_price))

    def update_inventory(self, quantity=None, track_quantity=None, allow_backorders=None, low_stock_threshold=None):
        """Change stock fields and re-derive the product's status."""
        if quantity is not None:
            self.quantity = quantity
        if track_quantity is not None:
            self.track_quantity = track_quantity
        if allow_backorders is not None:
            self.allow_backorders = allow_backorders
        if low_stock_threshold is not None:
            self.low_stock_threshold = low_stock_threshold

        self._recompute_stock()
        self._touch()

    def set_stock_status(self, status):
        """Operator edit of the product status.

        ``discontinued`` always sticks. On tracked products any other value
        clears a discontinued flag and lets the calculator take over again;
        untracked products simply take the value.
        """
        _ensure_known_status(status)

        if status == StockStatus.DISCONTINUED.value or not self.track_quantity:
            self._set_stock(None, StockState(status=status, control=StockControl.MANUAL.value))
        else:
            self._set_stock(None, self._derived_stock(keep_discontinued=False))
        self._recompute_stock()
        self._touch()

    # -------------------------------------------------------------------
    # Variants
    # -------------------------------------------------------------------
    def add_variant(
        self,
        sku,
        options=None,
        title=None,
        price=None,
        compare_at_price=None,
        quantity=0,
        track_quantity=True,
        allow_backorders=False,
        low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
        stock_status=None,
        is_default=False,
    ):
        if any(v.sku == sku for v in self.variants):
            raise ValidationError({"sku": [f"Variant SKU {sku} already exists on this product"]})
        if stock_status is not None:
            _ensure_known_status(stock_status)

        status = calculate_stock_status(
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            allow_backorders=allow_backorders,
            track_quantity=track_quantity,
            current_status=stock_status,
        )

        with atomic_change(self):
            if is_default:
                for other in self.variants:
                    if other.is_default:
                        other.is_default = False

            variant = Variant(
                sku=sku,
                title=title or variant_title(options),
                options=json.dumps(options or []),
                price=price,
                compare_at_price=compare_at_price,
                quantity=quantity,
                track_quantity=track_quantity,
                allow_backorders=allow_backorders,
                low_stock_threshold=low_stock_threshold,
                stock_state=StockState(status=status, control=derive_control(track_quantity, status)),
                is_default=is_default,
            )
            self.add_variants(variant)
            self.has_variants = True

        self._recompute_stock()
        self._touch()

        self.raise_(
            VariantAdded(
                product_id=self.id,
                variant_id=variant.id,
                sku=sku,
                title=variant.title,
                is_default=str(is_default),
            )
        )
        return variant

    def update_variant(self, variant_id, options=None, is_default=None, **changes):
        variant = self.get_variant(variant_id)

        unknown = set(changes) - set(_VARIANT_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError({"variant": [f"Cannot update {', '.join(sorted(unknown))}"]})

        for field_name, value in changes.items():
            setattr(variant, field_name, value)
        if options is not None:
            variant.options = json.dumps(options)
            if "title" not in changes:
                variant.title = variant_title(options)

        self._set_stock(variant, variant.derived_stock())

        if is_default:
            self.set_default_variant(variant.id)
        elif is_default is False:
            variant.is_default = False

        self._recompute_stock()
        self._touch()
        return variant

    def set_variant_stock_status(self, variant_id, status):
        """Operator edit of a variant status, same rules as the product."""
        _ensure_known_status(status)
        variant = self.get_variant(variant_id)

        if status == StockStatus.DISCONTINUED.value or not variant.track_quantity:
            self._set_stock(variant, StockState(status=status, control=StockControl.MANUAL.value))
        else:
            # Passing a non-discontinued status lets the calculator drop the sticky flag
            self._set_stock(variant, variant.derived_stock(status=StockStatus.IN_STOCK.value))
        self._recompute_stock()
        self._touch()

    def set_default_variant(self, variant_id):
        variant = self.get_variant(variant_id)
        previous = next((v for v in self.variants if v.is_default), None)
        if previous is not None and previous.id == variant.id:
            return

        with atomic_change(self):
            for other in self.variants:
                if other.is_default and other.id != variant.id:
                    other.is_default = False
            variant.is_default = True

        self._touch()
        self.raise_(
            DefaultVariantChanged(
                product_id=self.id,
                variant_id=variant.id,
                previous_variant_id=previous.id if previous else None,
            )
        )

    def remove_variant(self, variant_id):
        variant = self.get_variant(variant_id)
        self.remove_variants(variant)
        if not self.variants:
            self.has_variants = False

        self._recompute_stock()
        self._touch()
        self.raise_(VariantRemoved(product_id=self.id, variant_id=variant_id))

    # -------------------------------------------------------------------
    # Sales
    # -------------------------------------------------------------------
    def commit_sale(self, quantity, variant_id=None):
        """Take ``quantity`` units off the stock holder and count them as sold.

        The holder is the variant when one is given, the product otherwise.
        Untracked holders are not decremented; tracked holders without
        backorders must cover the full quantity.
        """
        variant = self.get_variant(variant_id) if variant_id else None
        holder = variant or self

        if holder.track_quantity:
            if not holder.allow_backorders and quantity > (holder.quantity or 0):
                raise InsufficientStockError(
                    f"Insufficient stock for {self.name}",
                    available_quantity=holder.quantity or 0,
                )
            holder.quantity = max((holder.quantity or 0) - quantity, 0)

        if variant is not None:
            variant.total_sold = (variant.total_sold or 0) + quantity
            self._set_stock(variant, variant.derived_stock())
        self.total_sold = (self.total_sold or 0) + quantity

        self._recompute_stock()
        self.analytics = recompute_analytics(self.analytics, self.total_sold)
        self._touch()

        self.raise_(
            StockCommitted(
                product_id=self.id,
                variant_id=variant.id if variant else None,
                quantity=quantity,
                remaining=holder.quantity,
            )
        )

    def restore_sale(self, quantity, variant_id=None):
        """Reverse ``commit_sale`` for a deleted order line.

        A variant that no longer exists only loses the product-level part of
        the restore; sold counters are floored at zero.
        """
        variant = self.find_variant(variant_id) if variant_id else None
        holder = variant if variant_id else self

        if holder is not None and holder.track_quantity:
            holder.quantity = (holder.quantity or 0) + quantity

        if variant is not None:
            variant.total_sold = max((variant.total_sold or 0) - quantity, 0)
            self._set_stock(variant, variant.derived_stock())
        self.total_sold = max((self.total_sold or 0) - quantity, 0)

        self._recompute_stock()
        self.analytics = recompute_analytics(self.analytics, self.total_sold)
        self._touch()

        self.raise_(
            StockRestored(
                product_id=self.id,
                variant_id=variant_id,
                quantity=quantity,
                remaining=holder.quantity if holder is not None else None,
            )
        )

    # -------------------------------------------------------------------
    # Engagement
    # -------------------------------------------------------------------
    def record_view(self, viewed_at=None):
        self.analytics = recompute_analytics(self.analytics, self.total_sold, views=1, viewed_at=viewed_at)

    def record_add_to_cart(self):
        self.analytics = recompute_analytics(self.analytics, self.total_sold, cart_adds=1)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _touch(self):
        self.updated_at = datetime.now(UTC)

    def _derived_stock(self, keep_discontinued=True) -> StockState:
        current = self.stock_status if keep_discontinued else None
        status = calculate_stock_status(
            quantity=self.quantity,
            low_stock_threshold=self.low_stock_threshold,
            allow_backorders=self.allow_backorders,
            track_quantity=self.track_quantity,
            current_status=current,
        )
        return StockState(status=status, control=derive_control(self.track_quantity, status))

    def _set_stock(self, variant, state):
        target = variant or self
        previous = target.stock_state
        if previous is not None and previous.status == state.status and previous.control == state.control:
            return

        target.stock_state = state
        self.raise_(
            StockStatusChanged(
                product_id=self.id,
                variant_id=variant.id if variant else None,
                previous_status=previous.status if previous else None,
                new_status=state.status,
                control=state.control,
            )
        )

    def _recompute_stock(self):
        """Roll variant stock up to the product and re-derive its status.

        While any variant can still be sold the product status stays
        purchasable; only the rollup (every variant unavailable) or an
        operator blocks a product that has variants.
        """
        tracked = [v for v in self.variants if v.track_quantity]
        if tracked:
            self.quantity = sum(v.quantity or 0 for v in tracked)

        current = self.stock_state or StockState()
        if current.status == StockStatus.DISCONTINUED.value:
            return

        if self.variants and all(not v.is_available for v in self.variants):
            if current.status != StockStatus.OUT_OF_STOCK.value:
                self._set_stock(
                    None,
                    StockState(status=StockStatus.OUT_OF_STOCK.value, control=StockControl.ROLLUP.value),
                )
            return

        if current.control == StockControl.ROLLUP.value:
            if self.track_quantity:
                state = self._derived_stock(keep_discontinued=False)
            else:
                state = StockState(status=StockStatus.IN_STOCK.value, control=StockControl.MANUAL.value)
        elif self.track_quantity:
            state = self._derived_stock()
        else:
            return

        if self.variants and state.is_unavailable:
            state = StockState(status=self._best_variant_status(), control=state.control)
        self._set_stock(None, state)

    def _best_variant_status(self) -> str:
        statuses = {v.stock_status for v in self.variants if v.is_available}
        return next(status.value for status in _SELLABLE_BY_PREFERENCE if status.value in statuses)
