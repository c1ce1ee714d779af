"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductCreated:
    """A new product was added to the catalogue."""

    __version__ = 1

    product_id: Identifier(required=True)
    name: String(required=True, max_length=255)
    price: Float(required=True)
    quantity: Integer(required=True)
    stock_status: String(required=True)
    created_at: DateTime(required=True)


@marketplace.event(part_of="Product")
class ProductPublished:
    __version__ = 1

    product_id: Identifier(required=True)
    published_at: DateTime(required=True)


@marketplace.event(part_of="Product")
class ProductUnpublished:
    __version__ = 1

    product_id: Identifier(required=True)
    unpublished_at: DateTime(required=True)


@marketplace.event(part_of="Product")
class ProductPricingChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    price: Float(required=True)
    sale_price: Float()


@marketplace.event(part_of="Product")
class StockStatusChanged:
    """The stock status of a product or one of its variants changed.

    ``variant_id`` is empty for product-level changes. ``control`` records who
    owns the new value: the quantity (auto), an operator (manual) or the
    variant rollup.
    """

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    previous_status: String()
    new_status: String(required=True)
    control: String(required=True)


@marketplace.event(part_of="Product")
class VariantAdded:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    sku: String(required=True)
    title: String()
    is_default: String()


@marketplace.event(part_of="Product")
class VariantRemoved:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)


@marketplace.event(part_of="Product")
class DefaultVariantChanged:
    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    previous_variant_id: Identifier()


@marketplace.event(part_of="Product")
class StockCommitted:
    """Units were sold from a product (or one of its variants) at checkout."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer(required=True)
    remaining: Integer()


@marketplace.event(part_of="Product")
class StockRestored:
    """Units of a deleted order were put back on hand."""

    __version__ = 1

    product_id: Identifier(required=True)
    variant_id: Identifier()
    quantity: Integer(required=True)
    remaining: Integer()
