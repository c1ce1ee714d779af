"""Variant management — commands and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.product.stock_status import DEFAULT_LOW_STOCK_THRESHOLD


@marketplace.command(part_of="Product")
class AddVariant:
    product_id: Identifier(required=True)
    sku: String(required=True, max_length=100)
    options: Text()  # JSON list of {"name", "value"}
    title: String(max_length=255)
    price: Float(min_value=0.0)
    compare_at_price: Float(min_value=0.0)
    quantity: Integer(default=0, min_value=0)
    track_quantity: Boolean(default=True)
    allow_backorders: Boolean(default=False)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)
    stock_status: String(max_length=20)
    is_default: Boolean(default=False)


@marketplace.command(part_of="Product")
class UpdateVariant:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    options: Text()
    title: String(max_length=255)
    price: Float(min_value=0.0)
    compare_at_price: Float(min_value=0.0)
    quantity: Integer(min_value=0)
    track_quantity: Boolean()
    allow_backorders: Boolean()
    low_stock_threshold: Integer(min_value=0)
    is_default: Boolean()


@marketplace.command(part_of="Product")
class SetVariantStockStatus:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    stock_status: String(required=True, max_length=20)


@marketplace.command(part_of="Product")
class SetDefaultVariant:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)


@marketplace.command(part_of="Product")
class RemoveVariant:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)


def _parse_options(raw):
    if not raw:
        return None
    options = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(options, list):
        raise ValidationError({"options": ["Variant options must be a list"]})
    return options


@marketplace.command_handler(part_of=Product)
class ManageVariantsHandler:
    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)

        if repo.variant_sku_taken(command.sku, exclude_product_id=product.id):
            raise ValidationError({"sku": [f"Variant SKU {command.sku} is already in use"]})

        variant = product.add_variant(
            sku=command.sku,
            options=_parse_options(command.options),
            title=command.title,
            price=command.price,
            compare_at_price=command.compare_at_price,
            quantity=command.quantity or 0,
            track_quantity=command.track_quantity,
            allow_backorders=command.allow_backorders,
            low_stock_threshold=command.low_stock_threshold,
            stock_status=command.stock_status,
            is_default=command.is_default,
        )
        repo.add(product)
        return str(variant.id)

    @handle(UpdateVariant)
    def update_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)

        changes = {
            name: getattr(command, name)
            for name in (
                "title",
                "price",
                "compare_at_price",
                "quantity",
                "track_quantity",
                "allow_backorders",
                "low_stock_threshold",
            )
            if getattr(command, name) is not None
        }
        product.update_variant(
            command.variant_id,
            options=_parse_options(command.options),
            is_default=command.is_default,
            **changes,
        )
        repo.add(product)

    @handle(SetVariantStockStatus)
    def set_variant_stock_status(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.set_variant_stock_status(command.variant_id, command.stock_status)
        repo.add(product)

    @handle(SetDefaultVariant)
    def set_default_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.set_default_variant(command.variant_id)
        repo.add(product)

    @handle(RemoveVariant)
    def remove_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.remove_variant(command.variant_id)
        repo.add(product)
