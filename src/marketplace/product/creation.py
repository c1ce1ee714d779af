"""Product creation and publication — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.product.stock_status import DEFAULT_LOW_STOCK_THRESHOLD


@marketplace.command(part_of="Product")
class CreateProduct:
    name: String(required=True, max_length=255)
    price: Float(required=True, min_value=0.0)
    sku: String(max_length=100)
    slug: String(max_length=255)
    sale_price: Float(min_value=0.0)
    currency: String(max_length=3, default="USD")
    quantity: Integer(default=0, min_value=0)
    track_quantity: Boolean(default=True)
    allow_backorders: Boolean(default=False)
    low_stock_threshold: Integer(default=DEFAULT_LOW_STOCK_THRESHOLD, min_value=0)
    stock_status: String(max_length=20)
    published: Boolean(default=False)


@marketplace.command(part_of="Product")
class PublishProduct:
    product_id: Identifier(required=True)


@marketplace.command(part_of="Product")
class UnpublishProduct:
    product_id: Identifier(required=True)


@marketplace.command(part_of="Product")
class UpdateProductPricing:
    product_id: Identifier(required=True)
    price: Float(min_value=0.0)
    sale_price: Float(min_value=0.0)
    clear_sale_price: Boolean(default=False)


@marketplace.command_handler(part_of=Product)
class ProductCatalogueHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            name=command.name,
            price=command.price,
            sku=command.sku,
            slug=command.slug,
            sale_price=command.sale_price,
            currency=command.currency or "USD",
            quantity=command.quantity or 0,
            track_quantity=command.track_quantity,
            allow_backorders=command.allow_backorders,
            low_stock_threshold=command.low_stock_threshold,
            stock_status=command.stock_status,
            published=command.published,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(PublishProduct)
    def publish_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.publish()
        repo.add(product)

    @handle(UnpublishProduct)
    def unpublish_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.unpublish()
        repo.add(product)

    @handle(UpdateProductPricing)
    def update_pricing(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.update_pricing(
            price=command.price,
            sale_price=command.sale_price,
            clear_sale_price=command.clear_sale_price,
        )
        repo.add(product)
