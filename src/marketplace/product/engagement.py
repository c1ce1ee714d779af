"""Product engagement tracking — views and cart additions."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.product.product import Product


@marketplace.command(part_of="Product")
class RecordProductView:
    product_id: Identifier(required=True)


@marketplace.command_handler(part_of=Product)
class ProductEngagementHandler:
    @handle(RecordProductView)
    def record_view(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.record_view()
        repo.add(product)
        return product.analytics.view_count


@marketplace.command(part_of="Product")
class RecordAddToCart:
    product_id: Identifier(required=True)


@marketplace.command_handler(part_of=Product)
class CartEngagementHandler:
    @handle(RecordAddToCart)
    def record_add_to_cart(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.record_add_to_cart()
        repo.add(product)
