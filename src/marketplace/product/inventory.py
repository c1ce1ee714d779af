"""Product stock maintenance — commands and handler.

These are the operator-facing writes to product stock. Sales and restores go
through checkout and order reversal instead.
"""

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.product.product import Product


@marketplace.command(part_of="Product")
class UpdateProductInventory:
    product_id: Identifier(required=True)
    quantity: Integer(min_value=0)
    track_quantity: Boolean()
    allow_backorders: Boolean()
    low_stock_threshold: Integer(min_value=0)


@marketplace.command(part_of="Product")
class SetProductStockStatus:
    product_id: Identifier(required=True)
    stock_status: String(required=True, max_length=20)


@marketplace.command_handler(part_of=Product)
class ProductInventoryHandler:
    @handle(UpdateProductInventory)
    def update_inventory(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.update_inventory(
            quantity=command.quantity,
            track_quantity=command.track_quantity,
            allow_backorders=command.allow_backorders,
            low_stock_threshold=command.low_stock_threshold,
        )
        repo.add(product)
        return product.stock_status

    @handle(SetProductStockStatus)
    def set_stock_status(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.load(command.product_id)
        product.set_stock_status(command.stock_status)
        repo.add(product)
        return product.stock_status
