"""Order deletion — restores the inventory an order consumed.

Each line puts its units back on the stock holder and takes them off the
sold counters (floored at zero). A line whose product has disappeared or
whose restore fails is logged and skipped; the remaining lines are still
restored and the order is removed.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.product.guard import inventory_guard
from marketplace.product.product import Product

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        orders = current_domain.repository_for(Order)
        order = orders.load(command.order_id)

        product_repo = current_domain.repository_for(Product)
        touched = {}
        restored = 0

        for line in order.lines:
            product_id = str(line.product_id)
            try:
                product = touched.get(product_id) or product_repo.find(product_id)
                if product is None:
                    logger.warning("order_line_product_missing", order_id=str(order.id), product_id=product_id)
                    continue
                product.restore_sale(line.quantity, str(line.variant_id) if line.variant_id else None)
                touched[product_id] = product
                restored += 1
            except Exception:
                logger.exception(
                    "order_line_restore_failed",
                    order_id=str(order.id),
                    product_id=product_id,
                    variant_id=str(line.variant_id) if line.variant_id else None,
                )

        for product in touched.values():
            product_repo.add(product)

        orders._dao.delete(order)
        logger.info("order_deleted", order_id=str(order.id), lines_restored=restored)
        return restored


def delete_order(order_id) -> int:
    """Delete an order while holding the inventory guard for its products."""
    order = current_domain.repository_for(Order).load(order_id)
    with inventory_guard.hold(str(line.product_id) for line in order.lines):
        return current_domain.process(DeleteOrder(order_id=order_id), asynchronous=False)
