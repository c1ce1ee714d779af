"""Repository for the Order aggregate."""

from protean.exceptions import ObjectNotFoundError

from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.shared.errors import not_found


@marketplace.repository(part_of=Order)
class OrderRepository:
    def load(self, order_id) -> Order:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise not_found("order_id", "Order not found") from None

    def find_by_idempotency_key(self, key) -> Order | None:
        if not key:
            return None
        orders = self._dao.query.filter(idempotency_key=key).all().items
        return orders[0] if orders else None

    def for_customer(self, customer_id, limit=100) -> list[Order]:
        """The customer's orders, newest first."""
        return self._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at").limit(limit).all().items
