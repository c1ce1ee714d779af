"""Repository for the ShoppingCart aggregate."""

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import marketplace


@marketplace.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_for_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def for_customer(self, customer_id) -> ShoppingCart:
        """Return the customer's cart, starting an empty one if there is none yet."""
        return self.find_for_customer(customer_id) or ShoppingCart.create(customer_id=str(customer_id))
