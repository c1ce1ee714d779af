"""Repository for the Product aggregate."""

from protean.exceptions import ObjectNotFoundError

from marketplace.domain import marketplace
from marketplace.product.product import Product
from marketplace.shared.errors import not_found


@marketplace.repository(part_of=Product)
class ProductRepository:
    def find(self, product_id) -> Product | None:
        """Return the product or ``None`` when it does not exist."""
        if not product_id:
            return None
        try:
            return self.get(product_id)
        except ObjectNotFoundError:
            return None

    def load(self, product_id) -> Product:
        """Return the product or raise a user-facing not-found error."""
        product = self.find(product_id)
        if product is None:
            raise not_found("product_id", "Product not found")
        return product

    def variant_sku_taken(self, sku, exclude_product_id=None) -> bool:
        """True when another product already uses ``sku`` for a variant."""
        for product in self._dao.query.all().items:
            if str(product.id) == str(exclude_product_id):
                continue
            if any(v.sku == sku for v in product.variants):
                return True
        return False
