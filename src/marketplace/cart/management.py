"""Cart clearing and guest cart merging — commands and handler."""

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import MAX_LINE_QUANTITY, ShoppingCart
from marketplace.cart.store import cart_summary, decode_lines, load_cart, save_cart
from marketplace.domain import marketplace
from marketplace.product.availability import check_purchasable, stock_limit
from marketplace.product.product import Product


@marketplace.command(part_of="ShoppingCart")
class ClearCart:
    customer_id = Identifier()
    guest_items = Text()


@marketplace.command(part_of="ShoppingCart")
class MergeGuestCart:
    customer_id = Identifier(required=True)
    guest_items = Text()  # JSON list of guest cart lines


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = load_cart(command.customer_id, command.guest_items)
        cart.clear()
        save_cart(cart)
        return cart_summary(cart)

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        cart = current_domain.repository_for(ShoppingCart).for_customer(command.customer_id)
        guest_cart = ShoppingCart.from_lines(decode_lines(command.guest_items))
        if not guest_cart.items:
            return cart_summary(cart)

        products = current_domain.repository_for(Product)
        accepted, warnings = [], []
        for item in guest_cart.items:
            quantity, warning = _mergeable_quantity(cart, item, products.find(item.product_id))
            if warning:
                warnings.append(warning)
            if quantity > 0:
                accepted.append(
                    {
                        "product_id": item.product_id,
                        "variant_id": item.variant_id,
                        "quantity": quantity,
                        "added_at": item.added_at,
                    }
                )

        dropped = cart.merge_guest_cart(ShoppingCart.from_lines(accepted))
        if dropped:
            warnings.append(f"{len(dropped)} item(s) could not be merged: cart is full")

        save_cart(cart)
        return cart_summary(cart, warnings)


def _mergeable_quantity(cart, item, product):
    """How many of a guest line's units can join the cart, and why not all of them.

    The customer's own line for the same key is left as it is; only the
    guest's units are skipped or reduced.
    """
    if product is None or not product.is_published:
        return 0, "An item in your cart is no longer available and was removed"

    variant_id = item.variant_id
    variant = product.find_variant(variant_id) if variant_id else None
    if variant_id and variant is None:
        return 0, f"{product.name}: removed (option no longer available)"

    ok, error = check_purchasable(product, variant)
    if not ok:
        return 0, f"{product.name}: removed ({error.reason.replace('_', ' ')})"

    in_cart = cart.quantity_of(item.product_id, variant_id)
    wanted = min(in_cart + item.quantity, MAX_LINE_QUANTITY)
    available = stock_limit(product, variant)
    if available is None or wanted <= available:
        return wanted - in_cart, None

    final = max(available, in_cart)
    if final == 0:
        return 0, f"{product.name}: removed (out of stock)"
    return final - in_cart, f"{product.name}: adjusted to {final} (available stock)"
