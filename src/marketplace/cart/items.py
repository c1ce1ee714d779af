"""Cart item management — commands and handler.

Every command names its cart by ``customer_id`` or carries the guest's lines
in ``guest_items``, and returns the cart summary so the caller can render it
(or write it back to the guest cookie).
"""

from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart, ensure_line_quantity
from marketplace.cart.store import cart_summary, load_cart, save_cart
from marketplace.domain import marketplace
from marketplace.product.availability import ensure_purchasable, resolve_variant, stock_limit
from marketplace.product.engagement import RecordAddToCart
from marketplace.product.product import Product
from marketplace.shared.errors import InsufficientStockError, not_found
from marketplace.shared.side_effects import isolated


@marketplace.command(part_of="ShoppingCart")
class AddToCart:
    customer_id = Identifier()
    guest_items = Text()  # JSON list of guest cart lines
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@marketplace.command(part_of="ShoppingCart")
class UpdateCartItem:
    customer_id = Identifier()
    guest_items = Text()
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@marketplace.command(part_of="ShoppingCart")
class RemoveFromCart:
    customer_id = Identifier()
    guest_items = Text()
    product_id = Identifier(required=True)
    variant_id = Identifier()


def _insufficient_for_addition(requested, in_cart, available):
    if in_cart:
        return InsufficientStockError(
            f"Cannot add {requested} more. You already have {in_cart} in your cart. "
            f"Only {available} available in stock (you can add {max(available - in_cart, 0)} more)",
            available_quantity=available,
            current_in_cart=in_cart,
        )
    return InsufficientStockError(f"Only {available} items available in stock", available_quantity=available)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        ensure_line_quantity(command.quantity)

        product = current_domain.repository_for(Product).load(command.product_id)
        variant = resolve_variant(product, command.variant_id)
        ensure_purchasable(product, variant)
        variant_id = str(variant.id) if variant else None

        cart = load_cart(command.customer_id, command.guest_items)
        in_cart = cart.quantity_of(product.id, variant_id)

        available = stock_limit(product, variant)
        if available is not None and in_cart + command.quantity > available:
            raise _insufficient_for_addition(command.quantity, in_cart, available)

        cart.add_item(product.id, variant_id, command.quantity)
        save_cart(cart)
        return cart_summary(cart)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        ensure_line_quantity(command.quantity, allow_zero=True)

        cart = load_cart(command.customer_id, command.guest_items)
        item = cart.find_item(command.product_id, command.variant_id)
        if item is None:
            raise not_found("item", "Item not found in cart")

        if command.quantity > 0:
            product = current_domain.repository_for(Product).load(command.product_id)
            variant = product.get_variant(command.variant_id) if command.variant_id else None
            ensure_purchasable(product, variant)

            available = stock_limit(product, variant)
            if available is not None and command.quantity > available:
                raise InsufficientStockError(
                    f"Only {available} items available in stock",
                    available_quantity=available,
                    current_in_cart=item.quantity,
                )

        cart.update_item_quantity(command.product_id, command.variant_id, command.quantity)
        save_cart(cart)
        return cart_summary(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = load_cart(command.customer_id, command.guest_items)
        cart.remove_item(command.product_id, command.variant_id)
        save_cart(cart)
        return cart_summary(cart)


def add_to_cart(command: AddToCart) -> dict:
    """Add to a cart, then bump the product's add-to-cart counter.

    The counter is updated in its own unit of work after the cart change has
    been committed; a failure there is logged and never undoes the addition.
    """
    summary = current_domain.process(command, asynchronous=False)

    with isolated("record_add_to_cart", product_id=str(command.product_id)):
        current_domain.process(RecordAddToCart(product_id=command.product_id), asynchronous=False)

    return summary
