"""Read view of a cart enriched with live product data.

Lines whose product is gone or unpublished are left out. Quantities above
what is on hand are shown clamped to the stock when backorders are off.
"""

from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.order.pricing import line_total, unit_price
from marketplace.product.availability import check_purchasable, stock_limit
from marketplace.product.product import Product


def _product_view(product):
    return {
        "id": str(product.id),
        "name": product.name,
        "slug": product.slug,
        "price": product.price,
        "sale_price": product.sale_price,
        "currency": product.currency,
        "stock_status": product.stock_status,
    }


def _variant_view(variant):
    if variant is None:
        return None
    return {
        "id": str(variant.id),
        "sku": variant.sku,
        "title": variant.title,
        "options": variant.option_list,
        "price": variant.price,
        "stock_status": variant.stock_status,
    }


def describe_cart(cart: ShoppingCart) -> dict:
    products = current_domain.repository_for(Product)
    items = []

    for item in cart.items:
        product = products.find(item.product_id)
        if product is None or not product.is_published:
            continue

        variant = product.find_variant(item.variant_id) if item.variant_id else None
        if item.variant_id and variant is None:
            continue

        holder = variant or product
        quantity = item.quantity
        is_in_stock, _ = check_purchasable(product, variant)
        available_quantity = None

        if holder.track_quantity:
            available_quantity = holder.quantity or 0
            is_in_stock = is_in_stock and quantity <= available_quantity
            limit = stock_limit(product, variant)
            if limit is not None and quantity > limit:
                quantity = limit

        price = unit_price(product, variant)
        items.append(
            {
                "product_id": str(item.product_id),
                "variant_id": str(item.variant_id) if item.variant_id else None,
                "quantity": quantity,
                "added_at": item.added_at.isoformat() if item.added_at else None,
                "product": _product_view(product),
                "variant": _variant_view(variant),
                "unit_price": price,
                "line_total": line_total(price, quantity),
                "is_in_stock": is_in_stock,
                "available_quantity": available_quantity,
            }
        )

    return {
        "items": items,
        "item_count": sum(i["quantity"] for i in items),
        "subtotal": round(sum(i["line_total"] for i in items), 2),
        "is_empty": not items,
    }
