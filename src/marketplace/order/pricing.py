"""Line and order pricing."""

from marketplace.settings.shipping import current_shipping_settings


def unit_price(product, variant=None) -> float:
    """Variant price override, else the product's sale price, else its price."""
    if variant is not None and variant.price is not None:
        return variant.price
    return product.effective_price


def line_total(price: float, quantity: int) -> float:
    return round(price * quantity, 2)


def shipping_fee(subtotal: float, settings=None) -> float:
    settings = settings or current_shipping_settings()
    return settings.shipping_fee(subtotal)
