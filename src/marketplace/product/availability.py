"""Purchasability rules shared by the cart and checkout.

Product-level unavailability always wins over the variant: a discontinued or
out-of-stock product blocks every one of its variants, whatever their own
status says.
"""

from marketplace.product.stock_status import StockStatus, is_unavailable
from marketplace.shared.errors import AvailabilityError, NoAvailableVariantError


def _unavailable_reason(name, status, level, variant_title=None):
    subject = name if level == "product" else f"The selected option of {name} ({variant_title})"
    if status == StockStatus.DISCONTINUED.value:
        return AvailabilityError(
            f"{subject} has been discontinued and is no longer available",
            reason=StockStatus.DISCONTINUED.value,
            level=level,
        )
    return AvailabilityError(
        f"{subject} is currently out of stock",
        reason=StockStatus.OUT_OF_STOCK.value,
        level=level,
    )


def check_purchasable(product, variant=None, require_published=True):
    """Return ``(True, None)`` or ``(False, AvailabilityError)``."""
    if require_published and not product.is_published:
        return False, AvailabilityError("Product is not available", reason="unpublished")

    if is_unavailable(product.stock_status):
        return False, _unavailable_reason(product.name, product.stock_status, "product")

    if variant is not None and is_unavailable(variant.stock_status):
        return False, _unavailable_reason(product.name, variant.stock_status, "variant", variant.title)

    return True, None


def ensure_purchasable(product, variant=None, require_published=True):
    ok, error = check_purchasable(product, variant, require_published=require_published)
    if not ok:
        raise error


def ensure_any_variant_available(product):
    if product.variants and all(not v.is_available for v in product.variants):
        raise AvailabilityError(
            f"All options of {product.name} are currently unavailable",
            reason="all_variants_unavailable",
        )


def select_default_variant(product):
    """Pick the variant to use when a shopper did not choose one.

    In order: the default variant if available, the best seller among
    available variants, the default variant anyway, the best seller overall,
    the first available variant, the first variant.
    """
    variants = list(product.variants)
    if not variants:
        raise NoAvailableVariantError()

    available = [v for v in variants if v.is_available]
    default = next((v for v in variants if v.is_default), None)

    if default is not None and default.is_available:
        return default

    seller = _best_seller(available)
    if seller is not None:
        return seller

    if default is not None:
        return default

    seller = _best_seller(variants)
    if seller is not None:
        return seller

    return available[0] if available else variants[0]


def _best_seller(variants):
    sold = [v for v in variants if (v.total_sold or 0) > 0]
    if not sold:
        return None
    return max(sold, key=lambda v: v.total_sold)


def resolve_variant(product, variant_id=None):
    """Return the variant a line refers to, or ``None`` for simple products."""
    if variant_id:
        return product.get_variant(variant_id)
    if product.has_variants and product.variants:
        return select_default_variant(product)
    return None


def stock_holder(product, variant=None):
    return variant if variant is not None else product


def stock_limit(product, variant=None):
    """Most units that can be bought, or ``None`` when stock does not limit."""
    holder = stock_holder(product, variant)
    if not holder.track_quantity or holder.allow_backorders:
        return None
    return holder.quantity or 0
