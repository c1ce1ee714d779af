"""Product engagement analytics.

Counters live on the product as a value object and are replaced wholesale on
every change; conversion rates are always recomputed from the counters and
``total_sold`` rather than adjusted incrementally.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Integer

from marketplace.domain import marketplace


@marketplace.value_object(part_of="Product")
class ProductAnalytics:
    view_count: Integer(default=0, min_value=0)
    add_to_cart_count: Integer(default=0, min_value=0)
    wishlist_count: Integer(default=0, min_value=0)
    conversion_rate: Float(default=0.0, min_value=0.0)
    cart_conversion_rate: Float(default=0.0, min_value=0.0)
    last_viewed_at: DateTime()


def conversion_rate(total_sold, denominator) -> float:
    """Percentage of ``denominator`` that turned into sales, to 2 decimals."""
    if not denominator:
        return 0.0
    return round((total_sold or 0) / denominator * 100, 2)


def recompute_analytics(
    analytics: ProductAnalytics | None,
    total_sold: int,
    views: int = 0,
    cart_adds: int = 0,
    viewed_at: datetime | None = None,
) -> ProductAnalytics:
    """Return new analytics with counters bumped and both rates recomputed."""
    current = analytics or ProductAnalytics()
    view_count = (current.view_count or 0) + views
    add_to_cart_count = (current.add_to_cart_count or 0) + cart_adds

    return ProductAnalytics(
        view_count=view_count,
        add_to_cart_count=add_to_cart_count,
        wishlist_count=current.wishlist_count or 0,
        conversion_rate=conversion_rate(total_sold, view_count),
        cart_conversion_rate=conversion_rate(total_sold, add_to_cart_count),
        last_viewed_at=(viewed_at or datetime.now(UTC)) if views else current.last_viewed_at,
    )
