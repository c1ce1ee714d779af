"""Stock status derivation.

Pure functions, no persistence: given the stock fields of a product or a
variant they produce the status shoppers see. Tracked entities always get a
derived status; ``discontinued`` is the exception and sticks until someone
changes it by hand.
"""

from enum import Enum


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    ON_BACKORDER = "on_backorder"
    DISCONTINUED = "discontinued"


class StockControl(Enum):
    """Who owns the current status value."""

    AUTO = "auto"  # derived from quantity
    MANUAL = "manual"  # set by an operator
    ROLLUP = "rollup"  # forced by the product's variants


UNAVAILABLE_STATUSES = frozenset({StockStatus.OUT_OF_STOCK.value, StockStatus.DISCONTINUED.value})

DEFAULT_LOW_STOCK_THRESHOLD = 5


def is_unavailable(status) -> bool:
    return status in UNAVAILABLE_STATUSES


def calculate_stock_status(
    quantity: int,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    allow_backorders: bool = False,
    track_quantity: bool = True,
    current_status: str | None = None,
) -> str:
    """Return the stock status value for the given stock fields.

    Untracked entities keep ``current_status`` (operators manage them), as does
    anything already discontinued. Otherwise the status follows the quantity.
    """
    if not track_quantity:
        return current_status or StockStatus.IN_STOCK.value

    if current_status == StockStatus.DISCONTINUED.value:
        return current_status

    quantity = quantity or 0
    if quantity <= 0:
        return StockStatus.ON_BACKORDER.value if allow_backorders else StockStatus.OUT_OF_STOCK.value

    threshold = DEFAULT_LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
    if quantity <= threshold:
        return StockStatus.LOW_STOCK.value

    return StockStatus.IN_STOCK.value


def derive_control(track_quantity: bool, status: str, current_control: str | None = None) -> str:
    """Pick the control tag that goes with a freshly calculated status."""
    if status == StockStatus.DISCONTINUED.value:
        return StockControl.MANUAL.value
    if not track_quantity:
        if current_control == StockControl.ROLLUP.value:
            return current_control
        return StockControl.MANUAL.value
    return StockControl.AUTO.value
