"""Store shipping settings.

One ``StoreSettings`` record holds the shipping policy used at checkout.
Until an operator saves one, defaults come from the environment
(``SHIPPING_MODE``, ``SHIPPING_COST``, ``FREE_DELIVERY_THRESHOLD``).
"""

import os
from datetime import UTC, datetime
from enum import Enum

from protean import handle
from protean.fields import DateTime, Float, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace

DEFAULT_SHIPPING_COST = 50.0
DEFAULT_FREE_DELIVERY_THRESHOLD = 1000.0


class ShippingMode(Enum):
    ALWAYS_FREE = "always_free"
    FREE_ABOVE_THRESHOLD = "free_above_threshold"
    ALWAYS_CHARGED = "always_charged"


@marketplace.aggregate
class StoreSettings:
    shipping_mode = String(choices=ShippingMode, default=ShippingMode.FREE_ABOVE_THRESHOLD.value)
    shipping_cost = Float(default=DEFAULT_SHIPPING_COST, min_value=0.0)
    free_delivery_threshold = Float(default=DEFAULT_FREE_DELIVERY_THRESHOLD, min_value=0.0)
    updated_at = DateTime()

    @classmethod
    def from_environment(cls):
        return cls(
            shipping_mode=os.getenv("SHIPPING_MODE", ShippingMode.FREE_ABOVE_THRESHOLD.value),
            shipping_cost=float(os.getenv("SHIPPING_COST", DEFAULT_SHIPPING_COST)),
            free_delivery_threshold=float(os.getenv("FREE_DELIVERY_THRESHOLD", DEFAULT_FREE_DELIVERY_THRESHOLD)),
        )

    def shipping_fee(self, subtotal: float) -> float:
        mode = ShippingMode(self.shipping_mode)
        if mode == ShippingMode.ALWAYS_FREE:
            return 0.0
        if mode == ShippingMode.FREE_ABOVE_THRESHOLD and subtotal >= (self.free_delivery_threshold or 0.0):
            return 0.0
        return self.shipping_cost or 0.0


@marketplace.command(part_of="StoreSettings")
class UpdateShippingSettings:
    shipping_mode = String(required=True, max_length=30)
    shipping_cost = Float(min_value=0.0)
    free_delivery_threshold = Float(min_value=0.0)


def _stored_settings():
    records = current_domain.repository_for(StoreSettings)._dao.query.all().items
    return records[0] if records else None


def current_shipping_settings() -> StoreSettings:
    return _stored_settings() or StoreSettings.from_environment()


@marketplace.command_handler(part_of=StoreSettings)
class StoreSettingsHandler:
    @handle(UpdateShippingSettings)
    def update_shipping(self, command):
        settings = current_shipping_settings()
        settings.shipping_mode = command.shipping_mode
        if command.shipping_cost is not None:
            settings.shipping_cost = command.shipping_cost
        if command.free_delivery_threshold is not None:
            settings.free_delivery_threshold = command.free_delivery_threshold
        settings.updated_at = datetime.now(UTC)

        current_domain.repository_for(StoreSettings).add(settings)
        return str(settings.id)
