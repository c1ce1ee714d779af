"""Business errors raised by the marketplace domain.

All of them build on protean's exception types so command handlers can let
them propagate untouched. The HTTP layer maps ``ValidationError`` (and every
subclass here) to 400 and ``ObjectNotFoundError`` to 404.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class AvailabilityError(ValidationError):
    """A product or variant exists but cannot be bought right now.

    ``level`` is ``"product"`` or ``"variant"``; ``reason`` is one of
    ``discontinued``, ``out_of_stock``, ``unpublished`` or
    ``all_variants_unavailable``.
    """

    def __init__(self, message, reason, level="product"):
        self.reason = reason
        self.level = level
        super().__init__({"availability": [message]})

    @property
    def details(self):
        return {"reason": self.reason, "level": self.level}


class NoAvailableVariantError(ValidationError):
    def __init__(self, message="Product has no variants to choose from"):
        super().__init__({"variant_id": [message]})


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds what is on hand and backorders are off."""

    def __init__(self, message, available_quantity, current_in_cart=0):
        self.available_quantity = available_quantity
        self.current_in_cart = current_in_cart
        self.available_to_add = max(available_quantity - current_in_cart, 0)
        super().__init__({"quantity": [message]})

    @property
    def details(self):
        return {
            "availableQuantity": self.available_quantity,
            "currentInCart": self.current_in_cart,
            "availableToAdd": self.available_to_add,
        }


class EmptyCartError(ValidationError):
    def __init__(self, message="Cart is empty"):
        super().__init__({"items": [message]})


def not_found(field, message):
    """Build an ``ObjectNotFoundError`` carrying a user-facing message."""
    return ObjectNotFoundError({field: [message]})


def first_message(exc) -> str:
    """Extract the first human readable message from a protean exception."""
    messages = getattr(exc, "messages", None)
    if messages is None and exc.args:
        messages = exc.args[0]

    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, list | tuple) and value:
                return str(value[0])
            if value:
                return str(value)
    if messages:
        return str(messages)
    return str(exc)


class AccessDeniedError(InvalidOperationError):
    """The caller may not see the requested resource."""
