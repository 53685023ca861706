"""
Exception classes for the shopping cart.

Condition rejection (a failing validator or a cancelled 'adding' event) is
not represented here: it yields ``None`` from the application engine.
"""


class ShoppingCartException(Exception):
    """
    Base exception for all shopping cart errors.

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (entity IDs, fields, etc.)
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ', '.join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ItemValidationException(ShoppingCartException):
    """Raised when item fields or item attributes fail validation."""
    pass


class ConditionValidationException(ShoppingCartException):
    """Raised when condition type / category fields fail validation."""
    pass


class CartSaveException(ShoppingCartException):
    """Raised when the cart could not be written to storage."""

    def __init__(self, session: str, instance: str):
        super().__init__(
            "Failed to save cart to storage.",
            details={'session': session, 'instance': instance}
        )


class ConfigurationException(ShoppingCartException):
    """Raised when an extension point (predicate, attributes model) cannot be resolved."""
    pass
