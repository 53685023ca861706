"""
Condition validator predicates.

A ConditionValidator stores a predicate reference such as ``"min_quantity:3"``
or ``"item_type:cake,pastry"``: a registered name, optionally followed by
``:`` and comma-separated arguments. The registry resolves the name and calls
the predicate with the target (a Cart or an Item) and the raw arguments.

Host applications register their own predicates:

    registry = PredicateRegistry.with_defaults()

    @registry.register("vip_session")
    def vip_session(target, *args) -> bool:
        ...
"""
from decimal import Decimal
from typing import Callable

from shopping_cart.core.exceptions import ConfigurationException
from shopping_cart.domain.cart import Cart, Item

Target = Cart | Item
Predicate = Callable[..., bool]


def parse_reference(reference: str) -> tuple[str, list[str]]:
    name, _, raw_args = reference.partition(":")
    args = [a.strip() for a in raw_args.split(",")] if raw_args else []
    return name.strip(), args


class PredicateRegistry:
    def __init__(self):
        self._predicates: dict[str, Predicate] = {}

    def register(self, name: str, predicate: Predicate | None = None):
        """Register ``predicate`` under ``name``; usable as a decorator."""
        if predicate is not None:
            self._predicates[name] = predicate
            return predicate

        def decorator(fn: Predicate) -> Predicate:
            self._predicates[name] = fn
            return fn

        return decorator

    def __contains__(self, name: str) -> bool:
        return name in self._predicates

    def check(self, reference: str, target: Target) -> bool:
        """
        Raises:
            ConfigurationException: unknown name, or arguments the predicate
                cannot accept (missing, extra or malformed).
        """
        name, args = parse_reference(reference)
        predicate = self._predicates.get(name)
        if predicate is None:
            raise ConfigurationException(
                f"Unknown condition validator '{name}'",
                details={'reference': reference},
            )
        try:
            return bool(predicate(target, *args))
        except (TypeError, ValueError, ArithmeticError) as e:
            raise ConfigurationException(
                f"Invalid arguments for condition validator '{name}'",
                details={'reference': reference},
            ) from e

    def validate_reference(self, reference: str) -> None:
        """
        Run ``reference`` once against an empty cart.

        Raises:
            ConfigurationException
        """
        self.check(reference, Cart(session="", instance=""))

    @classmethod
    def with_defaults(cls) -> "PredicateRegistry":
        registry = cls()
        for name, fn in DEFAULT_PREDICATES.items():
            registry.register(name, fn)
        return registry


# ---- built-in predicates ----

def _items(target: Target) -> list[Item]:
    return target.live_items if isinstance(target, Cart) else [target]


def _always(target: Target) -> bool:
    return True


def _never(target: Target) -> bool:
    return False


def _is_cart(target: Target) -> bool:
    return isinstance(target, Cart)


def _is_item(target: Target) -> bool:
    return isinstance(target, Item)


def _min_items(target: Target, count: str) -> bool:
    return isinstance(target, Cart) and len(target.live_items) >= int(count)


def _min_quantity(target: Target, quantity: str) -> bool:
    return sum(i.quantity for i in _items(target)) >= int(quantity)


def _max_quantity(target: Target, quantity: str) -> bool:
    return sum(i.quantity for i in _items(target)) <= int(quantity)


def _min_subtotal(target: Target, amount: str) -> bool:
    return sum((i.price for i in _items(target)), Decimal("0")) >= Decimal(amount)


def _item_type(target: Target, *types: str) -> bool:
    return any(i.sku.type is not None and i.sku.type.type in types for i in _items(target))


def _sku(target: Target, *codes: str) -> bool:
    return any(i.sku.sku in codes for i in _items(target))


DEFAULT_PREDICATES: dict[str, Predicate] = {
    "always": _always,
    "never": _never,
    "is_cart": _is_cart,
    "is_item": _is_item,
    "min_items": _min_items,
    "min_quantity": _min_quantity,
    "max_quantity": _max_quantity,
    "min_subtotal": _min_subtotal,
    "item_type": _item_type,
    "sku": _sku,
}
