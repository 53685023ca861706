from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from shopping_cart.domain.cart import Cart, Item
from shopping_cart.domain.conditions import (
    DISCOUNT_CATEGORY,
    TAX_CATEGORY,
    Condition,
    ConditionCatalog,
)

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")

# Item-level conditions of the tax category count towards the general
# conditions total when no type filter is given; only the cart-level pass
# excludes tax.
ITEM_LEVEL_TAX_EXCLUDED = False


def round_money(amount: Decimal | int | float | str) -> Decimal:
    """Display rounding: 2 places, half up. Not used internally."""
    return Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartTotals:
    conditions: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)

    def rounded(self) -> "CartTotals":
        return CartTotals(*(round_money(v) for v in asdict(self).values()))


class PricingService:
    """
    Price calculations over a cart's in-memory contents.

    Pure: never mutates the cart, never touches storage, never caches.
    Pending-deleted items and conditions are ignored.

    Evaluation order used for totals:
      1. subtotal    - sum of SKU prices (quantity not applied)
      2. conditions  - non-tax conditions against the bare subtotal
      3. tax         - tax conditions against subtotal + conditions
      4. total       - subtotal + conditions + tax
    """

    def __init__(self, cart: Cart, catalog: ConditionCatalog | None = None):
        self.cart = cart
        self.catalog = catalog or ConditionCatalog()

    # ---- helpers ----

    def _type_ids(self, category: str) -> list[int]:
        """
        Ids of all known types in ``category``: the catalog plus any type
        referenced by a condition currently in the cart.
        """
        ids = set(self.catalog.type_ids(category))
        for condition in self.cart.live_conditions:
            if condition.type.is_category(category):
                ids.add(condition.type.id)
        for item in self.cart.live_items:
            for condition in item.live_conditions:
                if condition.type.is_category(category):
                    ids.add(condition.type.id)
        return list(ids)

    def calculate_item_condition_total(self, item: Item, condition: Condition) -> Decimal:
        """
        Amount one item-level condition contributes.

        Stacking conditions apply once per unit of quantity.
        """
        condition_type = condition.type
        multiplier = item.quantity if condition_type.stacks else 1
        if condition_type.percentage:
            return item.price * condition.value * multiplier
        return condition.value * multiplier

    # ---- public calculations ----

    def calculate_subtotal(
        self,
        with_conditions: bool = False,
        type_filter: Iterable[int] = (),
    ) -> Decimal:
        """
        Sum of item SKU prices, optionally plus conditions of ``type_filter``
        (all non-tax conditions when the filter is empty).
        """
        subtotal = sum((item.price for item in self.cart.live_items), ZERO)
        if with_conditions:
            subtotal += self.calculate_conditions(subtotal, True, True, type_filter)
        return subtotal

    def calculate_conditions(
        self,
        subtotal: Decimal | None = None,
        include_cart: bool = True,
        include_item: bool = True,
        type_filter: Iterable[int] = (),
        extra: Iterable[Any] = (),
    ) -> Decimal:
        """
        Total of the cart's conditions.

        Args:
            subtotal: base for cart-level percentage conditions; recalculated
                when None.
            include_cart: include cart-level conditions.
            include_item: include item-level conditions.
            type_filter: condition type ids to include. When empty, every
                cart-level condition except category 'tax', and every
                item-level condition, is included.
            extra: conditions (or condition types) not attached to the cart;
                each adds its raw value.
        """
        if subtotal is None:
            subtotal = self.calculate_subtotal()
        types = set(type_filter)
        return self._calculate(subtotal, include_cart, include_item, types or None, extra)

    def _calculate(
        self,
        subtotal: Decimal,
        include_cart: bool,
        include_item: bool,
        types: set[int] | None,
        extra: Iterable[Any] = (),
    ) -> Decimal:
        # types=None -> default inclusion rules; an empty set -> nothing matches
        total = ZERO

        if include_cart:
            for condition in self.cart.live_conditions:
                if types is None:
                    included = not condition.type.is_category(TAX_CATEGORY)
                else:
                    included = condition.type.id in types
                if included:
                    if condition.type.percentage:
                        total += subtotal * condition.value
                    else:
                        total += condition.value

        if include_item:
            for item in self.cart.live_items:
                for condition in item.live_conditions:
                    if types is None:
                        included = not (
                            ITEM_LEVEL_TAX_EXCLUDED and condition.type.is_category(TAX_CATEGORY)
                        )
                    else:
                        included = condition.type.id in types
                    if included:
                        total += self.calculate_item_condition_total(item, condition)

        for condition in extra:
            total += Decimal(str(condition.value))

        return total

    def calculate_tax(self, subtotal: Decimal | None = None) -> Decimal:
        """Cart-level conditions of category 'tax' only."""
        if subtotal is None:
            subtotal = self.calculate_subtotal()
        return self._calculate(subtotal, True, False, set(self._type_ids(TAX_CATEGORY)))

    def calculate_discounts(self, subtotal: Decimal | None = None) -> Decimal:
        """Cart- and item-level conditions of category 'discount'."""
        if subtotal is None:
            subtotal = self.calculate_subtotal()
        return self._calculate(subtotal, True, True, set(self._type_ids(DISCOUNT_CATEGORY)))

    def calculate_total(self) -> Decimal:
        subtotal = self.calculate_subtotal(True)
        return subtotal + self.calculate_tax(subtotal)

    def calculate_totals(self) -> CartTotals:
        """
        Conditions are computed against the bare subtotal, folded into the
        subtotal, and tax is computed against that combined amount.
        """
        conditions = self.calculate_conditions()
        subtotal = self.calculate_subtotal() + conditions
        tax = self.calculate_tax(subtotal)
        return CartTotals(
            conditions=conditions,
            subtotal=subtotal,
            tax=tax,
            total=subtotal + tax,
        )
