"""
Condition taxonomy and condition instances.

  ConditionCategory  - named grouping ("tax", "discount", ...)
  ConditionType      - reusable definition: value, percentage flag, stacking flag
  ConditionValidator - predicate reference gating whether a type applies
  Condition          - a type applied to exactly one owner (cart or item)

Categories, types and validators are reference data; conditions are created
in memory and written to storage when the cart is saved.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Iterator, Union

if TYPE_CHECKING:
    from shopping_cart.domain.cart import Cart, Item

TAX_CATEGORY = "tax"
DISCOUNT_CATEGORY = "discount"


@dataclass(frozen=True)
class ConditionCategory:
    name: str
    id: int | None = None


@dataclass(frozen=True)
class ConditionValidator:
    """
    One predicate a target must satisfy, e.g. ``"min_quantity:3"``.

    The predicate reference is resolved by a PredicateRegistry.
    """

    validator: str
    id: int | None = None
    type_id: int | None = None


@dataclass(eq=False)
class ConditionType:
    name: str
    category: ConditionCategory
    value: Decimal
    percentage: bool = False
    stacks: bool = False
    validators: list[ConditionValidator] = field(default_factory=list)
    id: int | None = None

    def __post_init__(self):
        if not isinstance(self.value, Decimal):
            self.value = Decimal(str(self.value))

    @property
    def category_name(self) -> str:
        return self.category.name

    def is_category(self, name: str) -> bool:
        return self.category.name == name


@dataclass(frozen=True, eq=False)
class CartOwner:
    cart: Cart

    @property
    def id(self) -> int | None:
        return self.cart.id


@dataclass(frozen=True, eq=False)
class ItemOwner:
    item: Item

    @property
    def id(self) -> int | None:
        return self.item.id


# A condition belongs to a cart or to an item, never both
ConditionOwner = Union[CartOwner, ItemOwner]


@dataclass(eq=False)
class Condition:
    type: ConditionType
    owner: ConditionOwner
    id: int | None = None
    pending_delete: bool = False

    @property
    def value(self) -> Decimal:
        return self.type.value

    @property
    def name(self) -> str:
        return self.type.name

    @property
    def is_cart_condition(self) -> bool:
        return isinstance(self.owner, CartOwner)

    @property
    def is_item_condition(self) -> bool:
        return isinstance(self.owner, ItemOwner)


class ConditionCatalog:
    """
    All known condition types, indexed by id.

    The pricing engine asks the catalog which type ids belong to a category;
    the bulk application engine iterates it.
    """

    def __init__(self, types: Iterable[ConditionType] = ()):
        self._types: list[ConditionType] = list(types)

    def __iter__(self) -> Iterator[ConditionType]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def add(self, condition_type: ConditionType) -> None:
        self._types.append(condition_type)

    def get(self, type_id: int) -> ConditionType | None:
        for t in self._types:
            if t.id == type_id:
                return t
        return None

    def by_name(self, name: str) -> ConditionType | None:
        for t in self._types:
            if t.name == name:
                return t
        return None

    def type_ids(self, category: str) -> list[int]:
        return [t.id for t in self._types if t.is_category(category)]
