"""
Cart aggregate: the cart, its items and the SKUs they reference.

Structural only. Event gating, validation and persistence live in
``shopping_cart.services.cart_service``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from shopping_cart.domain.conditions import CartOwner, Condition, ItemOwner


@dataclass(frozen=True)
class ItemType:
    type: str
    id: int | None = None


@dataclass(frozen=True)
class Sku:
    sku: str
    price: Decimal
    type: ItemType | None = None
    id: int | None = None


@dataclass(eq=False)
class Item:
    """
    Shopping cart line: one SKU, a quantity and optional host-defined attributes.

    ``attributes`` is opaque; it is built, validated and stored by the
    configured AttributesStrategy.
    """

    sku: Sku
    quantity: int
    attributes: Any = None
    attributes_id: int | None = None
    id: int | None = None
    conditions: list[Condition] = field(default_factory=list)
    pending_delete: bool = False

    @property
    def price(self) -> Decimal:
        return self.sku.price

    @property
    def live_conditions(self) -> list[Condition]:
        return [c for c in self.conditions if not c.pending_delete]

    def as_owner(self) -> ItemOwner:
        return ItemOwner(self)


@dataclass(eq=False)
class Cart:
    """
    Aggregate root for one (session, instance) pair.
    """

    session: str
    instance: str
    id: int | None = None
    items: list[Item] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)

    @property
    def live_items(self) -> list[Item]:
        return [i for i in self.items if not i.pending_delete]

    @property
    def live_conditions(self) -> list[Condition]:
        return [c for c in self.conditions if not c.pending_delete]

    def as_owner(self) -> CartOwner:
        return CartOwner(self)

    def find_items(self, ids: Iterable[int]) -> list[Item]:
        wanted = set(ids)
        return [i for i in self.items if i.id is not None and i.id in wanted]

    def find_conditions(self, ids: Iterable[int]) -> list[Condition]:
        """Cart-level and item-level conditions with the given ids."""
        wanted = set(ids)
        found = [c for c in self.conditions if c.id is not None and c.id in wanted]
        for item in self.items:
            found.extend(c for c in item.conditions if c.id is not None and c.id in wanted)
        return found

    def detach_condition(self, condition: Condition) -> None:
        owner = condition.owner
        if isinstance(owner, CartOwner):
            owner.cart.conditions.remove(condition)
        else:
            owner.item.conditions.remove(condition)

    def prune(self) -> None:
        """Drop pending-deleted items and conditions once storage has caught up."""
        self.conditions = self.live_conditions
        self.items = self.live_items
        for item in self.items:
            item.conditions = item.live_conditions
