from decimal import Decimal
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from shopping_cart.core.events import ClearScope


class ItemCreate(SQLModel):
    """
    Payload for adding an item to a cart.
    Also the rule set applied by ShoppingCart.add_item().
    """

    model_config = ConfigDict(extra="forbid")

    sku_id: int = Field(gt=0)
    quantity: int = Field(ge=1)
    attributes: dict[str, Any] | None = None


class ClearRequest(SQLModel):
    """
    Payload for clearing (part of) a cart.
    """

    scope: ClearScope = ClearScope.CART


class ConditionRead(SQLModel):
    """
    Read model for an applied condition.
    """

    id: int | None
    type_id: int | None
    name: str
    category: str
    value: Decimal
    percentage: bool
    stacks: bool


class ItemRead(SQLModel):
    """
    Read model for a single cart item, including its conditions.
    """

    id: int | None
    sku_id: int | None
    sku: str
    price: Decimal
    quantity: int
    attributes: dict[str, Any] | None = None
    conditions: list[ConditionRead] = []


class CartTotalsRead(SQLModel):
    """
    Cart totals, rounded to 2 decimal places.
    """

    conditions: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal


class CartRead(SQLModel):
    """
    Full cart response model with totals.
    """

    id: int | None
    session: str
    instance: str
    items: list[ItemRead]
    conditions: list[ConditionRead]
    totals: CartTotalsRead
