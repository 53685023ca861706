from decimal import Decimal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


class ItemTypeCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1, max_length=64)


class ItemTypeRead(SQLModel):
    id: int
    type: str


class SkuCreate(SQLModel):
    """
    Payload for registering a purchasable SKU.
    """

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(min_length=1, max_length=64)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=4)
    type_id: int | None = None

    @field_validator("sku")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class SkuRead(SQLModel):
    id: int
    sku: str
    price: Decimal
    type_id: int | None = None
