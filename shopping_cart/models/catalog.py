from decimal import Decimal

from sqlmodel import SQLModel, Field


class ItemTypeRow(SQLModel, table=True):
    """
    Kind of product a SKU belongs to (e.g. 'cake', 'gift card').
    """

    __tablename__ = "item_types"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    type: str = Field(
        index=True,
        unique=True,
    )


class ItemSkuRow(SQLModel, table=True):
    """
    Purchasable SKU referenced by cart items.
    """

    __tablename__ = "item_skus"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    sku: str = Field(
        index=True,
        unique=True,
        description="Stock keeping unit code",
    )

    price: Decimal = Field(
        max_digits=12,
        decimal_places=4,
        ge=0,
        description="Unit price",
    )

    type_id: int | None = Field(
        default=None,
        foreign_key="item_types.id",
    )
