from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class CartRow(SQLModel, table=True):
    """
    Stored cart.
    One row per (session, instance) pair.
    """

    __tablename__ = "carts"
    __table_args__ = (UniqueConstraint("session", "instance", name="uq_carts_session_instance"),)

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    session: str = Field(
        min_length=1,
        index=True,
        description="Cart session name (e.g. user id)",
    )

    instance: str = Field(
        min_length=1,
        description="Cart instance name within the session (e.g. 'cart', 'wishlist')",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ItemRow(SQLModel, table=True):
    """
    Stored cart line.
    """

    __tablename__ = "items"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    cart_id: int = Field(
        foreign_key="carts.id",
        index=True,
    )

    sku_id: int = Field(
        foreign_key="item_skus.id",
        index=True,
    )

    # Opaque host-defined attributes record
    attributes_id: int | None = Field(
        default=None,
        foreign_key="item_attributes.id",
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
