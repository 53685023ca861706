from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class ItemAttributesRow(SQLModel, table=True):
    """
    Default storage for host-defined item attributes (JSON blob).

    Used by JsonAttributes; hosts with a richer attributes model plug in their
    own AttributesStrategy and may ignore this table.
    """

    __tablename__ = "item_attributes"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    data: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
