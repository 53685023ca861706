"""
Item attributes extension point.

The cart never looks inside item attributes. It forwards the raw data to the
AttributesStrategy supplied by the host application, keeps whatever
``construct`` returns on the Item, and stores the id ``persist`` returns.
"""
from typing import Any, Mapping, Protocol

from pydantic import BaseModel
from sqlmodel import Session

from shopping_cart.core.exceptions import ItemValidationException
from shopping_cart.core.validation import validate_payload
from shopping_cart.models.attributes import ItemAttributesRow


class AttributesStrategy(Protocol):
    def validate(self, data: Mapping[str, Any]) -> None:
        """Raise ItemValidationException if ``data`` is not acceptable."""
        ...

    def construct(self, data: Mapping[str, Any]) -> Any:
        ...

    def persist(self, session: Session, attributes: Any, attributes_id: int | None) -> int:
        """Insert or update; return the stored record id. Must not commit."""
        ...

    def load(self, session: Session, attributes_id: int) -> Any:
        ...

    def delete(self, session: Session, attributes_id: int) -> None:
        ...


class JsonAttributes:
    """
    Default strategy: attributes are a dict stored as JSON in item_attributes.

    An optional pydantic schema supplies the validation rules, e.g.

        class CakeAttributes(BaseModel):
            message: str = Field(max_length=40)
            candles: int = Field(default=0, ge=0)

        JsonAttributes(CakeAttributes)
    """

    def __init__(self, schema: type[BaseModel] | None = None):
        self.schema = schema

    def validate(self, data: Mapping[str, Any]) -> None:
        if self.schema is not None:
            validate_payload(self.schema, data, ItemValidationException)

    def construct(self, data: Mapping[str, Any]) -> dict[str, Any]:
        if self.schema is not None:
            return self.schema.model_validate(dict(data)).model_dump(mode="json")
        return dict(data)

    def persist(self, session: Session, attributes: Any, attributes_id: int | None) -> int:
        row = session.get(ItemAttributesRow, attributes_id) if attributes_id is not None else None
        if row is None:
            row = ItemAttributesRow()
        row.data = dict(attributes)
        session.add(row)
        session.flush()
        return row.id

    def load(self, session: Session, attributes_id: int) -> dict[str, Any] | None:
        row = session.get(ItemAttributesRow, attributes_id)
        return dict(row.data) if row is not None else None

    def delete(self, session: Session, attributes_id: int) -> None:
        row = session.get(ItemAttributesRow, attributes_id)
        if row is not None:
            session.delete(row)
            session.flush()
