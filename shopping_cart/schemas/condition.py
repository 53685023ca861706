from decimal import Decimal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from shopping_cart.core.validation import between, if_rule


class ConditionCategoryCreate(SQLModel):
    """
    Payload for creating a condition category ('tax', 'discount', ...).
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=64)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class ConditionCategoryRead(SQLModel):
    id: int
    name: str


class ConditionTypeCreate(SQLModel):
    """
    Payload for creating a condition type.

    Rules:
      - percentage types must have a value within [0, 1]
      - fixed types may carry any amount
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    category_id: int = Field(gt=0)
    value: Decimal = Field(max_digits=12, decimal_places=4)
    percentage: bool = False
    stacks: bool = False

    @model_validator(mode="after")
    def percentage_within_unit_range(self) -> "ConditionTypeCreate":
        error = if_rule(
            self.model_dump(),
            "percentage",
            True,
            "==",
            then=between(self.value, Decimal("0"), Decimal("1")),
        )
        if error:
            raise ValueError(error)
        return self


class ConditionValidatorCreate(SQLModel):
    """
    Payload for attaching a validator predicate to a condition type.
    """

    model_config = ConfigDict(extra="forbid")

    validator: str = Field(min_length=1, description="Predicate reference, e.g. 'min_quantity:3'")


class ConditionValidatorRead(SQLModel):
    id: int
    type_id: int
    validator: str


class ConditionTypeRead(SQLModel):
    id: int
    category_id: int
    name: str
    value: Decimal
    percentage: bool
    stacks: bool
    validators: list[ConditionValidatorRead] = []
