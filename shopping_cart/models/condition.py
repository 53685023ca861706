from decimal import Decimal

from sqlmodel import SQLModel, Field


class ConditionCategoryRow(SQLModel, table=True):
    """
    Condition grouping, e.g. 'tax' or 'discount'.
    """

    __tablename__ = "condition_categories"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    name: str = Field(
        index=True,
        unique=True,
    )


class ConditionTypeRow(SQLModel, table=True):
    """
    Reusable condition definition.

      - percentage: value is a fraction of the base amount, otherwise absolute
      - stacks: item-level amount is multiplied by the item quantity
    """

    __tablename__ = "condition_types"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    category_id: int = Field(
        foreign_key="condition_categories.id",
        index=True,
    )

    name: str = Field(
        index=True,
    )

    value: Decimal = Field(
        max_digits=12,
        decimal_places=4,
    )

    percentage: bool = Field(default=False)

    stacks: bool = Field(default=False)


class ConditionValidatorRow(SQLModel, table=True):
    """
    Predicate reference attached to a condition type.
    """

    __tablename__ = "condition_validators"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    type_id: int = Field(
        foreign_key="condition_types.id",
        index=True,
    )

    validator: str = Field(
        description="Predicate reference, e.g. 'min_quantity:3'",
    )


class ConditionRow(SQLModel, table=True):
    """
    Applied condition.

    Exactly one of cart_id / item_id is set. The in-memory owner union is
    the source of truth; these columns are written from it on save.
    """

    __tablename__ = "conditions"

    id: int | None = Field(
        default=None,
        primary_key=True,
    )

    cart_id: int | None = Field(
        default=None,
        foreign_key="carts.id",
        index=True,
    )

    item_id: int | None = Field(
        default=None,
        foreign_key="items.id",
        index=True,
    )

    type_id: int = Field(
        foreign_key="condition_types.id",
    )
