from collections import defaultdict

from sqlmodel import Session, select

from shopping_cart.domain.conditions import (
    ConditionCatalog,
    ConditionCategory,
    ConditionType,
    ConditionValidator,
)
from shopping_cart.models.condition import (
    ConditionCategoryRow,
    ConditionTypeRow,
    ConditionValidatorRow,
)


class ConditionRepository:
    """
    Data access layer for condition reference data:
    categories, types and validators.

    Applied conditions are written by CartRepository as part of a cart save.
    """

    # ----- Categories -----

    def list_categories(self, session: Session) -> list[ConditionCategoryRow]:
        return session.exec(select(ConditionCategoryRow).order_by(ConditionCategoryRow.id)).all()

    def get_category(self, session: Session, category_id: int) -> ConditionCategoryRow | None:
        return session.get(ConditionCategoryRow, category_id)

    def get_category_by_name(self, session: Session, name: str) -> ConditionCategoryRow | None:
        stmt = select(ConditionCategoryRow).where(ConditionCategoryRow.name == name)
        return session.exec(stmt).first()

    def create_category(self, session: Session, category: ConditionCategoryRow) -> ConditionCategoryRow:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    # ----- Types -----

    def list_types(self, session: Session) -> list[ConditionTypeRow]:
        return session.exec(select(ConditionTypeRow).order_by(ConditionTypeRow.id)).all()

    def get_type(self, session: Session, type_id: int) -> ConditionTypeRow | None:
        return session.get(ConditionTypeRow, type_id)

    def create_type(self, session: Session, condition_type: ConditionTypeRow) -> ConditionTypeRow:
        session.add(condition_type)
        session.commit()
        session.refresh(condition_type)
        return condition_type

    # ----- Validators -----

    def list_validators(self, session: Session, type_id: int | None = None) -> list[ConditionValidatorRow]:
        stmt = select(ConditionValidatorRow)
        if type_id is not None:
            stmt = stmt.where(ConditionValidatorRow.type_id == type_id)
        return session.exec(stmt.order_by(ConditionValidatorRow.id)).all()

    def create_validator(self, session: Session, validator: ConditionValidatorRow) -> ConditionValidatorRow:
        session.add(validator)
        session.commit()
        session.refresh(validator)
        return validator

    # ----- Domain mapping -----

    def load_catalog(self, session: Session) -> ConditionCatalog:
        """
        Load every condition type with its category and validators.
        """
        categories = {
            row.id: ConditionCategory(name=row.name, id=row.id)
            for row in self.list_categories(session)
        }

        validators: dict[int, list[ConditionValidator]] = defaultdict(list)
        for row in self.list_validators(session):
            validators[row.type_id].append(
                ConditionValidator(validator=row.validator, id=row.id, type_id=row.type_id)
            )

        catalog = ConditionCatalog()
        for row in self.list_types(session):
            catalog.add(
                ConditionType(
                    name=row.name,
                    category=categories[row.category_id],
                    value=row.value,
                    percentage=row.percentage,
                    stacks=row.stacks,
                    validators=validators.get(row.id, []),
                    id=row.id,
                )
            )
        return catalog
