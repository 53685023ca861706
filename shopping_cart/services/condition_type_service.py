from typing import Any, Mapping

from sqlmodel import Session

from shopping_cart.core.exceptions import ConditionValidationException
from shopping_cart.core.validation import validate_payload
from shopping_cart.models.condition import (
    ConditionCategoryRow,
    ConditionTypeRow,
    ConditionValidatorRow,
)
from shopping_cart.repositories.condition_repo import ConditionRepository
from shopping_cart.schemas.condition import (
    ConditionCategoryCreate,
    ConditionTypeCreate,
    ConditionTypeRead,
    ConditionValidatorCreate,
    ConditionValidatorRead,
)


class ConditionTypeService:
    """
    Business logic for condition reference data (seed / admin use).

    Responsibilities:
      - validate category / type / validator fields
      - enforce unique category names and existing foreign keys
    """

    def __init__(self, repo: ConditionRepository):
        self.repo = repo

    def create_category(self, session: Session, data: Mapping[str, Any]) -> ConditionCategoryRow:
        payload = validate_payload(ConditionCategoryCreate, data, ConditionValidationException)
        if self.repo.get_category_by_name(session, payload.name) is not None:
            raise ConditionValidationException(
                "name: The name has already been taken.",
                details={'name': payload.name},
            )
        return self.repo.create_category(session, ConditionCategoryRow(name=payload.name))

    def create_type(self, session: Session, data: Mapping[str, Any]) -> ConditionTypeRead:
        """
        Rules:
          - all ConditionTypeCreate field rules (percentage values in [0, 1])
          - category_id must exist
        """
        payload = validate_payload(ConditionTypeCreate, data, ConditionValidationException)
        if self.repo.get_category(session, payload.category_id) is None:
            raise ConditionValidationException(
                "category_id: The selected category id is invalid.",
                details={'category_id': payload.category_id},
            )
        row = self.repo.create_type(session, ConditionTypeRow(**payload.model_dump()))
        return self._type_read(row, [])

    def add_validator(
        self,
        session: Session,
        type_id: int,
        data: Mapping[str, Any],
    ) -> ConditionValidatorRow:
        payload = validate_payload(ConditionValidatorCreate, data, ConditionValidationException)
        if self.repo.get_type(session, type_id) is None:
            raise ConditionValidationException(
                "type_id: The selected type id is invalid.",
                details={'type_id': type_id},
            )
        return self.repo.create_validator(
            session,
            ConditionValidatorRow(type_id=type_id, validator=payload.validator),
        )

    def list_types(self, session: Session) -> list[ConditionTypeRead]:
        validators = self.repo.list_validators(session)
        return [
            self._type_read(row, [v for v in validators if v.type_id == row.id])
            for row in self.repo.list_types(session)
        ]

    @staticmethod
    def _type_read(row: ConditionTypeRow, validators: list[ConditionValidatorRow]) -> ConditionTypeRead:
        return ConditionTypeRead(
            id=row.id,
            category_id=row.category_id,
            name=row.name,
            value=row.value,
            percentage=row.percentage,
            stacks=row.stacks,
            validators=[
                ConditionValidatorRead(id=v.id, type_id=v.type_id, validator=v.validator)
                for v in validators
            ],
        )
