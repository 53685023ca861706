from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from shopping_cart.core.exceptions import ConditionValidationException, ConfigurationException
from shopping_cart.database import get_session
from shopping_cart.repositories.condition_repo import ConditionRepository
from shopping_cart.routers.cart import predicates
from shopping_cart.schemas.condition import (
    ConditionCategoryCreate,
    ConditionCategoryRead,
    ConditionTypeCreate,
    ConditionTypeRead,
    ConditionValidatorCreate,
    ConditionValidatorRead,
)
from shopping_cart.services.condition_type_service import ConditionTypeService

router = APIRouter(prefix="/conditions", tags=["Conditions"])

repo = ConditionRepository()
service = ConditionTypeService(repo)


def _bad_request(e: ConditionValidationException) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=e.message,
    )


@router.get("/categories", response_model=list[ConditionCategoryRead])
def list_categories(session: Session = Depends(get_session)):
    return repo.list_categories(session)


@router.post("/categories", response_model=ConditionCategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(payload: ConditionCategoryCreate, session: Session = Depends(get_session)):
    try:
        return service.create_category(session, payload.model_dump())
    except ConditionValidationException as e:
        raise _bad_request(e)


@router.get("/types", response_model=list[ConditionTypeRead])
def list_types(session: Session = Depends(get_session)):
    """
    All condition types with their validators.
    """
    return service.list_types(session)


@router.post("/types", response_model=ConditionTypeRead, status_code=status.HTTP_201_CREATED)
def create_type(payload: ConditionTypeCreate, session: Session = Depends(get_session)):
    try:
        return service.create_type(session, payload.model_dump())
    except ConditionValidationException as e:
        raise _bad_request(e)


@router.post(
    "/types/{type_id}/validators",
    response_model=ConditionValidatorRead,
    status_code=status.HTTP_201_CREATED,
)
def add_validator(
    type_id: int,
    payload: ConditionValidatorCreate,
    session: Session = Depends(get_session),
):
    """
    Attach a predicate to a condition type.

    The reference must resolve in the cart's PredicateRegistry and accept
    its arguments.
    """
    try:
        predicates.validate_reference(payload.validator)
    except ConfigurationException as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )
    try:
        return service.add_validator(session, type_id, payload.model_dump())
    except ConditionValidationException as e:
        raise _bad_request(e)
