from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from shopping_cart.database import get_session
from shopping_cart.models.catalog import ItemSkuRow, ItemTypeRow
from shopping_cart.repositories.sku_repo import SkuRepository
from shopping_cart.schemas.sku import ItemTypeCreate, ItemTypeRead, SkuCreate, SkuRead

router = APIRouter(prefix="/skus", tags=["SKUs"])

repo = SkuRepository()


@router.get("/types", response_model=list[ItemTypeRead])
def list_item_types(session: Session = Depends(get_session)):
    return repo.list_types(session)


@router.post("/types", response_model=ItemTypeRead, status_code=status.HTTP_201_CREATED)
def create_item_type(payload: ItemTypeCreate, session: Session = Depends(get_session)):
    return repo.create_type(session, ItemTypeRow(type=payload.type))


@router.get("/{sku_id}", response_model=SkuRead)
def get_sku(sku_id: int, session: Session = Depends(get_session)):
    sku = repo.get_by_id(session, sku_id)
    if not sku:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="SKU not found",
        )
    return sku


@router.post("", response_model=SkuRead, status_code=status.HTTP_201_CREATED)
def create_sku(payload: SkuCreate, session: Session = Depends(get_session)):
    """
    Register a SKU.

    400 if the code is taken or the item type does not exist.
    """
    if repo.get_by_code(session, payload.sku) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="SKU code already exists",
        )
    if payload.type_id is not None and session.get(ItemTypeRow, payload.type_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Item type not found",
        )
    return repo.create(session, ItemSkuRow(**payload.model_dump()))
