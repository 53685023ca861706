from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from shopping_cart.core.events import ClearScope, EventDispatcher
from shopping_cart.core.exceptions import CartSaveException, ItemValidationException
from shopping_cart.database import get_session
from shopping_cart.domain.predicates import PredicateRegistry
from shopping_cart.repositories.cart_repo import CartRepository
from shopping_cart.repositories.condition_repo import ConditionRepository
from shopping_cart.repositories.sku_repo import SkuRepository
from shopping_cart.schemas.cart import (
    CartRead,
    CartTotalsRead,
    ClearRequest,
    ConditionRead,
    ItemCreate,
    ItemRead,
)
from shopping_cart.services.attributes import JsonAttributes
from shopping_cart.services.cart_service import ShoppingCart

router = APIRouter(prefix="/carts", tags=["Cart"])

sku_repo = SkuRepository()
cart_repo = CartRepository(sku_repo)
condition_repo = ConditionRepository()

# Host applications register listeners / predicates on these at startup
events = EventDispatcher()
predicates = PredicateRegistry.with_defaults()
attributes = JsonAttributes()


def get_cart(
    session_name: str,
    instance: str,
    session: Session = Depends(get_session),
) -> ShoppingCart:
    """
    FastAPI dependency: the cart addressed by the path.
    """
    return ShoppingCart(
        session,
        session_name,
        instance,
        events=events,
        predicates=predicates,
        attributes=attributes,
        cart_repo=cart_repo,
        sku_repo=sku_repo,
        condition_repo=condition_repo,
    )


def _save(cart: ShoppingCart) -> None:
    try:
        cart.save()
    except CartSaveException as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
        )


def _condition_read(data: dict) -> ConditionRead:
    return ConditionRead(**data)


def _cart_read(cart: ShoppingCart) -> CartRead:
    """
    Compose CartRead from the in-memory cart, including rounded totals.
    """
    data = cart.to_dict()
    totals = cart.calculate_totals().rounded()
    return CartRead(
        id=cart.id,
        session=cart.session,
        instance=cart.instance,
        items=[
            ItemRead(
                **{k: v for k, v in item.items() if k != "conditions"},
                conditions=[_condition_read(c) for c in item["conditions"]],
            )
            for item in data["items"]
        ],
        conditions=[_condition_read(c) for c in data["conditions"]],
        totals=CartTotalsRead(**totals.as_dict()),
    )


@router.get("/{session_name}/{instance}", response_model=CartRead)
def get_cart_contents(cart: ShoppingCart = Depends(get_cart)):
    """
    Items, conditions and totals of a cart (empty if never saved).
    """
    return _cart_read(cart)


@router.get("/{session_name}/{instance}/totals", response_model=CartTotalsRead)
def get_cart_totals(cart: ShoppingCart = Depends(get_cart)):
    """
    Conditions, subtotal, tax and total, rounded to 2 places.
    """
    return CartTotalsRead(**cart.calculate_totals().rounded().as_dict())


@router.post("/{session_name}/{instance}/items", response_model=CartRead, status_code=status.HTTP_201_CREATED)
def add_item(payload: ItemCreate, cart: ShoppingCart = Depends(get_cart)):
    """
    Add an item and save the cart.
    """
    try:
        cart.add_item(payload.sku_id, payload.quantity, payload.attributes)
    except ItemValidationException as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )
    _save(cart)
    return _cart_read(cart)


@router.delete("/{session_name}/{instance}/items/{item_id}", response_model=CartRead)
def remove_item(item_id: int, cart: ShoppingCart = Depends(get_cart)):
    """
    Remove an item (with its conditions and attributes) and save the cart.
    """
    if not cart.has_item(item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in cart",
        )
    cart.remove_item(item_id)
    _save(cart)
    return _cart_read(cart)


@router.post("/{session_name}/{instance}/conditions/apply", response_model=CartRead)
def apply_all_conditions(cart: ShoppingCart = Depends(get_cart)):
    """
    Try every condition type on the cart and each item, then save.
    """
    cart.apply_conditions()
    _save(cart)
    return _cart_read(cart)


@router.post("/{session_name}/{instance}/conditions/{type_id}", response_model=CartRead)
def apply_condition(
    type_id: int,
    item_id: int | None = None,
    cart: ShoppingCart = Depends(get_cart),
):
    """
    Apply one condition type to the cart, or to an item when item_id is given.

    409 if the condition type does not apply (validators or listeners).
    """
    if cart.catalog.get(type_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Condition type not found",
        )
    target = None
    if item_id is not None:
        target = cart.get_item(item_id)
        if target is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not found in cart",
            )

    if cart.apply_condition_type(type_id, target) is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Condition does not apply",
        )
    _save(cart)
    return _cart_read(cart)


@router.delete("/{session_name}/{instance}/conditions/{condition_id}", response_model=CartRead)
def remove_condition(condition_id: int, cart: ShoppingCart = Depends(get_cart)):
    """
    Remove a cart- or item-level condition (deleted immediately).
    """
    if not cart.cart.find_conditions([condition_id]):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Condition not found in cart",
        )
    try:
        cart.remove_condition(condition_id)
    except CartSaveException as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
        )
    return _cart_read(cart)


@router.post("/{session_name}/{instance}/clear", response_model=CartRead)
def clear_cart(payload: ClearRequest, cart: ShoppingCart = Depends(get_cart)):
    """
    Clear the whole cart, or only items / item conditions / cart conditions.
    """
    clearers = {
        ClearScope.CART: cart.clear,
        ClearScope.ITEMS: cart.clear_items,
        ClearScope.ITEM_CONDITIONS: cart.clear_item_conditions,
        ClearScope.CART_CONDITIONS: cart.clear_cart_conditions,
    }
    clearers[payload.scope]()
    _save(cart)
    return _cart_read(cart)


@router.get("/{session_name}", response_model=list[str])
def list_instances(session_name: str, session: Session = Depends(get_session)):
    """
    Instance names stored for a cart session.
    """
    return ShoppingCart.list_instances(session, session_name, cart_repo)


@router.get("", response_model=list[str])
def list_sessions(session: Session = Depends(get_session)):
    """
    All stored cart session names.
    """
    return ShoppingCart.list_sessions(session, cart_repo)
