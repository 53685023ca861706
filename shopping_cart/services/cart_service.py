import logging
from decimal import Decimal
from typing import Any, Iterable

from sqlmodel import Session

from shopping_cart.core.config import Settings, get_settings
from shopping_cart.core.events import ClearScope, EventDispatcher, Outcome
from shopping_cart.core.exceptions import (
    CartSaveException,
    ItemValidationException,
)
from shopping_cart.core.validation import validate_payload
from shopping_cart.domain.cart import Cart, Item
from shopping_cart.domain.conditions import Condition, ConditionCatalog, ConditionType
from shopping_cart.domain.predicates import PredicateRegistry
from shopping_cart.repositories.cart_repo import CartRepository
from shopping_cart.repositories.condition_repo import ConditionRepository
from shopping_cart.repositories.sku_repo import SkuRepository
from shopping_cart.schemas.cart import ItemCreate
from shopping_cart.services.attributes import AttributesStrategy, JsonAttributes
from shopping_cart.services.condition_service import ConditionService
from shopping_cart.services.pricing_service import CartTotals, PricingService

logger = logging.getLogger(__name__)


class ShoppingCart:
    """
    Shopping cart for one (session, instance) pair, bound to one DB session.

    Responsibilities:
      - load the stored cart (or start a new one) and the condition catalog
      - validate and add items; flag items for removal
      - apply / remove / clear conditions
      - delegate price calculations to PricingService
      - save every pending change in a single transaction

    Mutations only touch the in-memory cart (except remove_condition, which
    deletes stored conditions right away). Nothing else reaches storage until
    save() is called.

    Every mutation fires an event first; a listener returning
    Outcome.CANCEL stops the mutation without raising.
    """

    def __init__(
        self,
        db: Session,
        session: str | None = None,
        instance: str | None = None,
        *,
        events: EventDispatcher | None = None,
        predicates: PredicateRegistry | None = None,
        attributes: AttributesStrategy | None = None,
        settings: Settings | None = None,
        cart_repo: CartRepository | None = None,
        sku_repo: SkuRepository | None = None,
        condition_repo: ConditionRepository | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.events = events or EventDispatcher()
        self.attributes = attributes or JsonAttributes()
        self.sku_repo = sku_repo or SkuRepository()
        self.cart_repo = cart_repo or CartRepository(self.sku_repo)
        self.condition_repo = condition_repo or ConditionRepository()
        self.conditions = ConditionService(self.events, predicates)

        self.catalog: ConditionCatalog = self.condition_repo.load_catalog(db)
        self.cart: Cart = self.cart_repo.load(
            db,
            session or self.settings.DEFAULT_SESSION,
            instance or self.settings.DEFAULT_INSTANCE,
            self.catalog,
            self.attributes,
        )
        self.events.dispatch("constructed", self)

    # ---- identity ----

    @property
    def id(self) -> int | None:
        return self.cart.id

    @property
    def session(self) -> str:
        return self.cart.session

    @property
    def instance(self) -> str:
        return self.cart.instance

    @staticmethod
    def list_sessions(db: Session, cart_repo: CartRepository | None = None) -> list[str]:
        return (cart_repo or CartRepository()).list_sessions(db)

    @staticmethod
    def list_instances(db: Session, session: str, cart_repo: CartRepository | None = None) -> list[str]:
        return (cart_repo or CartRepository()).list_instances(db, session)

    # ---- items ----

    def has_item(self, *ids: int) -> bool:
        present = {i.id for i in self.cart.live_items}
        return bool(ids) and all(i in present for i in ids)

    def get_item(self, item_id: int) -> Item | None:
        for item in self.cart.live_items:
            if item.id == item_id:
                return item
        return None

    def count(self) -> int:
        return len(self.cart.live_items)

    def add_item(self, sku_id: int, quantity: int, attributes: dict[str, Any] | None = None) -> Item:
        """
        Validate and add an item.

        The item is returned even when an 'adding_item' listener cancels;
        it is then simply not part of the cart.

        Raises:
            ItemValidationException: on the first failing rule.
        """
        data = {"sku_id": sku_id, "quantity": quantity, "attributes": attributes}
        payload = self._validate_item(data)

        sku = self.sku_repo.get_sku(self.db, payload.sku_id)
        if sku is None:
            raise ItemValidationException(
                "sku_id: The selected sku id is invalid.",
                details={'sku_id': payload.sku_id},
            )

        item = Item(
            sku=sku,
            quantity=payload.quantity,
            attributes=self.attributes.construct(payload.attributes) if payload.attributes else None,
        )
        if self.events.dispatch("adding_item", item) is not Outcome.CANCEL:
            self.cart.items.append(item)
        return item

    def _validate_item(self, data: dict[str, Any]) -> ItemCreate:
        payload = validate_payload(ItemCreate, data, ItemValidationException)
        if payload.attributes:
            self.attributes.validate(payload.attributes)
        # Listeners may raise ItemValidationException for custom rules
        self.events.dispatch("validating_item", self.cart, data)
        return payload

    def remove_item(self, *ids: int) -> None:
        """
        Flag items for removal. They are deleted (with their conditions and
        attributes) on the next save().
        """
        if self.events.dispatch("removing_items", self.cart, ids) is Outcome.CANCEL:
            return
        for item in self.cart.find_items(ids):
            item.pending_delete = True
        self.events.dispatch("removed_items", self.cart, ids)

    # ---- conditions ----

    def has_condition(self, *names: str) -> bool:
        present = {c.name for c in self.cart.live_conditions}
        return bool(names) and all(n in present for n in names)

    def get_condition(self, name: str) -> Condition | None:
        for condition in self.cart.live_conditions:
            if condition.name == name:
                return condition
        return None

    def _resolve_type(self, condition_type: ConditionType | int | str) -> ConditionType | None:
        if isinstance(condition_type, ConditionType):
            return condition_type
        if isinstance(condition_type, int):
            return self.catalog.get(condition_type)
        return self.catalog.by_name(condition_type)

    def apply_condition_type(
        self,
        condition_type: ConditionType | int | str,
        target: Cart | Item | None = None,
        validate: bool | None = None,
    ) -> Condition | None:
        """
        Apply a condition type (object, id or name) to the cart, or to one of
        its items.

        Returns None when the type is unknown, fails validation, or a listener
        cancels the attachment.
        """
        resolved = self._resolve_type(condition_type)
        if resolved is None:
            logger.warning(f"Unknown condition type {condition_type!r}")
            return None
        if validate is None:
            validate = not self.settings.IGNORE_CONDITION_VALIDATION
        return self.conditions.apply_condition_type(resolved, target or self.cart, validate)

    def apply_conditions(self) -> list[Condition | None]:
        """Try every known condition type on the cart and each item."""
        return self.conditions.apply_all_condition_types(
            self.cart,
            self.catalog,
            validate=not self.settings.IGNORE_CONDITION_VALIDATION,
        )

    def remove_condition(self, *ids: int) -> None:
        """
        Delete conditions (cart- or item-level) immediately, from memory and
        from storage.

        Raises:
            CartSaveException: the delete failed; the transaction was rolled
                back and the conditions stay in the cart.
        """
        if self.events.dispatch("removing_conditions", self.cart, ids) is Outcome.CANCEL:
            return
        found = self.cart.find_conditions(ids)
        stored = [c.id for c in found if c.id is not None]
        if stored:
            try:
                self.cart_repo.delete_conditions(self.db, stored)
            except Exception as e:
                self.db.rollback()
                logger.exception(f"Failed to delete conditions {stored} of cart {self.session}/{self.instance}")
                raise CartSaveException(self.session, self.instance) from e
        for condition in found:
            self.cart.detach_condition(condition)
        self.events.dispatch("removed_conditions", self.cart, ids)

    # ---- clearing ----

    def _clear(self, scope: ClearScope) -> None:
        if self.events.dispatch("clearing", self.cart, scope) is Outcome.CANCEL:
            return

        if scope in (ClearScope.CART, ClearScope.ITEMS):
            for item in self.cart.items:
                item.pending_delete = True
        if scope is ClearScope.ITEM_CONDITIONS:
            for item in self.cart.items:
                for condition in item.conditions:
                    condition.pending_delete = True
        if scope in (ClearScope.CART, ClearScope.CART_CONDITIONS):
            for condition in self.cart.conditions:
                condition.pending_delete = True

        self.events.dispatch("cleared", self.cart, scope)

    def clear(self) -> None:
        """Remove all items and cart conditions."""
        self._clear(ClearScope.CART)

    def clear_items(self) -> None:
        self._clear(ClearScope.ITEMS)

    def clear_item_conditions(self) -> None:
        self._clear(ClearScope.ITEM_CONDITIONS)

    def clear_cart_conditions(self) -> None:
        self._clear(ClearScope.CART_CONDITIONS)

    # ---- pricing ----

    @property
    def pricing(self) -> PricingService:
        return PricingService(self.cart, self.catalog)

    def calculate_subtotal(self, with_conditions: bool = False, type_filter: Iterable[int] = ()) -> Decimal:
        return self.pricing.calculate_subtotal(with_conditions, type_filter)

    def calculate_conditions(
        self,
        subtotal: Decimal | None = None,
        include_cart: bool = True,
        include_item: bool = True,
        type_filter: Iterable[int] = (),
        extra: Iterable[Any] = (),
    ) -> Decimal:
        return self.pricing.calculate_conditions(subtotal, include_cart, include_item, type_filter, extra)

    def calculate_tax(self, subtotal: Decimal | None = None) -> Decimal:
        return self.pricing.calculate_tax(subtotal)

    def calculate_discounts(self, subtotal: Decimal | None = None) -> Decimal:
        return self.pricing.calculate_discounts(subtotal)

    def calculate_total(self) -> Decimal:
        return self.pricing.calculate_total()

    def calculate_totals(self) -> CartTotals:
        return self.pricing.calculate_totals()

    # ---- persistence ----

    def save(self) -> None:
        """
        Write the cart, its items and conditions in one transaction.

        Steps:
          1. 'saving' event; Outcome.CANCEL -> return without writing.
          2. Cart row, then cart conditions (delete pending, upsert the rest).
          3. Items: pending ones are deleted with their conditions and
             attributes; the rest are upserted (attributes first), then
             their conditions.
          4. Commit, copy generated ids onto the in-memory entities,
             drop pending-deleted entities, 'saved' event.

        Raises:
            CartSaveException: storage failed; the transaction was rolled
                back and the in-memory cart is unchanged.
        """
        if self.events.dispatch("saving", self.cart) is Outcome.CANCEL:
            logger.info(f"Save of cart {self.session}/{self.instance} cancelled by listener")
            return

        try:
            assignments = self._persist()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.exception(f"Failed to save cart {self.session}/{self.instance}")
            raise CartSaveException(self.session, self.instance) from e

        for entity, attr, value in assignments:
            setattr(entity, attr, value)
        self.cart.prune()

        logger.info(f"Saved cart {self.session}/{self.instance} (id={self.cart.id})")
        self.events.dispatch("saved", self.cart)

    def _persist(self) -> list[tuple[Any, str, Any]]:
        """
        Stage every write in the open transaction (no commit).

        Returns the (entity, attribute, value) id assignments to apply once
        the transaction has committed.
        """
        db = self.db
        repo = self.cart_repo
        keep_conditions = self.settings.CONDITIONS_PERSISTENT
        assignments: list[tuple[Any, str, Any]] = []

        cart_row = repo.save_cart(db, self.cart)
        assignments.append((self.cart, "id", cart_row.id))

        for condition in self.cart.conditions:
            if condition.pending_delete:
                if condition.id is not None:
                    repo.delete_condition(db, condition.id)
            elif keep_conditions:
                row = repo.save_condition(db, condition, cart_id=cart_row.id)
                assignments.append((condition, "id", row.id))

        for item in self.cart.items:
            if item.pending_delete:
                if item.id is not None:
                    repo.delete_item_conditions(db, item.id)
                    repo.delete_item(db, item.id)
                if item.attributes_id is not None:
                    self.attributes.delete(db, item.attributes_id)
                continue

            attributes_id = item.attributes_id
            if item.attributes is not None:
                attributes_id = self.attributes.persist(db, item.attributes, item.attributes_id)
                assignments.append((item, "attributes_id", attributes_id))

            item_row = repo.save_item(db, item, cart_id=cart_row.id, attributes_id=attributes_id)
            assignments.append((item, "id", item_row.id))

            for condition in item.conditions:
                if condition.pending_delete:
                    if condition.id is not None:
                        repo.delete_condition(db, condition.id)
                elif keep_conditions:
                    row = repo.save_condition(db, condition, item_id=item_row.id)
                    assignments.append((condition, "id", row.id))

        return assignments

    # ---- export ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [
                {
                    "id": item.id,
                    "sku_id": item.sku.id,
                    "sku": item.sku.sku,
                    "price": item.price,
                    "quantity": item.quantity,
                    "attributes": item.attributes,
                    "conditions": [_condition_dict(c) for c in item.live_conditions],
                }
                for item in self.cart.live_items
            ],
            "conditions": [_condition_dict(c) for c in self.cart.live_conditions],
        }


def _condition_dict(condition: Condition) -> dict[str, Any]:
    return {
        "id": condition.id,
        "type_id": condition.type.id,
        "name": condition.name,
        "category": condition.type.category_name,
        "value": condition.value,
        "percentage": condition.type.percentage,
        "stacks": condition.type.stacks,
    }
