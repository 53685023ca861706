import logging

from sqlmodel import Session, select

from shopping_cart.domain.cart import Cart, Item
from shopping_cart.domain.conditions import Condition, ConditionCatalog
from shopping_cart.models.cart import CartRow, ItemRow
from shopping_cart.models.condition import ConditionRow
from shopping_cart.repositories.sku_repo import SkuRepository
from shopping_cart.services.attributes import AttributesStrategy

logger = logging.getLogger(__name__)


class CartRepository:
    """
    Data access layer for carts, items and applied conditions.

    NOTE:
      - No commits in the save helpers; a cart save is a multi-step
        transaction and the cart service owns commit / rollback.
      - Helpers flush so generated ids are available to dependent rows.
    """

    def __init__(self, sku_repo: SkuRepository | None = None):
        self.sku_repo = sku_repo or SkuRepository()

    # ---- Queries ----

    def get_row(self, session: Session, cart_session: str, instance: str) -> CartRow | None:
        stmt = select(CartRow).where(
            CartRow.session == cart_session, CartRow.instance == instance
        )
        return session.exec(stmt).first()

    def list_sessions(self, session: Session) -> list[str]:
        stmt = select(CartRow.session).distinct().order_by(CartRow.session)
        return list(session.exec(stmt).all())

    def list_instances(self, session: Session, cart_session: str) -> list[str]:
        stmt = select(CartRow.instance).where(CartRow.session == cart_session).order_by(CartRow.instance)
        return list(session.exec(stmt).all())

    def list_item_rows(self, session: Session, cart_id: int) -> list[ItemRow]:
        stmt = select(ItemRow).where(ItemRow.cart_id == cart_id).order_by(ItemRow.id)
        return session.exec(stmt).all()

    def list_condition_rows(
        self,
        session: Session,
        *,
        cart_id: int | None = None,
        item_id: int | None = None,
    ) -> list[ConditionRow]:
        stmt = select(ConditionRow)
        if cart_id is not None:
            stmt = stmt.where(ConditionRow.cart_id == cart_id)
        if item_id is not None:
            stmt = stmt.where(ConditionRow.item_id == item_id)
        return session.exec(stmt.order_by(ConditionRow.id)).all()

    # ---- Domain mapping ----

    def load(
        self,
        session: Session,
        cart_session: str,
        instance: str,
        catalog: ConditionCatalog,
        attributes: AttributesStrategy | None = None,
    ) -> Cart:
        """
        Load the cart for (session, instance) with its items and conditions.

        Returns a new, unsaved Cart if none is stored yet.
        """
        cart = Cart(session=cart_session, instance=instance)
        row = self.get_row(session, cart_session, instance)
        if row is None:
            return cart

        cart.id = row.id
        cart.conditions = self._load_conditions(
            session, catalog, cart.as_owner(), cart_id=row.id
        )

        for item_row in self.list_item_rows(session, row.id):
            sku = self.sku_repo.get_sku(session, item_row.sku_id)
            if sku is None:
                logger.warning(f"Item {item_row.id} references missing SKU {item_row.sku_id}; skipped")
                continue
            item = Item(
                sku=sku,
                quantity=item_row.quantity,
                attributes_id=item_row.attributes_id,
                id=item_row.id,
            )
            if item_row.attributes_id is not None and attributes is not None:
                item.attributes = attributes.load(session, item_row.attributes_id)
            item.conditions = self._load_conditions(
                session, catalog, item.as_owner(), item_id=item_row.id
            )
            cart.items.append(item)

        return cart

    def _load_conditions(self, session, catalog, owner, **where) -> list[Condition]:
        conditions: list[Condition] = []
        for row in self.list_condition_rows(session, **where):
            condition_type = catalog.get(row.type_id)
            if condition_type is None:
                logger.warning(f"Condition {row.id} references unknown type {row.type_id}; skipped")
                continue
            conditions.append(Condition(type=condition_type, owner=owner, id=row.id))
        return conditions

    # ---- Save helpers (no commit) ----

    def save_cart(self, session: Session, cart: Cart) -> CartRow:
        row = session.get(CartRow, cart.id) if cart.id is not None else None
        if row is None:
            row = self.get_row(session, cart.session, cart.instance) or CartRow(
                session=cart.session, instance=cart.instance
            )
        session.add(row)
        session.flush()  # Assign PK
        return row

    def save_item(
        self,
        session: Session,
        item: Item,
        *,
        cart_id: int,
        attributes_id: int | None,
    ) -> ItemRow:
        row = session.get(ItemRow, item.id) if item.id is not None else None
        if row is None:
            row = ItemRow(cart_id=cart_id, sku_id=item.sku.id, quantity=item.quantity)
        row.cart_id = cart_id
        row.sku_id = item.sku.id
        row.quantity = item.quantity
        row.attributes_id = attributes_id
        session.add(row)
        session.flush()
        return row

    def save_condition(
        self,
        session: Session,
        condition: Condition,
        *,
        cart_id: int | None = None,
        item_id: int | None = None,
    ) -> ConditionRow:
        row = session.get(ConditionRow, condition.id) if condition.id is not None else None
        if row is None:
            row = ConditionRow(type_id=condition.type.id)
        row.cart_id = cart_id
        row.item_id = item_id
        row.type_id = condition.type.id
        session.add(row)
        session.flush()
        return row

    def delete_condition(self, session: Session, condition_id: int) -> None:
        row = session.get(ConditionRow, condition_id)
        if row is not None:
            session.delete(row)
            session.flush()

    def delete_item_conditions(self, session: Session, item_id: int) -> None:
        for row in self.list_condition_rows(session, item_id=item_id):
            session.delete(row)
        session.flush()

    def delete_item(self, session: Session, item_id: int) -> None:
        row = session.get(ItemRow, item_id)
        if row is not None:
            session.delete(row)
            session.flush()

    # ---- Immediate deletes ----

    def delete_conditions(self, session: Session, condition_ids: list[int]) -> None:
        """Delete stored conditions right away (commits)."""
        for condition_id in condition_ids:
            row = session.get(ConditionRow, condition_id)
            if row is not None:
                session.delete(row)
        session.commit()
