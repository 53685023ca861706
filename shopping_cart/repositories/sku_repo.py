from sqlmodel import Session, select

from shopping_cart.domain.cart import ItemType, Sku
from shopping_cart.models.catalog import ItemSkuRow, ItemTypeRow


class SkuRepository:
    """
    Data access layer for SKUs and item types.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    # ----- Item types -----

    def list_types(self, session: Session) -> list[ItemTypeRow]:
        return session.exec(select(ItemTypeRow).order_by(ItemTypeRow.id)).all()

    def create_type(self, session: Session, item_type: ItemTypeRow) -> ItemTypeRow:
        session.add(item_type)
        session.commit()
        session.refresh(item_type)
        return item_type

    # ----- SKUs -----

    def get_by_id(self, session: Session, sku_id: int) -> ItemSkuRow | None:
        return session.get(ItemSkuRow, sku_id)

    def get_by_code(self, session: Session, code: str) -> ItemSkuRow | None:
        stmt = select(ItemSkuRow).where(ItemSkuRow.sku == code)
        return session.exec(stmt).first()

    def create(self, session: Session, sku: ItemSkuRow) -> ItemSkuRow:
        session.add(sku)
        session.commit()
        session.refresh(sku)
        return sku

    def get_sku(self, session: Session, sku_id: int) -> Sku | None:
        """
        Load a SKU (with its item type) as a domain value.
        """
        row = self.get_by_id(session, sku_id)
        if row is None:
            return None
        item_type = None
        if row.type_id is not None:
            type_row = session.get(ItemTypeRow, row.type_id)
            if type_row is not None:
                item_type = ItemType(type=type_row.type, id=type_row.id)
        return Sku(sku=row.sku, price=row.price, type=item_type, id=row.id)
