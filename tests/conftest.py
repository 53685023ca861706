"""
Pytest configuration and fixtures for tests.

Provides an in-memory SQLite database and seeded reference data
(condition categories / types, item types, SKUs).
"""

from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from shopping_cart.core.config import Settings
from shopping_cart.core.events import EventDispatcher
from shopping_cart.models import attributes as _attribute_models  # noqa: F401
from shopping_cart.models import cart as _cart_models  # noqa: F401
from shopping_cart.models.catalog import ItemSkuRow, ItemTypeRow
from shopping_cart.models.condition import (
    ConditionCategoryRow,
    ConditionTypeRow,
    ConditionValidatorRow,
)
from shopping_cart.services.cart_service import ShoppingCart


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Create in-memory SQLite database shared by every connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create database session."""
    session = Session(engine)
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Reference Data
# ============================================================================

@pytest.fixture
def seed(session):
    """
    Seed reference data and return the rows by name:

      categories : tax, discount, fee
      types      : sales_tax (cart, 8%), bulk_discount (item, 10%, stacks,
                   requires min_quantity:3), coupon (fixed 5.00),
                   gift_wrap (fixed 2.50, stacks), never (always rejected)
      skus       : CAKE-1 (100.00, cake), CARD-1 (20.00, card)
    """
    data: dict[str, object] = {}

    for name in ("tax", "discount", "fee"):
        row = ConditionCategoryRow(name=name)
        session.add(row)
        data[name] = row
    session.commit()

    types = {
        "sales_tax": ConditionTypeRow(
            category_id=data["tax"].id, name="sales_tax", value=Decimal("0.08"), percentage=True
        ),
        "bulk_discount": ConditionTypeRow(
            category_id=data["discount"].id, name="bulk_discount", value=Decimal("0.10"),
            percentage=True, stacks=True,
        ),
        "coupon": ConditionTypeRow(
            category_id=data["discount"].id, name="coupon", value=Decimal("5.00")
        ),
        "gift_wrap": ConditionTypeRow(
            category_id=data["fee"].id, name="gift_wrap", value=Decimal("2.50"), stacks=True
        ),
        "never": ConditionTypeRow(
            category_id=data["fee"].id, name="never", value=Decimal("1.00")
        ),
    }
    for row in types.values():
        session.add(row)
    session.commit()
    data.update(types)

    session.add_all([
        ConditionValidatorRow(type_id=types["sales_tax"].id, validator="is_cart"),
        ConditionValidatorRow(type_id=types["bulk_discount"].id, validator="is_item"),
        ConditionValidatorRow(type_id=types["bulk_discount"].id, validator="min_quantity:3"),
        ConditionValidatorRow(type_id=types["coupon"].id, validator="is_item"),
        ConditionValidatorRow(type_id=types["gift_wrap"].id, validator="item_type:cake"),
        ConditionValidatorRow(type_id=types["gift_wrap"].id, validator="is_item"),
        ConditionValidatorRow(type_id=types["never"].id, validator="never"),
    ])

    cake = ItemTypeRow(type="cake")
    card = ItemTypeRow(type="card")
    session.add_all([cake, card])
    session.commit()

    data["CAKE-1"] = ItemSkuRow(sku="CAKE-1", price=Decimal("100.00"), type_id=cake.id)
    data["CARD-1"] = ItemSkuRow(sku="CARD-1", price=Decimal("20.00"), type_id=card.id)
    session.add_all([data["CAKE-1"], data["CARD-1"]])
    session.commit()

    return data


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def make_cart(session, seed, settings, events):
    """Factory: a ShoppingCart bound to the test session."""

    def _make(session_name: str = "user-1", instance: str = "cart", **kwargs) -> ShoppingCart:
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("events", events)
        return ShoppingCart(session, session_name, instance, **kwargs)

    return _make
