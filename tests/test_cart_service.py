"""
Tests for the ShoppingCart facade: item validation, event gating, clearing,
condition removal and the transactional save pipeline.
"""

from decimal import Decimal

import pytest
from pydantic import BaseModel, Field
from sqlmodel import select

from shopping_cart.core.events import Outcome
from shopping_cart.core.exceptions import CartSaveException, ItemValidationException
from shopping_cart.models.attributes import ItemAttributesRow
from shopping_cart.models.cart import CartRow, ItemRow
from shopping_cart.models.condition import ConditionRow
from shopping_cart.services.attributes import JsonAttributes


class CakeAttributes(BaseModel):
    message: str = Field(max_length=20)
    candles: int = Field(default=0, ge=0)


def count(session, model) -> int:
    return len(session.exec(select(model)).all())


@pytest.fixture
def saved_cart(make_cart, seed):
    """A stored cart: one cake (with attributes and a fixed item condition) and cart tax."""
    cart = make_cart()
    item = cart.add_item(seed["CAKE-1"].id, 3, {"message": "Happy birthday"})
    assert cart.apply_condition_type("coupon", item) is not None
    assert cart.apply_condition_type("sales_tax") is not None
    cart.save()
    return cart


# ============================================================================
# Items
# ============================================================================

class TestAddItem:

    def test_adds_item(self, make_cart, seed):
        cart = make_cart()

        item = cart.add_item(seed["CAKE-1"].id, 2)

        assert cart.count() == 1
        assert item.price == Decimal("100.00")
        assert item.sku.type.type == "cake"
        assert item.id is None

    @pytest.mark.parametrize("sku_id,quantity,field", [
        (1, 0, "quantity"),
        (0, 1, "sku_id"),
        ("abc", 1, "sku_id"),
    ])
    def test_rejects_invalid_fields(self, make_cart, seed, sku_id, quantity, field):
        cart = make_cart()

        with pytest.raises(ItemValidationException) as exc_info:
            cart.add_item(sku_id, quantity)

        assert exc_info.value.message.startswith(f"{field}:")
        assert cart.count() == 0

    def test_rejects_unknown_sku(self, make_cart, seed):
        cart = make_cart()

        with pytest.raises(ItemValidationException) as exc_info:
            cart.add_item(9999, 1)

        assert exc_info.value.message == "sku_id: The selected sku id is invalid."
        assert exc_info.value.details == {"sku_id": 9999}

    def test_attribute_rules(self, make_cart, seed):
        cart = make_cart(attributes=JsonAttributes(CakeAttributes))

        with pytest.raises(ItemValidationException) as exc_info:
            cart.add_item(seed["CAKE-1"].id, 1, {"message": "x" * 50})
        assert exc_info.value.message.startswith("message:")

        item = cart.add_item(seed["CAKE-1"].id, 1, {"message": "Hi"})
        assert item.attributes == {"message": "Hi", "candles": 0}

    def test_validating_listener_can_reject(self, make_cart, seed, events):
        def only_one_cake(cart, data):
            if cart.live_items:
                raise ItemValidationException("quantity: Only one item per cart.")

        events.listen("validating_item", only_one_cake)
        cart = make_cart()
        cart.add_item(seed["CAKE-1"].id, 1)

        with pytest.raises(ItemValidationException):
            cart.add_item(seed["CARD-1"].id, 1)

    def test_adding_item_cancel(self, make_cart, seed, events):
        events.listen("adding_item", lambda item: Outcome.CANCEL)
        cart = make_cart()

        item = cart.add_item(seed["CAKE-1"].id, 1)

        assert item is not None
        assert cart.count() == 0


class TestRemoveItem:

    def test_remove_without_save_keeps_storage(self, saved_cart, session):
        item_id = saved_cart.cart.items[0].id

        saved_cart.remove_item(item_id)

        assert not saved_cart.has_item(item_id)
        assert saved_cart.calculate_subtotal() == Decimal("0")
        assert count(session, ItemRow) == 1

    def test_remove_then_save_deletes_dependents(self, saved_cart, session):
        assert count(session, ItemAttributesRow) == 1
        assert count(session, ConditionRow) == 2

        saved_cart.remove_item(saved_cart.cart.items[0].id)
        saved_cart.save()

        assert count(session, ItemRow) == 0
        assert count(session, ItemAttributesRow) == 0
        # Only the cart-level tax condition remains
        assert count(session, ConditionRow) == 1
        assert saved_cart.cart.items == []

    def test_removing_items_cancel(self, saved_cart, events):
        events.listen("removing_items", lambda cart, ids: Outcome.CANCEL)
        item_id = saved_cart.cart.items[0].id

        saved_cart.remove_item(item_id)

        assert saved_cart.has_item(item_id)


# ============================================================================
# Conditions
# ============================================================================

class TestConditions:

    def test_apply_by_name_id_and_object(self, make_cart, seed):
        cart = make_cart()
        tax_type = cart.catalog.by_name("sales_tax")

        assert cart.apply_condition_type("sales_tax") is not None
        assert cart.apply_condition_type(tax_type.id) is not None
        assert cart.apply_condition_type(tax_type) is not None
        assert len(cart.cart.conditions) == 3

    def test_unknown_type_returns_none(self, make_cart, seed):
        assert make_cart().apply_condition_type("no_such_type") is None

    def test_validators_respected(self, make_cart, seed):
        cart = make_cart()
        item = cart.add_item(seed["CAKE-1"].id, 2)

        assert cart.apply_condition_type("bulk_discount", item) is None
        assert cart.apply_condition_type("never") is None
        assert item.conditions == []

    def test_ignore_condition_validation(self, make_cart, seed, settings):
        settings.IGNORE_CONDITION_VALIDATION = True
        cart = make_cart()

        assert cart.apply_condition_type("never") is not None

    def test_apply_conditions(self, make_cart, seed):
        cart = make_cart()
        cake = cart.add_item(seed["CAKE-1"].id, 3)
        card = cart.add_item(seed["CARD-1"].id, 1)

        cart.apply_conditions()

        assert cart.has_condition("sales_tax")
        assert {c.name for c in cake.conditions} == {"bulk_discount", "coupon", "gift_wrap"}
        assert {c.name for c in card.conditions} == {"coupon"}

    def test_remove_condition_is_immediate(self, saved_cart, session):
        tax = saved_cart.get_condition("sales_tax")

        saved_cart.remove_condition(tax.id)

        assert not saved_cart.has_condition("sales_tax")
        assert session.get(ConditionRow, tax.id) is None
        assert count(session, ConditionRow) == 1

    def test_remove_condition_failure_rolls_back(self, saved_cart, session, monkeypatch):
        tax = saved_cart.get_condition("sales_tax")

        def boom():
            raise RuntimeError("connection lost")

        monkeypatch.setattr(session, "commit", boom)

        with pytest.raises(CartSaveException) as exc_info:
            saved_cart.remove_condition(tax.id)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        monkeypatch.undo()
        assert saved_cart.has_condition("sales_tax")
        assert session.get(ConditionRow, tax.id) is not None
        assert count(session, ConditionRow) == 2

    def test_remove_item_condition(self, saved_cart, session):
        item = saved_cart.cart.items[0]
        coupon = item.conditions[0]

        saved_cart.remove_condition(coupon.id)

        assert item.conditions == []
        assert session.get(ConditionRow, coupon.id) is None


class TestClear:

    @pytest.fixture
    def cart(self, saved_cart):
        return saved_cart

    def test_clear(self, cart, session):
        cart.clear()
        cart.save()

        assert cart.count() == 0
        assert cart.cart.conditions == []
        assert count(session, ItemRow) == 0
        assert count(session, ConditionRow) == 0
        # The cart itself stays
        assert count(session, CartRow) == 1

    def test_clear_items_keeps_cart_conditions(self, cart, session):
        cart.clear_items()
        cart.save()

        assert cart.count() == 0
        assert cart.has_condition("sales_tax")
        assert count(session, ConditionRow) == 1

    def test_clear_item_conditions(self, cart, session):
        cart.clear_item_conditions()
        cart.save()

        assert cart.count() == 1
        assert cart.cart.items[0].conditions == []
        assert cart.has_condition("sales_tax")

    def test_clear_cart_conditions(self, cart, session):
        cart.clear_cart_conditions()
        cart.save()

        assert not cart.has_condition("sales_tax")
        assert len(cart.cart.items[0].conditions) == 1

    def test_clearing_cancel(self, cart, events):
        events.listen("clearing", lambda c, scope: Outcome.CANCEL)

        cart.clear()

        assert cart.count() == 1


# ============================================================================
# Save pipeline
# ============================================================================

class TestSave:

    def test_round_trip(self, saved_cart, make_cart):
        reloaded = make_cart()

        assert reloaded.id == saved_cart.id
        assert reloaded.count() == 1
        item = reloaded.cart.items[0]
        assert item.quantity == 3
        assert item.attributes == {"message": "Happy birthday"}
        assert [c.name for c in item.conditions] == ["coupon"]
        assert reloaded.has_condition("sales_tax")
        assert reloaded.calculate_total() == saved_cart.calculate_total()

    def test_assigns_ids_after_commit(self, saved_cart):
        item = saved_cart.cart.items[0]

        assert saved_cart.id is not None
        assert item.id is not None
        assert item.attributes_id is not None
        assert all(c.id is not None for c in item.conditions)

    def test_update_quantity(self, saved_cart, make_cart):
        saved_cart.cart.items[0].quantity = 5
        saved_cart.save()

        assert make_cart().cart.items[0].quantity == 5

    def test_saving_cancel_writes_nothing(self, make_cart, seed, events, session):
        saved = []
        events.listen("saving", lambda cart: Outcome.CANCEL)
        events.listen("saved", lambda cart: saved.append(cart))
        cart = make_cart()
        cart.add_item(seed["CAKE-1"].id, 1)

        cart.save()

        assert cart.id is None
        assert count(session, CartRow) == 0
        assert saved == []

    def test_saving_cancel_keeps_stored_cart(self, saved_cart, make_cart, seed, events, session):
        cake = saved_cart.cart.items[0]
        card = saved_cart.add_item(seed["CARD-1"].id, 2)
        assert saved_cart.apply_condition_type("coupon", card) is not None
        assert saved_cart.apply_condition_type("gift_wrap", cake) is not None
        saved_cart.remove_item(cake.id)
        saved_cart.clear_cart_conditions()
        events.listen("saving", lambda cart: Outcome.CANCEL)

        saved_cart.save()

        assert count(session, CartRow) == 1
        assert count(session, ItemRow) == 1
        assert count(session, ItemAttributesRow) == 1
        assert count(session, ConditionRow) == 2

        stored = make_cart()
        assert [(i.id, i.sku.sku, i.quantity) for i in stored.cart.items] == [(cake.id, "CAKE-1", 3)]
        assert [c.name for c in stored.cart.items[0].conditions] == ["coupon"]
        assert [c.name for c in stored.cart.conditions] == ["sales_tax"]
        # Queued changes are still pending in memory
        assert card.id is None
        assert cake.pending_delete

    def test_failure_rolls_back(self, make_cart, seed, session, monkeypatch):
        cart = make_cart()
        item = cart.add_item(seed["CAKE-1"].id, 1, {"message": "x"})

        def boom(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(cart.cart_repo, "save_item", boom)

        with pytest.raises(CartSaveException) as exc_info:
            cart.save()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.details == {"session": "user-1", "instance": "cart"}
        assert count(session, CartRow) == 0
        assert count(session, ItemAttributesRow) == 0
        # In-memory state untouched
        assert cart.id is None
        assert item.id is None
        assert item.attributes_id is None
        assert cart.count() == 1

    def test_saved_event(self, make_cart, seed, events):
        saved = []
        events.listen("saved", lambda cart: saved.append(cart.id))
        cart = make_cart()

        cart.save()

        assert saved == [cart.id]

    def test_conditions_not_persistent(self, make_cart, seed, settings, session):
        settings.CONDITIONS_PERSISTENT = False
        cart = make_cart()
        cart.add_item(seed["CAKE-1"].id, 1)
        cart.apply_condition_type("sales_tax")

        cart.save()

        assert count(session, ItemRow) == 1
        assert count(session, ConditionRow) == 0

    def test_sessions_and_instances(self, make_cart, seed, session):
        from shopping_cart.services.cart_service import ShoppingCart

        make_cart("alice", "cart").save()
        make_cart("alice", "wishlist").save()
        make_cart("bob", "cart").save()

        assert ShoppingCart.list_sessions(session) == ["alice", "bob"]
        assert ShoppingCart.list_instances(session, "alice") == ["cart", "wishlist"]

    def test_default_identity(self, session, seed, settings):
        from shopping_cart.services.cart_service import ShoppingCart

        cart = ShoppingCart(session, settings=settings)

        assert cart.session == "C97ROP6UDdemJu8M"
        assert cart.instance == "cart"


class TestExport:

    def test_to_dict(self, saved_cart):
        data = saved_cart.to_dict()

        assert data["items"][0]["sku"] == "CAKE-1"
        assert data["items"][0]["conditions"][0]["name"] == "coupon"
        assert data["conditions"][0]["category"] == "tax"
