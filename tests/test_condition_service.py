"""
Tests for the condition application engine, the predicate registry and the
event dispatcher it fires through.
"""

from decimal import Decimal

import pytest

from shopping_cart.core.events import EventDispatcher, Outcome
from shopping_cart.core.exceptions import ConfigurationException
from shopping_cart.domain.cart import Cart, Item, ItemType, Sku
from shopping_cart.domain.conditions import (
    CartOwner,
    ConditionCatalog,
    ConditionCategory,
    ConditionType,
    ConditionValidator,
    ItemOwner,
)
from shopping_cart.domain.predicates import PredicateRegistry, parse_reference
from shopping_cart.services.condition_service import ConditionService

FEE = ConditionCategory(name="fee", id=1)


def make_type(name: str, *validators: str, type_id: int | None = None) -> ConditionType:
    return ConditionType(
        name=name,
        category=FEE,
        value=Decimal("1.00"),
        validators=[ConditionValidator(v) for v in validators],
        id=type_id,
    )


def make_item(quantity: int = 1, item_type: str = "cake", price: str = "10.00") -> Item:
    return Item(sku=Sku("S-1", Decimal(price), ItemType(item_type, 1), 1), quantity=quantity)


@pytest.fixture
def events():
    return EventDispatcher()


@pytest.fixture
def service(events):
    return ConditionService(events)


@pytest.fixture
def cart():
    cart = Cart(session="s", instance="cart")
    cart.items.append(make_item(quantity=2))
    return cart


class TestValidation:

    def test_type_without_validators_passes(self, service, cart):
        assert service.validate(make_type("free"), cart) is True

    def test_all_validators_must_pass(self, service, cart):
        item = cart.items[0]
        assert service.validate(make_type("t", "is_item", "min_quantity:2"), item) is True
        assert service.validate(make_type("t", "is_item", "min_quantity:3"), item) is False
        assert service.validate(make_type("t", "is_cart", "min_quantity:2"), item) is False

    def test_unknown_predicate_raises(self, service, cart):
        with pytest.raises(ConfigurationException) as exc_info:
            service.validate(make_type("t", "no_such_rule"), cart)

        assert "no_such_rule" in exc_info.value.message


class TestApplyConditionType:

    def test_cart_owner(self, service, cart):
        condition = service.apply_condition_type(make_type("t"), cart)

        assert isinstance(condition.owner, CartOwner)
        assert condition.is_cart_condition
        assert cart.conditions == [condition]

    def test_item_owner(self, service, cart):
        item = cart.items[0]
        condition = service.apply_condition_type(make_type("t"), item)

        assert isinstance(condition.owner, ItemOwner)
        assert condition.owner.item is item
        assert item.conditions == [condition]
        assert cart.conditions == []

    def test_failing_validator_returns_none(self, service, cart):
        result = service.apply_condition_type(make_type("t", "never"), cart)

        assert result is None
        assert cart.conditions == []

    def test_skip_validation(self, service, cart):
        assert service.apply_condition_type(make_type("t", "never"), cart, validate=False) is not None

    def test_cart_event_can_cancel(self, events, service, cart):
        seen = []

        def veto(condition):
            seen.append(condition)
            return Outcome.CANCEL

        events.listen("adding_cart_condition", veto)

        assert service.apply_condition_type(make_type("t"), cart) is None
        assert cart.conditions == []
        assert len(seen) == 1

    def test_item_event_can_cancel(self, events, service, cart):
        events.listen("adding", lambda condition: Outcome.CANCEL)
        item = cart.items[0]

        assert service.apply_condition_type(make_type("t"), item) is None
        assert item.conditions == []
        # Cart-level application uses a different event
        assert service.apply_condition_type(make_type("t"), cart) is not None


class TestApplyAll:

    def test_tries_cart_and_every_item(self, service, cart):
        cart.items.append(make_item(item_type="card"))
        catalog = ConditionCatalog([
            make_type("cart_only", "is_cart", type_id=1),
            make_type("cakes", "item_type:cake", "is_item", type_id=2),
        ])

        results = service.apply_all_condition_types(cart, catalog)

        # (type, target) order: cart, item 1, item 2 for each type
        assert [r is not None for r in results] == [True, False, False, False, True, False]
        assert [c.name for c in cart.conditions] == ["cart_only"]
        assert [c.name for c in cart.items[0].conditions] == ["cakes"]
        assert cart.items[1].conditions == []

    def test_attempts_held_types_again(self, events, service, cart):
        fired = []
        events.listen("adding_cart_condition", lambda condition: fired.append(condition))
        catalog = ConditionCatalog([make_type("cart_only", "is_cart", type_id=1)])

        service.apply_all_condition_types(cart, catalog)
        results = service.apply_all_condition_types(cart, catalog)

        assert len(fired) == 2
        assert results[0] is fired[1]
        assert len(cart.conditions) == 2

    def test_listener_can_refuse_duplicates(self, events, service, cart):
        def once_per_cart(condition):
            owner = condition.owner.cart
            if any(c.type is condition.type for c in owner.live_conditions):
                return Outcome.CANCEL

        events.listen("adding_cart_condition", once_per_cart)
        catalog = ConditionCatalog([make_type("cart_only", "is_cart", type_id=1)])

        service.apply_all_condition_types(cart, catalog)
        results = service.apply_all_condition_types(cart, catalog)

        assert results == [None, None]
        assert len(cart.conditions) == 1

    def test_skips_pending_items(self, service, cart):
        cart.items[0].pending_delete = True
        catalog = ConditionCatalog([make_type("any", type_id=1)])

        results = service.apply_all_condition_types(cart, catalog)

        assert len(results) == 1
        assert cart.items[0].conditions == []


class TestPredicates:

    @pytest.mark.parametrize("reference,expected", [
        ("always", ("always", [])),
        ("min_quantity:3", ("min_quantity", ["3"])),
        ("item_type: cake , pastry", ("item_type", ["cake", "pastry"])),
    ])
    def test_parse_reference(self, reference, expected):
        assert parse_reference(reference) == expected

    def test_cart_aggregates(self, cart):
        cart.items.append(make_item(quantity=5, price="30.00"))
        registry = PredicateRegistry.with_defaults()

        assert registry.check("min_items:2", cart)
        assert not registry.check("min_items:3", cart)
        assert registry.check("min_quantity:7", cart)
        assert registry.check("max_quantity:7", cart)
        assert registry.check("min_subtotal:40", cart)
        assert not registry.check("min_subtotal:40.01", cart)
        assert registry.check("sku:S-1,S-2", cart)

    @pytest.mark.parametrize("reference", [
        "min_quantity",
        "min_quantity:abc",
        "min_items:1,2",
        "min_subtotal:ten",
    ])
    def test_bad_arguments_raise_configuration_error(self, cart, reference):
        registry = PredicateRegistry.with_defaults()

        with pytest.raises(ConfigurationException) as exc_info:
            registry.check(reference, cart)

        assert exc_info.value.details == {"reference": reference}
        assert exc_info.value.__cause__ is not None

    def test_validate_reference(self):
        registry = PredicateRegistry.with_defaults()

        registry.validate_reference("min_quantity:3")
        registry.validate_reference("item_type:cake,card")
        with pytest.raises(ConfigurationException):
            registry.validate_reference("min_quantity")
        with pytest.raises(ConfigurationException):
            registry.validate_reference("moon_phase:full")

    def test_stored_bad_reference_fails_application(self, service, cart):
        with pytest.raises(ConfigurationException):
            service.apply_condition_type(make_type("t", "min_quantity:abc"), cart.items[0])

        assert cart.items[0].conditions == []

    def test_min_items_is_cart_only(self, cart):
        registry = PredicateRegistry.with_defaults()
        assert not registry.check("min_items:1", cart.items[0])

    def test_register_decorator(self, cart):
        registry = PredicateRegistry()

        @registry.register("session_is")
        def session_is(target, name):
            return isinstance(target, Cart) and target.session == name

        assert "session_is" in registry
        assert registry.check("session_is:s", cart)
        assert not registry.check("session_is:other", cart)


class TestEventDispatcher:

    def test_proceeds_without_listeners(self, events):
        assert events.dispatch("anything", 1, 2) is Outcome.PROCEED

    def test_first_cancel_stops_dispatch(self, events):
        calls = []
        events.listen("saving", lambda cart: calls.append("first"))
        events.listen("saving", lambda cart: Outcome.CANCEL)
        events.listen("saving", lambda cart: calls.append("third"))

        assert events.dispatch("saving", object()) is Outcome.CANCEL
        assert calls == ["first"]

    def test_forget(self, events):
        events.listen("saving", lambda cart: Outcome.CANCEL)
        assert events.has_listeners("saving")

        events.forget("saving")

        assert not events.has_listeners("saving")
        assert events.dispatch("saving", object()) is Outcome.PROCEED
