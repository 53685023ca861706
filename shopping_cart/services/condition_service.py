import logging

from shopping_cart.core.events import EventDispatcher, Outcome
from shopping_cart.domain.cart import Cart, Item
from shopping_cart.domain.conditions import (
    CartOwner,
    Condition,
    ConditionCatalog,
    ConditionType,
)
from shopping_cart.domain.predicates import PredicateRegistry

logger = logging.getLogger(__name__)


class ConditionService:
    """
    Condition application engine.

    Responsibilities:
      - run a condition type's validators against a cart or an item
      - build the Condition with the right owner
      - let 'adding_cart_condition' / 'adding' listeners cancel the attachment
      - attach the condition to its target

    A rejected application (failing validator or cancelled event) is not an
    error: the result is simply None and the target is left unchanged.
    """

    def __init__(self, events: EventDispatcher, predicates: PredicateRegistry | None = None):
        self.events = events
        self.predicates = predicates or PredicateRegistry.with_defaults()

    def validate(self, condition_type: ConditionType, target: Cart | Item) -> bool:
        """All validators must pass; a type without validators always passes."""
        return all(
            self.predicates.check(v.validator, target)
            for v in condition_type.validators
        )

    def apply_condition_type(
        self,
        condition_type: ConditionType,
        target: Cart | Item,
        validate: bool = True,
    ) -> Condition | None:
        if validate and not self.validate(condition_type, target):
            logger.debug(f"Condition type '{condition_type.name}' rejected by validators")
            return None

        condition = Condition(type=condition_type, owner=target.as_owner())
        event = "adding_cart_condition" if isinstance(condition.owner, CartOwner) else "adding"
        if self.events.dispatch(event, condition) is Outcome.CANCEL:
            return None

        target.conditions.append(condition)
        logger.debug(f"Condition type '{condition_type.name}' applied to {type(target).__name__}")
        return condition

    def apply_all_condition_types(
        self,
        cart: Cart,
        catalog: ConditionCatalog,
        validate: bool = True,
    ) -> list[Condition | None]:
        """
        Try every known condition type on the cart and on each of its items.

        Each attempt goes through validation and the adding events, even for
        a target that already holds the type.
        """
        results: list[Condition | None] = []
        for condition_type in catalog:
            for target in [cart, *cart.live_items]:
                results.append(self.apply_condition_type(condition_type, target, validate))
        return results
