import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Listener verdict. CANCEL stops the operation in progress without error."""
    PROCEED = "proceed"
    CANCEL = "cancel"


class ClearScope(Enum):
    """What a clear operation removes."""
    CART = "cart"
    ITEMS = "items"
    ITEM_CONDITIONS = "item_conditions"
    CART_CONDITIONS = "cart_conditions"


Listener = Callable[..., "Outcome | None"]


class EventDispatcher:
    """
    Synchronous event dispatcher for cart lifecycle events.

    Listeners are called in registration order with the dispatched payload.
    A listener returning ``Outcome.CANCEL`` halts dispatch, and the cart
    operation that fired the event is abandoned. Any other return value
    (including ``None``) means proceed.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def listen(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def forget(self, event: str) -> None:
        self._listeners.pop(event, None)

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def dispatch(self, event: str, *payload: Any) -> Outcome:
        for listener in list(self._listeners.get(event, ())):
            if listener(*payload) is Outcome.CANCEL:
                logger.info(f"Event '{event}' cancelled by {getattr(listener, '__name__', listener)!r}")
                return Outcome.CANCEL
        logger.debug(f"Event '{event}' dispatched")
        return Outcome.PROCEED
