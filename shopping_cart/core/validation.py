"""
Validation helpers shared by the cart schemas.

Field rules themselves are expressed as pydantic schemas (see
``shopping_cart.schemas``). This module adds:

  - ``first_error``: reduce a pydantic ``ValidationError`` to the first
    failing rule's message, the form surfaced to cart callers.
  - ``if_rule``: a conditional rule. Compare two values, then require a
    nested rule when the comparison holds (``then``) or fails (``otherwise``).
"""
import operator as op
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ValidationError

from shopping_cart.core.exceptions import ShoppingCartException

Rule = Callable[[], "str | None"]

OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": op.lt,
    "<=": op.le,
    ">": op.gt,
    ">=": op.ge,
    "!=": op.ne,
    "<>": op.ne,
    "==": op.eq,
    "=": op.eq,
    # Strict equality: same type and same value
    "===": lambda a, b: type(a) is type(b) and a == b,
}


def _resolve(value: Any, data: Mapping[str, Any]) -> Any:
    """
    Field names resolve to the field's value; the strings 'true', 'false'
    and 'null' (any case) become their Python equivalents.
    """
    if isinstance(value, str):
        if value in data:
            return data[value]
        lowered = value.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        if lowered == "null":
            return None
    return value


def if_rule(
    data: Mapping[str, Any],
    left: Any,
    right: Any = None,
    operator: str = "==",
    then: Rule | None = None,
    otherwise: Rule | None = None,
) -> str | None:
    """
    Evaluate ``left <operator> right`` and apply the matching nested rule.

    ``left`` / ``right`` may name a field in ``data``. Nested rules return an
    error message, or None when they pass.

    Returns:
        The first error message, or None if the rule passes.

    Rules:
      - expression true  -> run ``then`` if given, else pass
      - expression false -> run ``otherwise`` if given;
                            pass if only ``then`` was given (the expression
                            merely gated it);
                            fail if neither was given
    """
    if operator not in OPERATORS:
        raise ValueError(f"Unsupported operator for 'if' rule: {operator}")

    lhs = _resolve(left, data)
    rhs = _resolve(right, data)

    if OPERATORS[operator](lhs, rhs):
        return then() if then is not None else None

    if otherwise is not None:
        return otherwise()
    if then is None:
        return f"If expression evaluated to false: {lhs} {operator} {rhs}."
    return None


def between(value: Any, low: Any, high: Any, field: str = "value") -> Rule:
    """Nested rule: ``low <= value <= high``."""

    def rule() -> str | None:
        if value is None or not (low <= value <= high):
            return f"The {field} must be between {low} and {high}."
        return None

    return rule


def first_error(exc: ValidationError) -> str:
    """
    Return the first failing rule's message from a pydantic ValidationError,
    prefixed with the offending field when there is one.
    """
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    msg = err.get("msg", "Invalid value")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {msg}" if loc else msg


def validate_payload(
    schema: type[BaseModel],
    data: Mapping[str, Any],
    error_cls: type[ShoppingCartException],
) -> BaseModel:
    """
    Validate ``data`` against ``schema``.

    Raises:
        error_cls: carrying the first failing rule's message.
    """
    try:
        return schema.model_validate(dict(data))
    except ValidationError as e:
        raise error_cls(first_error(e), details={"errors": e.error_count()}) from e
