"""Equality, ordering, null and boolean check primitives.

Each check returns None when it passes and a failure message when it does
not. Entry points turn messages into reported failures.
"""

import operator
from enum import Enum
from typing import Any, Callable, Optional

from vertector_rxtest.config import get_config


class Comparison(Enum):
    """Comparison kinds understood by check_compare."""

    EQUAL = ("==", "is not equal to", operator.eq)
    NOT_EQUAL = ("!=", "is equal to", operator.ne)
    GREATER_THAN = (">", "is not greater than", operator.gt)
    GREATER_THAN_OR_EQUAL = (">=", "is not greater than or equal to", operator.ge)
    LESS_THAN = ("<", "is not less than", operator.lt)
    LESS_THAN_OR_EQUAL = ("<=", "is not less than or equal to", operator.le)

    def __init__(self, symbol: str, mismatch: str, op: Callable[[Any, Any], Any]) -> None:
        self.symbol = symbol
        self.mismatch = mismatch
        self.op = op


def render(value: Any) -> str:
    """Render a value for a failure message, truncated to max_repr_length."""
    limit = get_config().max_repr_length
    try:
        text = repr(value)
    except Exception as e:
        text = f"<{type(value).__name__} repr failed: {type(e).__name__}>"

    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def check_compare(actual: Any, comparison: Comparison, expected: Any) -> Optional[str]:
    """Check `actual <comparison> expected`.

    Args:
        actual: Value received from the stream
        comparison: Ordering or equality to apply
        expected: Value to compare against

    Returns:
        None on pass, failure message otherwise
    """
    try:
        passed = bool(comparison.op(actual, expected))
    except Exception as e:
        return (
            f"({render(actual)}) cannot be compared {comparison.symbol} "
            f"({render(expected)}): {type(e).__name__}: {e}"
        )

    if passed:
        return None
    return f"({render(actual)}) {comparison.mismatch} ({render(expected)})"


def check_nil(actual: Any) -> Optional[str]:
    if actual is None:
        return None
    return f"({render(actual)}) is not None"


def check_not_nil(actual: Any) -> Optional[str]:
    if actual is not None:
        return None
    return "value is None"


def check_true(result: Any, actual: Any) -> Optional[str]:
    """Check a predicate result computed for `actual` is truthy."""
    if result:
        return None
    return f"predicate is not true for ({render(actual)})"


def check_false(result: Any, actual: Any) -> Optional[str]:
    """Check a predicate result computed for `actual` is falsy."""
    if not result:
        return None
    return f"predicate is not false for ({render(actual)})"


def type_names(expected_type: Any) -> str:
    """Render a type or tuple of types the way failure messages name them."""
    if isinstance(expected_type, tuple):
        return " | ".join(type_names(t) for t in expected_type)
    return getattr(expected_type, "__qualname__", repr(expected_type))


def errors_equal(actual: BaseException, expected: BaseException) -> bool:
    """Compare two errors by value.

    Classes overriding __eq__ are compared with ==; plain exceptions are
    equal when their classes and args match.
    """
    if type(expected).__eq__ is not BaseException.__eq__:
        return bool(actual == expected)
    return type(actual) is type(expected) and actual.args == expected.args
