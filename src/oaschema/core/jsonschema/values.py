"""Operations over decoded JSON values.

Instances and schema literals (`enum`, `const`, `default`) are plain Python objects produced by a JSON / YAML
decoder. Nothing here mutates them.
"""

from __future__ import annotations

import math
from decimal import Decimal
from fractions import Fraction
from typing import Any


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def matches_type(value: Any, tag: str) -> bool:
    """Whether the value belongs to the given JSON Schema primitive type."""
    if tag == "integer":
        return is_integer(value)
    if tag == "number":
        return is_number(value)
    if tag == "string":
        return isinstance(value, str)
    if tag == "object":
        return isinstance(value, dict)
    if tag == "array":
        return isinstance(value, list)
    if tag == "boolean":
        return isinstance(value, bool)
    if tag == "null":
        return value is None
    return False


def equal(left: Any, right: Any) -> bool:
    """Structural equality as defined by JSON Schema.

    Numbers compare by value (`1 == 1.0`), while booleans never equal numbers.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(equal(a, b) for a, b in zip(left, right))
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(equal(value, right[key]) for key, value in left.items())
    if type(left) is not type(right):
        return False
    return left == right


def freeze(value: Any) -> Any:
    """Hashable representation of a value, consistent with `equal`."""
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("boolean", value)
    if isinstance(value, int):
        return ("number", value)
    if isinstance(value, float):
        if value.is_integer():
            return ("number", int(value))
        return ("number", value)
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, list):
        return ("array", tuple(freeze(item) for item in value))
    if isinstance(value, dict):
        return ("object", frozenset((key, freeze(item)) for key, item in value.items()))
    return ("other", repr(value))


def find_duplicate(items: list) -> tuple[int, int] | None:
    """Indices of the first pair of equal items, if any."""
    seen: dict[Any, int] = {}
    for idx, item in enumerate(items):
        key = freeze(item)
        previous = seen.get(key)
        if previous is not None:
            return previous, idx
        seen[key] = idx
    return None


def to_fraction(value: int | float) -> Fraction:
    # The shortest repr is what the document author wrote, e.g. `0.1` instead of its binary approximation
    if isinstance(value, int):
        return Fraction(value)
    return Fraction(Decimal(repr(value)))


def is_multiple_of(value: int | float, divisor: int | float) -> bool:
    if isinstance(value, float) and not math.isfinite(value):
        return False
    if isinstance(value, int) and isinstance(divisor, int):
        return value % divisor == 0
    quotient = to_fraction(value) / to_fraction(divisor)
    return quotient.denominator == 1
