"""Checkers for the `format` keyword.

Formats are annotations unless format assertion is enabled in `ValidationConfig`.
Standard JSON Schema formats come from `jsonschema`, on top of them go the Open API ones.
Unknown formats always pass.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from typing import Any

import jsonschema

FormatCheckerFunction = Callable[[Any], bool]

INT32_RANGE = (-(2**31), 2**31 - 1)
INT64_RANGE = (-(2**63), 2**63 - 1)


def _build_format_checker() -> jsonschema.FormatChecker:
    checker = jsonschema.FormatChecker()
    # Use a recent JSON Schema format checker to get most of formats checked for older drafts as well
    standard = jsonschema.Draft202012Validator.FORMAT_CHECKER
    for name in standard.checkers:
        checker.checkers[name] = standard.checkers[name]
    return checker


FORMAT_CHECKER = _build_format_checker()


def register_string_format(name: str, checker: FormatCheckerFunction) -> None:
    """Register a custom checker for the `format` keyword.

    Args:
        name: Format name that matches the "format" keyword in your API schema
        checker: Callable receiving a value and returning whether it conforms

    """
    if not isinstance(name, str):
        raise TypeError(f"name must be of type {str}, not {type(name)}")
    if not callable(checker):
        raise TypeError(f"checker must be callable, got {type(checker)}")
    FORMAT_CHECKER.checks(name)(checker)


def unregister_string_format(name: str) -> None:
    """Remove format checker from the registry."""
    try:
        del FORMAT_CHECKER.checkers[name]
    except KeyError as exc:
        raise ValueError(f"Unknown Open API format: {name}") from exc


def check_format(name: str, value: Any) -> bool:
    return FORMAT_CHECKER.conforms(value, name)


@FORMAT_CHECKER.checks("byte", raises=(binascii.Error, ValueError))
def _is_byte(value: Any) -> bool:
    if not isinstance(value, str):
        return True
    base64.b64decode(value, validate=True)
    return True


def _in_range(bounds: tuple[int, int]) -> FormatCheckerFunction:
    def check(value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return True
        return bounds[0] <= value <= bounds[1]

    return check


FORMAT_CHECKER.checks("int32")(_in_range(INT32_RANGE))
FORMAT_CHECKER.checks("int64")(_in_range(INT64_RANGE))
