"""Base error handling that is not tied to a particular validation run."""

from __future__ import annotations

import re
from textwrap import indent
from typing import TYPE_CHECKING, Any

from oaschema.core import NOT_SET
from oaschema.core.output import truncate_json

if TYPE_CHECKING:
    from oaschema.config import TruncationConfig


SCHEMA_OBJECT_URL = "https://spec.openapis.org/oas/v3.1.0#schema-object"


class OaSchemaError(Exception):
    """Base exception class for all oaschema errors."""


class SchemaAuthoringError(OaSchemaError):
    """The schema tree violates a structural rule of the Schema Object.

    These errors are raised while a schema is loaded, never while an instance is validated.
    """

    def __init__(self, message: str, pointer: str = "#", definition: Any = NOT_SET) -> None:
        self.message = message
        self.pointer = pointer
        self.definition = definition

    def __str__(self) -> str:
        return self.render()

    def render(self, config: TruncationConfig | None = None) -> str:
        from oaschema.config import TruncationConfig

        message = f"Invalid Schema Object at `{self.pointer}`"
        if self.definition is not NOT_SET:
            rendered = truncate_json(self.definition, config=config or TruncationConfig())
            message += f"\n\nProblematic definition:\n{indent(rendered, '    ')}"
        message += f"\n\nError details:\n    {self.message}\n\nSee: {SCHEMA_OBJECT_URL}"
        return message


class InvalidRegexPattern(SchemaAuthoringError):
    """Raised when a string pattern is not a valid regular expression."""

    @classmethod
    def from_re_error(cls, pattern: str, error: re.error, pointer: str) -> InvalidRegexPattern:
        return cls(f"Invalid regular expression. Pattern `{pattern}` is not recognized - `{error}`", pointer, pattern)


class ReferenceResolutionError(OaSchemaError):
    """A reference cannot be resolved."""

    def __init__(self, reference: str, details: str | None = None) -> None:
        self.reference = reference
        self.details = details

    def __str__(self) -> str:
        message = f"Reference `{self.reference}` cannot be resolved"
        if self.details:
            message += f": {self.details}"
        return message


class InstanceValidationFailure(AssertionError, OaSchemaError):
    """Raised on demand when an instance does not conform to its schema."""

    def __init__(self, errors: list) -> None:
        self.errors = errors

    def __str__(self) -> str:
        lines = [f"{len(self.errors)} validation error(s)"]
        for error in self.errors:
            lines.append(f"  - {error}")
        return "\n".join(lines)


def format_reference_cycle(reference: str, cycle: list[str]) -> str:
    if len(cycle) == 1:
        return f"Schema `{reference}` has a required reference to itself"
    cycle_str = " -> ".join(cycle + [cycle[0]])
    return f"Schema `{reference}` has required references forming a cycle: {cycle_str}"
