from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from oaschema.core.errors import InstanceValidationFailure

if TYPE_CHECKING:
    from oaschema.schema.nodes import SchemaNode


class ErrorKind(str, enum.Enum):
    """Category of a validation error."""

    # Ordinary keyword mismatch
    INSTANCE = "instance"
    # A `$ref` or discriminator `mapping` target could not be resolved
    REFERENCE = "reference"
    # Discriminator value does not select any known schema
    DISCRIMINATOR = "discriminator"
    # Nesting exceeded `max_depth`
    DEPTH = "depth"


@dataclass(frozen=True)
class ValidationError:
    """A single failed keyword."""

    # JSON Pointer into the instance, "" for the root
    instance_path: str
    # JSON Pointer built from the keywords traversed from the validation root
    schema_path: str
    reason: str
    keyword: str
    kind: ErrorKind = ErrorKind.INSTANCE

    def __str__(self) -> str:
        location = self.instance_path or "<root>"
        return f"{location}: {self.reason} (at {self.schema_path or '#'})"


@dataclass
class Annotations:
    """What successful applicators found out about an instance."""

    properties: set[str] = field(default_factory=set)
    items: set[int] = field(default_factory=set)
    # Variants chosen by discriminators, keyed by instance path
    selected: dict[str, SchemaNode] = field(default_factory=dict)

    def merge(self, other: Annotations) -> None:
        self.properties |= other.properties
        self.items |= other.items
        self.selected.update(other.selected)


@dataclass
class ValidationResult:
    """Outcome of validating one instance against one schema."""

    errors: list[ValidationError]
    annotations: Annotations
    # Variants chosen by discriminators, keyed by instance path
    selected: dict[str, SchemaNode] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.valid

    @property
    def kinds(self) -> set[ErrorKind]:
        return {error.kind for error in self.errors}

    def raise_for_errors(self) -> None:
        if self.errors:
            raise InstanceValidationFailure(list(self.errors))
