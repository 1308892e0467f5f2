"""Compiled Schema Object tree.

Nodes are immutable and safe to share between threads. A `$ref` is kept as a string and is resolved lazily during
validation, which keeps cyclic schemas finite.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

import attr

from oaschema.core import NOT_SET
from oaschema.core.jsonschema.values import matches_type


@dataclass(frozen=True)
class SingleType:
    """`type: string`."""

    name: str

    __slots__ = ("name",)

    @property
    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def accepts(self, value: Any) -> bool:
        return matches_type(value, self.name)


@dataclass(frozen=True)
class TypeUnion:
    """`type: [string, "null"]`."""

    names: tuple[str, ...]

    __slots__ = ("names",)

    def accepts(self, value: Any) -> bool:
        return any(matches_type(value, name) for name in self.names)


TypeSpec = Union[SingleType, TypeUnion]


@dataclass(frozen=True)
class SingleItems:
    """`items` holding one schema that applies to every element."""

    schema: SchemaNode

    __slots__ = ("schema",)


@dataclass(frozen=True)
class TupleItems:
    """Positional `items` (array form or `prefixItems`)."""

    schemas: tuple[SchemaNode, ...]
    # "items" or "prefixItems"
    keyword: str

    __slots__ = ("schemas", "keyword")


Items = Union[SingleItems, TupleItems]


@dataclass(frozen=True)
class PatternProperty:
    source: str
    regex: re.Pattern
    schema: SchemaNode

    __slots__ = ("source", "regex", "schema")


@dataclass(frozen=True)
class Discriminator:
    """Discriminator Object."""

    property_name: str
    mapping: Mapping[str, str]
    extensions: Mapping[str, Any]

    __slots__ = ("property_name", "mapping", "extensions")


@dataclass(frozen=True)
class Xml:
    """XML Object. Carried as metadata, validation never looks at it."""

    name: str | None
    namespace: str | None
    prefix: str | None
    attribute: bool
    wrapped: bool
    extensions: Mapping[str, Any]

    __slots__ = ("name", "namespace", "prefix", "attribute", "wrapped", "extensions")


@dataclass(frozen=True)
class ExternalDocs:
    url: str
    description: str | None
    extensions: Mapping[str, Any]

    __slots__ = ("url", "description", "extensions")


@attr.s(slots=True, frozen=True, eq=False, repr=False)
class SchemaNode:
    """A single Schema Object.

    Identity matters: nodes compare by identity, since equal-looking subschemas at different locations are
    distinct nodes.
    """

    # JSON Pointer of the definition inside its document
    pointer: str = attr.ib(default="#")
    # Set for `true` / `false` schemas
    boolean: Optional[bool] = attr.ib(default=None)
    id: Optional[str] = attr.ib(default=None)
    ref: Optional[str] = attr.ib(default=None)
    recursive_ref: Optional[str] = attr.ib(default=None)

    type: Optional[TypeSpec] = attr.ib(default=None)
    enum: Optional[tuple] = attr.ib(default=None)
    const: Any = attr.ib(default=NOT_SET)

    multiple_of: Optional[Union[int, float]] = attr.ib(default=None)
    minimum: Optional[Union[int, float]] = attr.ib(default=None)
    maximum: Optional[Union[int, float]] = attr.ib(default=None)
    # Either a boolean (OAS 3.0) that makes `minimum` / `maximum` strict, or a number (OAS 3.1)
    exclusive_minimum: Optional[Union[bool, int, float]] = attr.ib(default=None)
    exclusive_maximum: Optional[Union[bool, int, float]] = attr.ib(default=None)

    min_length: Optional[int] = attr.ib(default=None)
    max_length: Optional[int] = attr.ib(default=None)
    pattern: Optional[re.Pattern] = attr.ib(default=None)
    format: Optional[str] = attr.ib(default=None)

    min_items: Optional[int] = attr.ib(default=None)
    max_items: Optional[int] = attr.ib(default=None)
    unique_items: bool = attr.ib(default=False)
    contains: Optional[SchemaNode] = attr.ib(default=None)
    min_contains: Optional[int] = attr.ib(default=None)
    max_contains: Optional[int] = attr.ib(default=None)
    items: Optional[Items] = attr.ib(default=None)
    additional_items: Optional[SchemaNode] = attr.ib(default=None)
    unevaluated_items: Optional[SchemaNode] = attr.ib(default=None)

    min_properties: Optional[int] = attr.ib(default=None)
    max_properties: Optional[int] = attr.ib(default=None)
    required: tuple[str, ...] = attr.ib(default=())
    dependent_required: Mapping[str, tuple[str, ...]] = attr.ib(factory=dict)
    dependent_schemas: Mapping[str, SchemaNode] = attr.ib(factory=dict)
    properties: Mapping[str, SchemaNode] = attr.ib(factory=dict)
    pattern_properties: tuple[PatternProperty, ...] = attr.ib(default=())
    additional_properties: Optional[SchemaNode] = attr.ib(default=None)
    unevaluated_properties: Optional[SchemaNode] = attr.ib(default=None)
    property_names: Optional[SchemaNode] = attr.ib(default=None)

    all_of: tuple[SchemaNode, ...] = attr.ib(default=())
    any_of: tuple[SchemaNode, ...] = attr.ib(default=())
    one_of: tuple[SchemaNode, ...] = attr.ib(default=())
    not_: Optional[SchemaNode] = attr.ib(default=None)
    if_: Optional[SchemaNode] = attr.ib(default=None)
    then: Optional[SchemaNode] = attr.ib(default=None)
    else_: Optional[SchemaNode] = attr.ib(default=None)

    discriminator: Optional[Discriminator] = attr.ib(default=None)
    xml: Optional[Xml] = attr.ib(default=None)
    external_docs: Optional[ExternalDocs] = attr.ib(default=None)

    title: Optional[str] = attr.ib(default=None)
    description: Optional[str] = attr.ib(default=None)
    default: Any = attr.ib(default=NOT_SET)
    examples: Optional[tuple] = attr.ib(default=None)
    example: Any = attr.ib(default=NOT_SET)
    deprecated: bool = attr.ib(default=False)
    read_only: bool = attr.ib(default=False)
    write_only: bool = attr.ib(default=False)
    # `x-*` keys
    extensions: Mapping[str, Any] = attr.ib(factory=dict)

    def __repr__(self) -> str:
        if self.boolean is not None:
            return f"<SchemaNode {self.pointer}: {str(self.boolean).lower()}>"
        return f"<SchemaNode {self.pointer}>"

    @property
    def has_const(self) -> bool:
        return self.const is not NOT_SET

    @property
    def reference(self) -> str | None:
        return self.ref if self.ref is not None else self.recursive_ref

    @property
    def combinator(self) -> tuple[str, tuple[SchemaNode, ...]] | None:
        """The `oneOf` / `anyOf` set a discriminator selects from."""
        if self.one_of:
            return "oneOf", self.one_of
        if self.any_of:
            return "anyOf", self.any_of
        return None


TRUE = SchemaNode(boolean=True)
FALSE = SchemaNode(boolean=False)
