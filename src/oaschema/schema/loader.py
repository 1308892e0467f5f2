"""Compilation of raw Schema Objects into `SchemaNode` trees.

All structural checks happen here, so a tree that compiled successfully never makes the validator fail with an
exception.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from oaschema.core import NOT_SET
from oaschema.core.errors import InvalidRegexPattern, SchemaAuthoringError
from oaschema.core.jsonschema.keywords import ALL_KEYWORDS, is_extension
from oaschema.core.jsonschema.patterns import compile_pattern
from oaschema.core.jsonschema.types import ALL_TYPES, to_json_type_name
from oaschema.core.jsonschema.values import is_integer, is_number
from oaschema.core.output import escape_token
from oaschema.schema.nodes import (
    Discriminator,
    ExternalDocs,
    PatternProperty,
    SchemaNode,
    SingleItems,
    SingleType,
    TupleItems,
    TypeUnion,
    Xml,
)

if TYPE_CHECKING:
    from oaschema.config import ValidationConfig

logger = logging.getLogger(__name__)

# Locations holding named, reusable schemas. A discriminator may live there since such a schema can be an
# `allOf` base of other named schemas.
NAMED_DEFINITION_RE = re.compile(r"/(components/schemas|\$defs|definitions)/[^/]+$")

SINGLE_SCHEMA_KEYWORDS = (
    ("not", "not_"),
    ("if", "if_"),
    ("then", "then"),
    ("else", "else_"),
    ("contains", "contains"),
    ("additionalProperties", "additional_properties"),
    ("unevaluatedProperties", "unevaluated_properties"),
    ("additionalItems", "additional_items"),
    ("unevaluatedItems", "unevaluated_items"),
    ("propertyNames", "property_names"),
)
COUNT_KEYWORDS = (
    ("minLength", "min_length"),
    ("maxLength", "max_length"),
    ("minItems", "min_items"),
    ("maxItems", "max_items"),
    ("minContains", "min_contains"),
    ("maxContains", "max_contains"),
    ("minProperties", "min_properties"),
    ("maxProperties", "max_properties"),
)
COMBINATOR_KEYWORDS = (("allOf", "all_of"), ("anyOf", "any_of"), ("oneOf", "one_of"))
FLAG_KEYWORDS = (("uniqueItems", "unique_items"), ("deprecated", "deprecated"), ("readOnly", "read_only"))
WRITE_ONLY_KEYWORDS = ("writeOnly", "x-writeOnly")
STRING_KEYWORDS = (("title", "title"), ("description", "description"), ("format", "format"))
REFERENCE_KEYWORDS = (("$ref", "ref"), ("$recursiveRef", "recursive_ref"), ("$id", "id"))


def join(pointer: str, *steps: str | int) -> str:
    return pointer + "".join(f"/{escape_token(str(step))}" for step in steps)


def load_schema(
    raw: Any,
    *,
    pointer: str = "#",
    config: ValidationConfig | None = None,
    arena: dict[str, SchemaNode] | None = None,
) -> SchemaNode:
    """Compile a raw Schema Object (already decoded from JSON / YAML).

    Raises `SchemaAuthoringError` if the schema is malformed.
    """
    return SchemaLoader(config=config, arena=arena).load(raw, pointer)


class SchemaLoader:
    """Compiles raw schemas and records every compiled node by its JSON Pointer."""

    __slots__ = ("config", "arena")

    def __init__(self, *, config: ValidationConfig | None = None, arena: dict[str, SchemaNode] | None = None) -> None:
        from oaschema.config import ValidationConfig

        self.config = config or ValidationConfig()
        self.arena = arena if arena is not None else {}

    def load(self, raw: Any, pointer: str = "#", *, in_combinator: bool = False) -> SchemaNode:
        if isinstance(raw, bool):
            node = SchemaNode(pointer=pointer, boolean=raw)
        elif isinstance(raw, dict):
            node = self._load_object(raw, pointer, in_combinator=in_combinator)
        else:
            raise SchemaAuthoringError(
                f"Expected JSON Schema (object or boolean), got {to_json_type_name(raw)}", pointer, raw
            )
        self.arena[pointer] = node
        return node

    def _load_object(self, raw: dict[str, Any], pointer: str, *, in_combinator: bool) -> SchemaNode:
        fields: dict[str, Any] = {"pointer": pointer}
        unknown = [key for key in raw if key not in ALL_KEYWORDS and not is_extension(key)]
        if unknown:
            logger.debug("Ignoring unknown keywords at %s: %s", pointer, ", ".join(unknown))

        for keyword, name in REFERENCE_KEYWORDS:
            if keyword in raw:
                fields[name] = _expect_string(raw, keyword, pointer)

        if "type" in raw:
            fields["type"] = self._load_type(raw, pointer)
        if "enum" in raw:
            enum = raw["enum"]
            if not isinstance(enum, list) or not enum:
                raise SchemaAuthoringError("`enum` must be a non-empty array", join(pointer, "enum"), enum)
            fields["enum"] = tuple(enum)
        if "const" in raw:
            fields["const"] = raw["const"]

        if "multipleOf" in raw:
            multiple_of = raw["multipleOf"]
            if not is_number(multiple_of) or multiple_of <= 0:
                raise SchemaAuthoringError(
                    f"`multipleOf` must be a number greater than 0, got {multiple_of!r}",
                    join(pointer, "multipleOf"),
                    raw,
                )
            fields["multiple_of"] = multiple_of
        for keyword, name in (("minimum", "minimum"), ("maximum", "maximum")):
            if keyword in raw:
                fields[name] = _expect_number(raw, keyword, pointer)
        for keyword, name in (("exclusiveMinimum", "exclusive_minimum"), ("exclusiveMaximum", "exclusive_maximum")):
            if keyword in raw:
                value = raw[keyword]
                if not isinstance(value, bool) and not is_number(value):
                    raise SchemaAuthoringError(
                        f"`{keyword}` must be a boolean or a number, got {to_json_type_name(value)}",
                        join(pointer, keyword),
                        raw,
                    )
                fields[name] = value
        for keyword, name in COUNT_KEYWORDS:
            if keyword in raw:
                fields[name] = _expect_count(raw, keyword, pointer)

        if "pattern" in raw:
            source = _expect_string(raw, "pattern", pointer)
            fields["pattern"] = _compile(source, join(pointer, "pattern"))
        for keyword, name in STRING_KEYWORDS:
            if keyword in raw:
                fields[name] = _expect_string(raw, keyword, pointer)
        for keyword, name in FLAG_KEYWORDS:
            if keyword in raw:
                fields[name] = _expect_boolean(raw, keyword, pointer)
        write_only = [_expect_boolean(raw, keyword, pointer) for keyword in WRITE_ONLY_KEYWORDS if keyword in raw]
        if write_only:
            fields["write_only"] = any(write_only)

        if "required" in raw:
            fields["required"] = self._load_required(raw["required"], join(pointer, "required"))
        if "dependentRequired" in raw:
            fields["dependent_required"] = self._load_dependent_required(raw["dependentRequired"], pointer)

        for keyword, name in SINGLE_SCHEMA_KEYWORDS:
            if keyword in raw:
                fields[name] = self.load(raw[keyword], join(pointer, keyword))
        for keyword, name in COMBINATOR_KEYWORDS:
            if keyword in raw:
                fields[name] = self._load_combinator(raw, keyword, pointer)

        if "properties" in raw:
            fields["properties"] = self._load_mapping(raw, "properties", pointer)
        if "dependentSchemas" in raw:
            fields["dependent_schemas"] = self._load_mapping(raw, "dependentSchemas", pointer)
        if "patternProperties" in raw:
            fields["pattern_properties"] = tuple(
                PatternProperty(
                    source=source, regex=_compile(source, join(pointer, "patternProperties", source)), schema=schema
                )
                for source, schema in self._load_mapping(raw, "patternProperties", pointer).items()
            )
        for keyword in ("$defs", "definitions"):
            # Only reachable via `$ref`, compiled upfront so authoring errors surface at load time
            if keyword in raw:
                self._load_mapping(raw, keyword, pointer)

        self._load_items(raw, pointer, fields)

        if "examples" in raw:
            examples = raw["examples"]
            if not isinstance(examples, list):
                raise SchemaAuthoringError("`examples` must be an array", join(pointer, "examples"), raw)
            fields["examples"] = tuple(examples)
        if "example" in raw:
            fields["example"] = raw["example"]
        if "default" in raw:
            fields["default"] = raw["default"]
        if "xml" in raw:
            fields["xml"] = _load_xml(raw["xml"], join(pointer, "xml"))
        if "externalDocs" in raw:
            fields["external_docs"] = _load_external_docs(raw["externalDocs"], join(pointer, "externalDocs"))
        fields["extensions"] = _extensions(raw)

        if self.config.nullable and raw.get("nullable") is True and "type" in fields:
            fields["type"] = _with_null(fields["type"])

        if "discriminator" in raw:
            discriminator = _load_discriminator(raw["discriminator"], join(pointer, "discriminator"))
            if self._discriminator_allowed(raw, pointer, in_combinator=in_combinator):
                fields["discriminator"] = discriminator
            else:
                self._reject_discriminator(pointer)

        return SchemaNode(**fields)

    def _load_type(self, raw: dict[str, Any], pointer: str) -> SingleType | TypeUnion:
        value = raw["type"]
        location = join(pointer, "type")
        if isinstance(value, str):
            _check_type_name(value, location)
            return SingleType(value)
        if isinstance(value, list):
            if not value:
                raise SchemaAuthoringError("`type` must not be an empty array", location, raw)
            for item in value:
                if not isinstance(item, str):
                    raise SchemaAuthoringError(
                        f"`type` entries must be strings, got {to_json_type_name(item)}", location, raw
                    )
                _check_type_name(item, location)
            if len(set(value)) != len(value):
                raise SchemaAuthoringError("`type` entries must be unique", location, raw)
            return TypeUnion(tuple(value))
        raise SchemaAuthoringError(
            f"`type` must be a string or an array, got {to_json_type_name(value)}", location, raw
        )

    def _load_required(self, value: Any, pointer: str) -> tuple[str, ...]:
        if not isinstance(value, list) or not value:
            raise SchemaAuthoringError("`required` must be a non-empty array", pointer, value)
        for item in value:
            if not isinstance(item, str):
                raise SchemaAuthoringError(
                    f"`required` entries must be strings, got {to_json_type_name(item)}", pointer, value
                )
        if len(set(value)) != len(value):
            raise SchemaAuthoringError("`required` entries must be unique", pointer, value)
        return tuple(value)

    def _load_dependent_required(self, value: Any, pointer: str) -> dict[str, tuple[str, ...]]:
        location = join(pointer, "dependentRequired")
        if not isinstance(value, dict):
            raise SchemaAuthoringError("`dependentRequired` must be an object", location, value)
        result = {}
        for name, companions in value.items():
            if not isinstance(companions, list) or not all(isinstance(item, str) for item in companions):
                raise SchemaAuthoringError(
                    f"`dependentRequired` entry for `{name}` must be an array of strings", join(location, name), value
                )
            result[name] = tuple(companions)
        return result

    def _load_combinator(self, raw: dict[str, Any], keyword: str, pointer: str) -> tuple[SchemaNode, ...]:
        value = raw[keyword]
        location = join(pointer, keyword)
        if not isinstance(value, list) or not value:
            raise SchemaAuthoringError(f"`{keyword}` must be a non-empty array", location, value)
        in_combinator = keyword in ("anyOf", "oneOf")
        return tuple(
            self.load(item, join(location, idx), in_combinator=in_combinator) for idx, item in enumerate(value)
        )

    def _load_mapping(self, raw: dict[str, Any], keyword: str, pointer: str) -> dict[str, SchemaNode]:
        value = raw[keyword]
        location = join(pointer, keyword)
        if not isinstance(value, dict):
            raise SchemaAuthoringError(f"`{keyword}` must be an object", location, value)
        return {name: self.load(subschema, join(location, name)) for name, subschema in value.items()}

    def _load_items(self, raw: dict[str, Any], pointer: str, fields: dict[str, Any]) -> None:
        items = raw.get("items", NOT_SET)
        if "prefixItems" in raw:
            prefix = raw["prefixItems"]
            location = join(pointer, "prefixItems")
            if not isinstance(prefix, list) or not prefix:
                raise SchemaAuthoringError("`prefixItems` must be a non-empty array", location, prefix)
            if isinstance(items, list):
                raise SchemaAuthoringError(
                    "`items` must be a schema when `prefixItems` is present", join(pointer, "items"), raw
                )
            fields["items"] = TupleItems(
                tuple(self.load(item, join(location, idx)) for idx, item in enumerate(prefix)), "prefixItems"
            )
            if items is not NOT_SET:
                # `items` next to `prefixItems` covers the remaining elements
                if "additional_items" in fields:
                    raise SchemaAuthoringError(
                        "`additionalItems` can not be combined with `prefixItems` and `items`", pointer, raw
                    )
                fields["additional_items"] = self.load(items, join(pointer, "items"))
            return
        if items is NOT_SET:
            return
        location = join(pointer, "items")
        if isinstance(items, list):
            if not items:
                raise SchemaAuthoringError("`items` must be a schema or a non-empty array", location, items)
            fields["items"] = TupleItems(
                tuple(self.load(item, join(location, idx)) for idx, item in enumerate(items)), "items"
            )
        else:
            fields["items"] = SingleItems(self.load(items, location))

    def _discriminator_allowed(self, raw: dict[str, Any], pointer: str, *, in_combinator: bool) -> bool:
        if "oneOf" in raw or "anyOf" in raw or in_combinator:
            return True
        return NAMED_DEFINITION_RE.search(pointer) is not None

    def _reject_discriminator(self, pointer: str) -> None:
        from oaschema.config import DiscriminatorPolicy

        message = "`discriminator` is only allowed on schemas used with `oneOf`, `anyOf` or `allOf` composition"
        if self.config.discriminator_policy == DiscriminatorPolicy.REJECT:
            raise SchemaAuthoringError(message, join(pointer, "discriminator"))
        logger.warning("Ignoring discriminator at %s: %s", pointer, message)


def _check_type_name(name: str, pointer: str) -> None:
    if name not in ALL_TYPES:
        raise SchemaAuthoringError(f"Unknown type: `{name}`. Should be one of {', '.join(ALL_TYPES)}", pointer, name)


def _with_null(spec: SingleType | TypeUnion) -> SingleType | TypeUnion:
    if "null" in spec.names:
        return spec
    return TypeUnion((*spec.names, "null"))


def _compile(pattern: str, pointer: str) -> re.Pattern:
    try:
        return compile_pattern(pattern)
    except re.error as exc:
        raise InvalidRegexPattern.from_re_error(pattern, exc, pointer) from None


def _expect_string(raw: Mapping[str, Any], keyword: str, pointer: str) -> str:
    value = raw[keyword]
    if not isinstance(value, str):
        raise SchemaAuthoringError(
            f"`{keyword}` must be a string, got {to_json_type_name(value)}", join(pointer, keyword), raw
        )
    return value


def _expect_boolean(raw: Mapping[str, Any], keyword: str, pointer: str) -> bool:
    value = raw[keyword]
    if not isinstance(value, bool):
        raise SchemaAuthoringError(
            f"`{keyword}` must be a boolean, got {to_json_type_name(value)}", join(pointer, keyword), raw
        )
    return value


def _expect_number(raw: Mapping[str, Any], keyword: str, pointer: str) -> int | float:
    value = raw[keyword]
    if not is_number(value):
        raise SchemaAuthoringError(
            f"`{keyword}` must be a number, got {to_json_type_name(value)}", join(pointer, keyword), raw
        )
    return value


def _expect_count(raw: Mapping[str, Any], keyword: str, pointer: str) -> int:
    value = raw[keyword]
    if not is_integer(value) or value < 0:
        raise SchemaAuthoringError(
            f"`{keyword}` must be a non-negative integer, got {value!r}", join(pointer, keyword), raw
        )
    return int(value)


def _extensions(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in raw.items() if is_extension(key)}


def _load_discriminator(value: Any, pointer: str) -> Discriminator:
    if not isinstance(value, dict):
        raise SchemaAuthoringError("`discriminator` must be an object", pointer, value)
    property_name = value.get("propertyName")
    if not isinstance(property_name, str):
        raise SchemaAuthoringError("`discriminator.propertyName` is required and must be a string", pointer, value)
    mapping = value.get("mapping", {})
    if not isinstance(mapping, dict):
        raise SchemaAuthoringError("`discriminator.mapping` must be an object", join(pointer, "mapping"), value)
    for key, target in mapping.items():
        if not isinstance(target, str):
            raise SchemaAuthoringError(
                f"`discriminator.mapping` value for `{key}` must be a string", join(pointer, "mapping", key), value
            )
    return Discriminator(property_name=property_name, mapping=dict(mapping), extensions=_extensions(value))


def _load_xml(value: Any, pointer: str) -> Xml:
    if not isinstance(value, dict):
        raise SchemaAuthoringError("`xml` must be an object", pointer, value)
    for keyword in ("name", "namespace", "prefix"):
        if keyword in value:
            _expect_string(value, keyword, pointer)
    for keyword in ("attribute", "wrapped"):
        if keyword in value:
            _expect_boolean(value, keyword, pointer)
    return Xml(
        name=value.get("name"),
        namespace=value.get("namespace"),
        prefix=value.get("prefix"),
        attribute=value.get("attribute", False),
        wrapped=value.get("wrapped", False),
        extensions=_extensions(value),
    )


def _load_external_docs(value: Any, pointer: str) -> ExternalDocs:
    if not isinstance(value, dict):
        raise SchemaAuthoringError("`externalDocs` must be an object", pointer, value)
    if "url" not in value:
        raise SchemaAuthoringError("`externalDocs.url` is required", pointer, value)
    url = _expect_string(value, "url", pointer)
    description = _expect_string(value, "description", pointer) if "description" in value else None
    return ExternalDocs(url=url, description=description, extensions=_extensions(value))
