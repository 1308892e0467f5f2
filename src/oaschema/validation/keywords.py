"""Assertion keywords.

Each check looks at a single node and the instance at hand, never at subschemas, and yields one failure per
violated keyword. Checks for keywords that do not apply to the instance's type yield nothing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from oaschema.config import Direction
from oaschema.core.jsonschema.formats import check_format
from oaschema.core.jsonschema.patterns import search
from oaschema.core.jsonschema.types import to_json_type_name
from oaschema.core.jsonschema.values import equal, find_duplicate, is_multiple_of, is_number

if TYPE_CHECKING:
    from oaschema.config import ValidationConfig
    from oaschema.schema.nodes import SchemaNode


@dataclass(frozen=True)
class KeywordFailure:
    keyword: str
    reason: str

    __slots__ = ("keyword", "reason")


Check = Callable[["SchemaNode", Any, "ValidationConfig"], Iterator[KeywordFailure]]


def check_type(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if node.type is not None and not node.type.accepts(instance):
        expected = " or ".join(node.type.names)
        yield KeywordFailure("type", f"type mismatch: expected {expected}, got {to_json_type_name(instance)}")


def check_enum(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if node.enum is not None and not any(equal(option, instance) for option in node.enum):
        yield KeywordFailure("enum", "value is not one of the enum values")
    if node.has_const and not equal(node.const, instance):
        yield KeywordFailure("const", "value does not match const")


def check_number(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if not is_number(instance):
        return
    if node.multiple_of is not None and not is_multiple_of(instance, node.multiple_of):
        yield KeywordFailure("multipleOf", f"not a multiple of {node.multiple_of}")
    # Python compares `int` and `float` exactly, so large integers are not rounded here
    if node.minimum is not None:
        if node.exclusive_minimum is True:
            if instance <= node.minimum:
                yield KeywordFailure("minimum", "exclusive minimum not met")
        elif instance < node.minimum:
            yield KeywordFailure("minimum", "minimum not met")
    if is_number(node.exclusive_minimum) and instance <= node.exclusive_minimum:
        yield KeywordFailure("exclusiveMinimum", "exclusive minimum not met")
    if node.maximum is not None:
        if node.exclusive_maximum is True:
            if instance >= node.maximum:
                yield KeywordFailure("maximum", "exclusive maximum exceeded")
        elif instance > node.maximum:
            yield KeywordFailure("maximum", "maximum exceeded")
    if is_number(node.exclusive_maximum) and instance >= node.exclusive_maximum:
        yield KeywordFailure("exclusiveMaximum", "exclusive maximum exceeded")


def check_string(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if not isinstance(instance, str):
        return
    # `len` counts code points, which is what JSON Schema means by "characters"
    length = len(instance)
    if node.min_length is not None and length < node.min_length:
        yield KeywordFailure("minLength", f"string is shorter than {node.min_length} characters")
    if node.max_length is not None and length > node.max_length:
        yield KeywordFailure("maxLength", f"string is longer than {node.max_length} characters")
    if node.pattern is not None and not search(node.pattern, instance):
        yield KeywordFailure("pattern", f"string does not match pattern '{node.pattern.pattern}'")


def check_format_keyword(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if not config.format_assertion or node.format is None:
        return
    if not check_format(node.format, instance):
        subject = "string" if isinstance(instance, str) else "value"
        yield KeywordFailure("format", f"{subject} is not a valid '{node.format}'")


def check_array(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if not isinstance(instance, list):
        return
    if node.min_items is not None and len(instance) < node.min_items:
        yield KeywordFailure("minItems", f"array has fewer than {node.min_items} items")
    if node.max_items is not None and len(instance) > node.max_items:
        yield KeywordFailure("maxItems", f"array has more than {node.max_items} items")
    if node.unique_items:
        duplicate = find_duplicate(instance)
        if duplicate is not None:
            first, second = duplicate
            yield KeywordFailure("uniqueItems", f"array items are not unique (indices {first} and {second})")


def check_object(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    if not isinstance(instance, dict):
        return
    if node.min_properties is not None and len(instance) < node.min_properties:
        yield KeywordFailure("minProperties", f"object has fewer than {node.min_properties} properties")
    if node.max_properties is not None and len(instance) > node.max_properties:
        yield KeywordFailure("maxProperties", f"object has more than {node.max_properties} properties")
    for name in node.required:
        if name not in instance and not _is_exempt(node, name, config):
            yield KeywordFailure("required", f"missing required property: {name}")
    for name, companions in node.dependent_required.items():
        if name not in instance:
            continue
        for companion in companions:
            if companion not in instance:
                yield KeywordFailure("dependentRequired", f"property '{name}' requires property '{companion}'")


def _is_exempt(node: SchemaNode, name: str, config: ValidationConfig) -> bool:
    """Read-only properties are not sent in requests and write-only ones are not returned in responses."""
    subschema = node.properties.get(name)
    if subschema is None or config.direction is None:
        return False
    if config.direction is Direction.REQUEST:
        return subschema.read_only
    return subschema.write_only


CHECKS: tuple[Check, ...] = (
    check_type,
    check_enum,
    check_number,
    check_string,
    check_format_keyword,
    check_array,
    check_object,
)


def iter_failures(node: SchemaNode, instance: Any, config: ValidationConfig) -> Iterator[KeywordFailure]:
    for check in CHECKS:
        yield from check(node, instance, config)
