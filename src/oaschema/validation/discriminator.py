"""Discriminator-based selection among `oneOf` / `anyOf` variants.

Selection order:

1. The discriminating property must be present in the instance and hold a string.
2. An entry of `mapping` for that value wins. Mapping values are either component names or references.
3. Otherwise, a `$ref` member whose component name equals the value is selected. Inline members never match.
4. A discriminator declared on an `allOf` base schema selects among components extending that base.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from oaschema.core.errors import OaSchemaError
from oaschema.core.result import Err, Ok, Result
from oaschema.references import ResolutionContext, component_name, component_reference
from oaschema.schema.nodes import SchemaNode

if TYPE_CHECKING:
    from oaschema.config import ValidationConfig
    from oaschema.core.jsonschema.types import JsonSchema
    from oaschema.references import ReferenceResolver

COMPONENT_NAME_RE = re.compile(r"^[a-zA-Z0-9.\-_]+$")


class FailureReason(str, enum.Enum):
    NOT_APPLICABLE = "not_applicable"
    MISSING_PROPERTY = "missing_property"
    NOT_A_STRING = "not_a_string"
    UNKNOWN_VALUE = "unknown_value"
    UNRESOLVABLE_MAPPING = "unresolvable_mapping"


class DiscriminatorResolutionFailure(OaSchemaError):
    """The discriminator could not select a variant."""

    def __init__(self, reason: FailureReason, message: str, *, value: Any = None) -> None:
        self.reason = reason
        self.message = message
        self.value = value

    def __str__(self) -> str:
        return self.message

    @property
    def is_authoring_problem(self) -> bool:
        """Whether the failure points at the value / schema pair rather than a missing discriminator."""
        return self.reason in (FailureReason.UNKNOWN_VALUE, FailureReason.UNRESOLVABLE_MAPPING)


@dataclass
class Selection:
    """A variant chosen by a discriminator."""

    # Node to validate the instance against, e.g. the `{"$ref": ...}` member of `oneOf`
    node: SchemaNode
    # The schema the variant refers to
    target: SchemaNode
    base_uri: str
    name: str | None
    value: str
    # Keywords leading from the discriminating schema to `node`
    schema_path: tuple[str | int, ...]

    __slots__ = ("node", "target", "base_uri", "name", "value", "schema_path")


def mapping_reference(target: str) -> str:
    """Mapping values may be bare component names."""
    if COMPONENT_NAME_RE.match(target):
        return component_reference(target)
    return target


def select_variant(
    node: SchemaNode, instance: Any, context: ResolutionContext, base_uri: str
) -> Result[Selection, DiscriminatorResolutionFailure]:
    discriminator = node.discriminator
    if discriminator is None:
        return Err(DiscriminatorResolutionFailure(FailureReason.NOT_APPLICABLE, "schema has no discriminator"))
    property_name = discriminator.property_name
    if not isinstance(instance, dict) or property_name not in instance:
        return Err(
            DiscriminatorResolutionFailure(
                FailureReason.MISSING_PROPERTY, f"missing discriminator property: {property_name}"
            )
        )
    value = instance[property_name]
    if not isinstance(value, str):
        return Err(
            DiscriminatorResolutionFailure(
                FailureReason.NOT_A_STRING, f"discriminator property '{property_name}' must be a string", value=value
            )
        )

    combinator = node.combinator
    target = discriminator.mapping.get(value)
    if target is not None:
        result = context.resolve(mapping_reference(target), base_uri)
        if isinstance(result, Err):
            return Err(
                DiscriminatorResolutionFailure(
                    FailureReason.UNRESOLVABLE_MAPPING,
                    f"discriminator mapping for '{value}' can not be resolved: {result.err()}",
                    value=value,
                )
            )
        resolved = result.ok()
        if combinator is not None:
            keyword, members = combinator
            for idx, member in enumerate(members):
                member_target = _resolve_member(member, context, base_uri)
                if member_target is not None and member_target.uri == resolved.uri:
                    return Ok(Selection(member, resolved.node, base_uri, resolved.name, value, (keyword, idx)))
        return Ok(
            Selection(
                resolved.node,
                resolved.node,
                resolved.base_uri,
                resolved.name,
                value,
                ("discriminator", "mapping", value),
            )
        )

    if combinator is not None:
        keyword, members = combinator
        for idx, member in enumerate(members):
            member_target = _resolve_member(member, context, base_uri)
            if member_target is not None and member_target.name == value:
                return Ok(Selection(member, member_target.node, base_uri, value, value, (keyword, idx)))
    else:
        own_name = component_name(node.pointer)
        if own_name == value:
            return Ok(Selection(node, node, base_uri, own_name, value, ()))
        for name, component in context.iter_components():
            if name == value and _extends(component, node, context, base_uri):
                return Ok(Selection(component, component, base_uri, name, value, ("discriminator", name)))

    return Err(
        DiscriminatorResolutionFailure(
            FailureReason.UNKNOWN_VALUE, f"unknown discriminator value: {value!r}", value=value
        )
    )


def _resolve_member(member: SchemaNode, context: ResolutionContext, base_uri: str) -> Any:
    if member.reference is None:
        return None
    result = context.resolve(member.reference, base_uri)
    if isinstance(result, Err):
        return None
    return result.ok()


def _extends(component: SchemaNode, base: SchemaNode, context: ResolutionContext, base_uri: str) -> bool:
    for member in component.all_of:
        resolved = _resolve_member(member, context, base_uri)
        if resolved is not None and resolved.node.pointer == base.pointer:
            return True
    return False


def resolve_discriminator(
    schema: SchemaNode | JsonSchema,
    instance: Any,
    *,
    resolver: ReferenceResolver | None = None,
    config: ValidationConfig | None = None,
) -> Result[Selection, DiscriminatorResolutionFailure]:
    """Select the variant the instance's discriminator property points at.

    Selection alone does not validate the instance against the variant.
    """
    if not isinstance(schema, SchemaNode):
        from oaschema.schema.loader import load_schema

        schema = load_schema(schema, config=config)
    return select_variant(schema, instance, ResolutionContext(resolver), "")
