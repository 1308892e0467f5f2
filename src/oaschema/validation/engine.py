"""Validation of instances against compiled schema nodes.

Subschemas are evaluated depth-first in a fixed keyword order, so the same schema and instance always yield the same
errors in the same order. Applicators that evaluate subschemas against the same instance location (`$ref`, `allOf`,
`anyOf`, `oneOf`, `if` / `then` / `else`, `dependentSchemas`) contribute the locations their passing subschemas
evaluated, which is what `unevaluatedProperties` and `unevaluatedItems` consult. Discriminator selections travel with
those locations and with the errors of the subschemas they were made in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union
from urllib.parse import urljoin

from oaschema.config import Direction, ValidationConfig
from oaschema.core.errors import format_reference_cycle
from oaschema.core.jsonschema.patterns import search
from oaschema.core.output import format_pointer
from oaschema.core.result import Err
from oaschema.references import ResolutionContext, component_name
from oaschema.schema.loader import load_schema
from oaschema.schema.nodes import SchemaNode, SingleItems, TupleItems
from oaschema.validation.discriminator import FailureReason, select_variant
from oaschema.validation.keywords import iter_failures
from oaschema.validation.result import Annotations, ErrorKind, ValidationError, ValidationResult

if TYPE_CHECKING:
    from oaschema.core.jsonschema.types import JsonSchema
    from oaschema.references import ReferenceResolver
    from oaschema.validation.discriminator import DiscriminatorResolutionFailure

logger = logging.getLogger(__name__)

Path = tuple[Union[str, int], ...]


@dataclass
class Outcome:
    errors: list[ValidationError]
    annotations: Annotations

    __slots__ = ("errors", "annotations")

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class Scope:
    """Evaluation of one node against one instance location."""

    instance: Any
    instance_path: Path
    schema_path: Path
    base_uri: str
    depth: int
    errors: list[ValidationError]
    annotations: Annotations

    __slots__ = ("instance", "instance_path", "schema_path", "base_uri", "depth", "errors", "annotations")

    def fail(
        self,
        reason: str,
        keyword: str,
        *steps: str | int,
        instance_steps: Path = (),
        kind: ErrorKind = ErrorKind.INSTANCE,
    ) -> None:
        self.errors.append(
            ValidationError(
                instance_path=format_pointer(self.instance_path + instance_steps),
                schema_path=format_pointer(self.schema_path + steps),
                reason=reason,
                keyword=keyword,
                kind=kind,
            )
        )

    def absorb(self, outcome: Outcome) -> None:
        """Take a subschema outcome for the same instance location."""
        if outcome.errors:
            self.report(outcome)
        else:
            self.annotations.merge(outcome.annotations)

    def report(self, outcome: Outcome) -> None:
        """Take errors of a subschema together with the selections that led to them."""
        self.errors.extend(outcome.errors)
        self.annotations.selected.update(outcome.annotations.selected)


class Evaluation:
    """State of a single validation call."""

    __slots__ = ("context", "config", "_active", "_entered", "_dispatching", "_bypassed")

    def __init__(self, context: ResolutionContext, config: ValidationConfig) -> None:
        self.context = context
        self.config = config
        # References being evaluated, with the instance location they were entered at
        self._active: list[tuple[str, Path]] = []
        # Schemas whose evaluation is in progress, with the instance location they were entered at
        self._entered: set[tuple[int, Path]] = set()
        # Base schemas whose discriminator is currently evaluating a variant that extends them
        self._dispatching: set[tuple[int, Path]] = set()
        self._bypassed: set[tuple[int, Path]] = set()

    def evaluate(
        self,
        node: SchemaNode,
        instance: Any,
        instance_path: Path,
        schema_path: Path,
        base_uri: str,
        depth: int,
        *,
        dispatch: bool = True,
    ) -> Outcome:
        scope = Scope(instance, instance_path, schema_path, base_uri, depth, [], Annotations())
        if depth > self.config.max_depth:
            keyword = next((step for step in reversed(schema_path) if isinstance(step, str)), "")
            logger.debug("Maximum nesting depth exceeded at %s", format_pointer(schema_path))
            scope.fail(
                f"maximum nesting depth of {self.config.max_depth} exceeded", keyword, kind=ErrorKind.DEPTH
            )
            return Outcome(scope.errors, scope.annotations)
        if node.boolean is not None:
            if not node.boolean:
                scope.fail("no value is allowed here", "false")
            return Outcome(scope.errors, scope.annotations)
        if node.id is not None:
            scope.base_uri = urljoin(base_uri, node.id) if base_uri else node.id

        if node.reference is not None:
            self._apply_reference(node, scope)
        for failure in iter_failures(node, instance, self.config):
            scope.fail(failure.reason, failure.keyword, failure.keyword)
        if node.all_of:
            self._apply_all_of(node, scope)
        shortcut = None
        if dispatch and node.discriminator is not None:
            shortcut = self._dispatch(node, scope)
        if node.any_of and shortcut != "anyOf":
            self._apply_any_of(node, scope)
        if node.one_of and shortcut != "oneOf":
            self._apply_one_of(node, scope)
        if node.not_ is not None and self.apply(node.not_, scope, "not").valid:
            scope.fail("value must not be valid against the 'not' schema", "not", "not")
        if node.if_ is not None:
            self._apply_conditional(node, scope)
        if isinstance(instance, dict):
            self._apply_object(node, scope)
        elif isinstance(instance, list):
            self._apply_array(node, scope)
        return Outcome(scope.errors, scope.annotations)

    def run(self, node: SchemaNode, instance: Any, base_uri: str) -> Outcome:
        """Evaluate the validation root."""
        self._entered.add((id(node), ()))
        return self.evaluate(node, instance, (), (), base_uri, 0)

    def apply(self, node: SchemaNode, scope: Scope, *steps: str | int) -> Outcome:
        """Evaluate `node` against the instance of the scope."""
        return self.evaluate(
            node,
            scope.instance,
            scope.instance_path,
            scope.schema_path + steps,
            scope.base_uri,
            scope.depth + 1,
        )

    def apply_child(
        self, node: SchemaNode, scope: Scope, value: Any, location: str | int, *steps: str | int
    ) -> Outcome:
        """Evaluate `node` against a property or an item of the instance."""
        return self.evaluate(
            node,
            value,
            scope.instance_path + (location,),
            scope.schema_path + steps,
            scope.base_uri,
            scope.depth + 1,
        )

    def _apply_reference(self, node: SchemaNode, scope: Scope) -> None:
        keyword = "$ref" if node.ref is not None else "$recursiveRef"
        reference = node.reference
        assert reference is not None
        result = self.context.resolve(reference, scope.base_uri)
        if isinstance(result, Err):
            scope.fail(str(result.err()), keyword, keyword, kind=ErrorKind.REFERENCE)
            return
        resolved = result.ok()
        target = resolved.node
        dispatch_key = (id(target), scope.instance_path)
        if dispatch_key in self._dispatching and dispatch_key not in self._bypassed:
            # The variant refers back to the base schema that selected it. The base schema is already evaluated at
            # this location, so only its annotations are taken from here
            self._bypassed.add(dispatch_key)
            try:
                outcome = self.evaluate(
                    target,
                    scope.instance,
                    scope.instance_path,
                    scope.schema_path + (keyword,),
                    resolved.base_uri,
                    scope.depth + 1,
                    dispatch=False,
                )
            finally:
                self._bypassed.discard(dispatch_key)
            scope.annotations.merge(outcome.annotations)
            return
        entry = (resolved.uri, scope.instance_path)
        if entry in self._active:
            start = self._active.index(entry)
            cycle = [uri for uri, path in self._active[start:] if path == scope.instance_path]
            scope.fail(format_reference_cycle(reference, cycle), keyword, keyword, kind=ErrorKind.REFERENCE)
            return
        self._active.append(entry)
        entered = (id(target), scope.instance_path)
        added = entered not in self._entered
        self._entered.add(entered)
        try:
            outcome = self.evaluate(
                target,
                scope.instance,
                scope.instance_path,
                scope.schema_path + (keyword,),
                resolved.base_uri,
                scope.depth + 1,
            )
        finally:
            self._active.pop()
            if added:
                self._entered.discard(entered)
        scope.absorb(outcome)

    def _apply_all_of(self, node: SchemaNode, scope: Scope) -> None:
        for idx, member in enumerate(node.all_of):
            outcome = self.apply(member, scope, "allOf", idx)
            scope.absorb(outcome)
            if outcome.errors and self.config.fail_fast:
                break

    def _apply_any_of(self, node: SchemaNode, scope: Scope) -> None:
        outcomes = [self.apply(member, scope, "anyOf", idx) for idx, member in enumerate(node.any_of)]
        passing = [outcome for outcome in outcomes if outcome.valid]
        if passing:
            for outcome in passing:
                scope.annotations.merge(outcome.annotations)
            return
        scope.fail("value does not match any of the anyOf schemas", "anyOf", "anyOf")
        for outcome in outcomes:
            scope.report(outcome)

    def _apply_one_of(self, node: SchemaNode, scope: Scope) -> None:
        outcomes = [self.apply(member, scope, "oneOf", idx) for idx, member in enumerate(node.one_of)]
        matched = [idx for idx, outcome in enumerate(outcomes) if outcome.valid]
        if len(matched) == 1:
            scope.annotations.merge(outcomes[matched[0]].annotations)
        elif not matched:
            scope.fail("value does not match any of the oneOf schemas", "oneOf", "oneOf")
            for outcome in outcomes:
                scope.report(outcome)
        else:
            indices = ", ".join(str(idx) for idx in matched)
            scope.fail(f"value matches more than one oneOf schema (indices {indices})", "oneOf", "oneOf")

    def _dispatch(self, node: SchemaNode, scope: Scope) -> str | None:
        """Evaluate the variant selected by the discriminator.

        Returns the combinator keyword that no longer needs exhaustive evaluation.
        """
        combinator = node.combinator
        if combinator is None:
            self._dispatch_inheritance(node, scope)
            return None
        keyword, _ = combinator
        result = select_variant(node, scope.instance, self.context, scope.base_uri)
        if isinstance(result, Err):
            if self._report_selection_failure(result.err(), node, scope):
                return keyword
            return None
        selection = result.ok()
        scope.annotations.selected[format_pointer(scope.instance_path)] = selection.target
        if not self.config.discriminator_shortcut:
            return None
        outcome = self.evaluate(
            selection.node,
            scope.instance,
            scope.instance_path,
            scope.schema_path + selection.schema_path,
            selection.base_uri,
            scope.depth + 1,
        )
        scope.absorb(outcome)
        return keyword

    def _dispatch_inheritance(self, node: SchemaNode, scope: Scope) -> None:
        key = (id(node), scope.instance_path)
        if key in self._dispatching:
            return
        assert node.discriminator is not None
        if component_name(node.pointer) is None and not node.discriminator.mapping:
            # Nothing can extend an anonymous schema
            return
        result = select_variant(node, scope.instance, self.context, scope.base_uri)
        if isinstance(result, Err):
            self._report_selection_failure(result.err(), node, scope)
            return
        selection = result.ok()
        if selection.node is node or selection.node.pointer == node.pointer:
            return
        scope.annotations.selected[format_pointer(scope.instance_path)] = selection.target
        if (id(selection.node), scope.instance_path) in self._entered:
            # The instance is already being validated against the selected variant
            return
        self._dispatching.add(key)
        try:
            outcome = self.evaluate(
                selection.node,
                scope.instance,
                scope.instance_path,
                scope.schema_path + selection.schema_path,
                selection.base_uri,
                scope.depth + 1,
            )
        finally:
            self._dispatching.discard(key)
        scope.absorb(outcome)

    def _report_selection_failure(
        self, failure: DiscriminatorResolutionFailure, node: SchemaNode, scope: Scope
    ) -> bool:
        if failure.reason is FailureReason.UNKNOWN_VALUE:
            scope.fail(str(failure), "discriminator", "discriminator", kind=ErrorKind.DISCRIMINATOR)
            return True
        if failure.reason is FailureReason.UNRESOLVABLE_MAPPING:
            scope.fail(
                str(failure), "discriminator", "discriminator", "mapping", failure.value, kind=ErrorKind.REFERENCE
            )
            return True
        logger.debug("Discriminator at %s is not usable, evaluating every variant: %s", node.pointer, failure)
        return False

    def _apply_conditional(self, node: SchemaNode, scope: Scope) -> None:
        assert node.if_ is not None
        condition = self.apply(node.if_, scope, "if")
        if condition.valid:
            scope.annotations.merge(condition.annotations)
            if node.then is not None:
                scope.absorb(self.apply(node.then, scope, "then"))
        elif node.else_ is not None:
            scope.absorb(self.apply(node.else_, scope, "else"))

    def _apply_object(self, node: SchemaNode, scope: Scope) -> None:
        instance: dict[str, Any] = scope.instance
        for name, subschema in node.dependent_schemas.items():
            if name in instance:
                scope.absorb(self.apply(subschema, scope, "dependentSchemas", name))
        evaluated = scope.annotations.properties
        for name, value in instance.items():
            covered = False
            subschema = node.properties.get(name)
            if subschema is not None:
                covered = True
                self._check_access(name, subschema, scope)
                scope.report(self.apply_child(subschema, scope, value, name, "properties", name))
            for pattern_property in node.pattern_properties:
                if search(pattern_property.regex, name):
                    covered = True
                    outcome = self.apply_child(
                        pattern_property.schema, scope, value, name, "patternProperties", pattern_property.source
                    )
                    scope.report(outcome)
            if not covered and node.additional_properties is not None:
                covered = True
                if node.additional_properties.boolean is False:
                    scope.fail(
                        f"unexpected property: {name}",
                        "additionalProperties",
                        "additionalProperties",
                        instance_steps=(name,),
                    )
                else:
                    outcome = self.apply_child(node.additional_properties, scope, value, name, "additionalProperties")
                    scope.report(outcome)
            if covered:
                evaluated.add(name)
        if node.property_names is not None:
            for name in instance:
                scope.report(self.apply_child(node.property_names, scope, name, name, "propertyNames"))
        if node.unevaluated_properties is not None:
            for name, value in instance.items():
                if name in evaluated:
                    continue
                if node.unevaluated_properties.boolean is False:
                    scope.fail(
                        f"unevaluated property: {name}",
                        "unevaluatedProperties",
                        "unevaluatedProperties",
                        instance_steps=(name,),
                    )
                    continue
                outcome = self.apply_child(node.unevaluated_properties, scope, value, name, "unevaluatedProperties")
                scope.report(outcome)
            # Every property is evaluated from here on
            evaluated.update(instance)

    def _check_access(self, name: str, subschema: SchemaNode, scope: Scope) -> None:
        direction = self.config.direction
        if direction is None:
            return
        read_only, write_only = self._access_flags(subschema, scope.base_uri)
        if direction is Direction.REQUEST and read_only:
            scope.fail(
                f"read-only property '{name}' is not allowed in a request",
                "readOnly",
                "properties",
                name,
                "readOnly",
                instance_steps=(name,),
            )
        elif direction is Direction.RESPONSE and write_only:
            scope.fail(
                f"write-only property '{name}' is not allowed in a response",
                "writeOnly",
                "properties",
                name,
                "writeOnly",
                instance_steps=(name,),
            )

    def _access_flags(self, subschema: SchemaNode, base_uri: str) -> tuple[bool, bool]:
        if subschema.read_only or subschema.write_only or subschema.reference is None:
            return subschema.read_only, subschema.write_only
        # Flags are usually declared on the referenced component
        result = self.context.resolve(subschema.reference, base_uri)
        if isinstance(result, Err):
            return False, False
        target = result.ok().node
        return target.read_only, target.write_only

    def _apply_array(self, node: SchemaNode, scope: Scope) -> None:
        instance: list = scope.instance
        evaluated = scope.annotations.items
        items = node.items
        if isinstance(items, SingleItems):
            for idx, item in enumerate(instance):
                scope.report(self.apply_child(items.schema, scope, item, idx, "items"))
            evaluated.update(range(len(instance)))
        elif isinstance(items, TupleItems):
            for idx, (subschema, item) in enumerate(zip(items.schemas, instance)):
                scope.report(self.apply_child(subschema, scope, item, idx, items.keyword, idx))
                evaluated.add(idx)
            additional = node.additional_items
            if additional is not None:
                keyword = "items" if items.keyword == "prefixItems" else "additionalItems"
                for idx in range(len(items.schemas), len(instance)):
                    if additional.boolean is False:
                        scope.fail(f"unexpected item at index {idx}", keyword, keyword, instance_steps=(idx,))
                    else:
                        outcome = self.apply_child(additional, scope, instance[idx], idx, keyword)
                        scope.report(outcome)
                    evaluated.add(idx)
        if node.contains is not None:
            self._apply_contains(node, scope)
        if node.unevaluated_items is not None:
            for idx, item in enumerate(instance):
                if idx in evaluated:
                    continue
                if node.unevaluated_items.boolean is False:
                    scope.fail(
                        f"unevaluated item at index {idx}",
                        "unevaluatedItems",
                        "unevaluatedItems",
                        instance_steps=(idx,),
                    )
                    continue
                outcome = self.apply_child(node.unevaluated_items, scope, item, idx, "unevaluatedItems")
                scope.report(outcome)
            evaluated.update(range(len(instance)))

    def _apply_contains(self, node: SchemaNode, scope: Scope) -> None:
        assert node.contains is not None
        matches = [
            idx
            for idx, item in enumerate(scope.instance)
            if self.apply_child(node.contains, scope, item, idx, "contains").valid
        ]
        minimum = node.min_contains if node.min_contains is not None else 1
        if len(matches) < minimum:
            if node.min_contains is None:
                scope.fail("array does not contain a matching item", "contains", "contains")
            else:
                scope.fail(f"array contains fewer than {minimum} matching items", "minContains", "minContains")
        if node.max_contains is not None and len(matches) > node.max_contains:
            scope.fail(
                f"array contains more than {node.max_contains} matching items", "maxContains", "maxContains"
            )
        scope.annotations.items.update(matches)


class Validator:
    """Validates instances against one schema.

    A validator is immutable and may be shared between threads. Each `validate` call keeps its own memo of resolved
    references.
    """

    __slots__ = ("schema", "resolver", "config")

    def __init__(
        self,
        schema: SchemaNode | JsonSchema,
        *,
        resolver: ReferenceResolver | None = None,
        config: ValidationConfig | None = None,
    ) -> None:
        self.config = config or ValidationConfig()
        if not isinstance(schema, SchemaNode):
            schema = load_schema(schema, config=self.config)
        self.schema = schema
        self.resolver = resolver

    def __repr__(self) -> str:
        return f"Validator({self.schema!r})"

    def validate(self, instance: Any) -> ValidationResult:
        evaluation = Evaluation(ResolutionContext(self.resolver), self.config)
        base_uri = getattr(self.resolver, "base_uri", "")
        outcome = evaluation.run(self.schema, instance, base_uri)
        if outcome.errors:
            logger.debug("Instance does not conform to %s: %d error(s)", self.schema.pointer, len(outcome.errors))
        annotations = outcome.annotations
        return ValidationResult(errors=outcome.errors, annotations=annotations, selected=annotations.selected)

    def is_valid(self, instance: Any) -> bool:
        return self.validate(instance).valid


def validate(
    schema: SchemaNode | JsonSchema,
    instance: Any,
    *,
    resolver: ReferenceResolver | None = None,
    config: ValidationConfig | None = None,
) -> ValidationResult:
    """Validate an instance against a schema."""
    return Validator(schema, resolver=resolver, config=config).validate(instance)


def is_valid(
    schema: SchemaNode | JsonSchema,
    instance: Any,
    *,
    resolver: ReferenceResolver | None = None,
    config: ValidationConfig | None = None,
) -> bool:
    return validate(schema, instance, resolver=resolver, config=config).valid
