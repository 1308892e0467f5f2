"""Schema Objects of a whole Open API document."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from oaschema.config import Direction, ValidationConfig
from oaschema.core.errors import OaSchemaError, SchemaAuthoringError
from oaschema.core.jsonschema.keywords import is_extension
from oaschema.core.jsonschema.types import JsonSchema
from oaschema.core.result import Result
from oaschema.references import RegistryResolver
from oaschema.schema.loader import SchemaLoader, join, load_schema
from oaschema.schema.nodes import SchemaNode
from oaschema.validation.discriminator import DiscriminatorResolutionFailure, Selection, resolve_discriminator
from oaschema.validation.engine import Validator
from oaschema.validation.result import ValidationResult

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ("3.0", "3.1")
COMPONENTS_SCHEMAS = "#/components/schemas"


class UnsupportedVersion(OaSchemaError):
    """The document does not declare a supported Open API version."""

    def __init__(self, version: Any) -> None:
        self.version = version

    def __str__(self) -> str:
        supported = ", ".join(f"{version}.x" for version in SUPPORTED_VERSIONS)
        return f"Unsupported Open API version: {self.version!r}. Supported versions: {supported}"


class OpenApiDocument:
    """An already decoded Open API document with its component schemas compiled.

    Only `components/schemas` and whatever the validated schemas refer to are inspected. Info, Server, Tag and
    other objects stay as they are in `raw`.
    """

    __slots__ = ("raw", "config", "resolver", "_components")

    def __init__(self, raw: dict[str, Any], *, config: ValidationConfig | None = None, base_uri: str = "") -> None:
        self.raw = raw
        self.config = config or ValidationConfig()
        arena: dict[str, SchemaNode] = {}
        self.resolver = RegistryResolver(raw, base_uri=base_uri, config=self.config, arena=arena)
        loader = SchemaLoader(config=self.config, arena=arena)
        components: dict[str, SchemaNode] = {}
        for name, definition in _component_schemas(raw).items():
            logger.debug("Compiling component schema %s", name)
            components[name] = loader.load(definition, join(COMPONENTS_SCHEMAS, name))
        self._components = components

    def __repr__(self) -> str:
        return f"<OpenApiDocument {self.version} with {len(self._components)} schema(s)>"

    @classmethod
    def from_dict(
        cls, raw: dict[str, Any], *, config: ValidationConfig | None = None, base_uri: str = ""
    ) -> OpenApiDocument:
        """Wrap a decoded document.

        Raises `SchemaAuthoringError` if any component schema is malformed.
        """
        if not isinstance(raw, dict):
            raise SchemaAuthoringError("Open API document must be an object", "#", raw)
        version = raw.get("openapi")
        if not isinstance(version, str) or not version.startswith(tuple(f"{v}." for v in SUPPORTED_VERSIONS)):
            raise UnsupportedVersion(version)
        return cls(raw, config=config, base_uri=base_uri)

    @property
    def version(self) -> str:
        return self.raw["openapi"]

    @property
    def is_openapi_30(self) -> bool:
        return self.version.startswith("3.0.")

    @property
    def extensions(self) -> dict[str, Any]:
        """Specification extensions at the document root."""
        return {key: value for key, value in self.raw.items() if is_extension(key)}

    @property
    def components(self) -> Mapping[str, SchemaNode]:
        return MappingProxyType(self._components)

    def schema(self, name: str) -> SchemaNode:
        try:
            return self._components[name]
        except KeyError:
            raise KeyError(f"Schema `{name}` is not defined under `components/schemas`") from None

    def validator(self, schema: str | SchemaNode | JsonSchema, *, direction: Direction | None = None) -> Validator:
        config = self.config if direction is None else self.config.override(direction=direction)
        return Validator(self._to_node(schema, config), resolver=self.resolver, config=config)

    def validate(
        self, schema: str | SchemaNode | JsonSchema, instance: Any, *, direction: Direction | None = None
    ) -> ValidationResult:
        """Validate an instance against a component (by name), a compiled node or an inline raw schema."""
        return self.validator(schema, direction=direction).validate(instance)

    def is_valid(
        self, schema: str | SchemaNode | JsonSchema, instance: Any, *, direction: Direction | None = None
    ) -> bool:
        return self.validate(schema, instance, direction=direction).valid

    def resolve_discriminator(
        self, schema: str | SchemaNode | JsonSchema, instance: Any
    ) -> Result[Selection, DiscriminatorResolutionFailure]:
        return resolve_discriminator(self._to_node(schema, self.config), instance, resolver=self.resolver)

    def _to_node(self, schema: str | SchemaNode | JsonSchema, config: ValidationConfig) -> SchemaNode:
        if isinstance(schema, str):
            return self.schema(schema)
        if isinstance(schema, SchemaNode):
            return schema
        return load_schema(schema, config=config)


def _component_schemas(raw: dict[str, Any]) -> dict[str, Any]:
    components = raw.get("components", {})
    if not isinstance(components, dict):
        raise SchemaAuthoringError("`components` must be an object", "#/components", components)
    schemas = components.get("schemas", {})
    if not isinstance(schemas, dict):
        raise SchemaAuthoringError("`schemas` must be an object", COMPONENTS_SCHEMAS, schemas)
    return schemas
