"""Reference resolution hook.

The validator never interprets `$ref` values itself. It asks a `ReferenceResolver` for the target node and memoizes
the answer for the duration of a single validation call.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from urllib.parse import urldefrag, urljoin

from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import DRAFT202012

from oaschema.core import COMPONENTS_SCHEMAS_POINTER
from oaschema.core.errors import ReferenceResolutionError
from oaschema.core.output import escape_token, unescape_token
from oaschema.core.result import Err, Ok, Result
from oaschema.schema.loader import SchemaLoader
from oaschema.schema.nodes import SchemaNode

if TYPE_CHECKING:
    from oaschema.config import ValidationConfig

logger = logging.getLogger(__name__)

COMPONENT_NAME_RE = re.compile(r"^/components/schemas/([^/]+)$")


@dataclass
class ResolvedReference:
    # Absolute URI of the target, including the fragment
    uri: str
    node: SchemaNode
    # Name under `components/schemas`, if the target is a component
    name: str | None
    # Base URI for references inside the target
    base_uri: str

    __slots__ = ("uri", "node", "name", "base_uri")


@runtime_checkable
class ReferenceResolver(Protocol):
    """Resolves `$ref` values to compiled schema nodes."""

    def resolve(self, reference: str, base_uri: str) -> ResolvedReference:
        """Resolve the reference relative to `base_uri`.

        Raises `ReferenceResolutionError` if the target does not exist.
        """

    def iter_components(self) -> Iterator[tuple[str, SchemaNode]]:
        """Named schemas under `components/schemas`. May yield nothing."""


def component_name(uri: str) -> str | None:
    """Extract the component name from a `#/components/schemas/<name>` reference."""
    _, fragment = urldefrag(uri)
    match = COMPONENT_NAME_RE.match(fragment)
    if match is None:
        return None
    return unescape_token(match.group(1))


def component_reference(name: str) -> str:
    return f"{COMPONENTS_SCHEMAS_POINTER}{escape_token(name)}"


class RegistryResolver:
    """Resolve references within already decoded documents via `referencing`.

    Nothing is fetched: references to documents that were not passed in are unresolvable. Compiled targets are
    cached for the lifetime of the resolver and the cache is safe to share between threads.
    """

    __slots__ = ("document", "base_uri", "config", "_registry", "_arena", "_lock")

    def __init__(
        self,
        document: Any,
        *,
        base_uri: str = "",
        config: ValidationConfig | None = None,
        resources: Mapping[str, Any] | None = None,
        arena: dict[str, SchemaNode] | None = None,
    ) -> None:
        from oaschema.config import ValidationConfig

        self.document = document
        self.base_uri = base_uri
        self.config = config or ValidationConfig()
        pairs: list[tuple[str, Resource]] = [(base_uri, DRAFT202012.create_resource(document))]
        for uri, contents in (resources or {}).items():
            pairs.append((uri, DRAFT202012.create_resource(contents)))
        self._registry: Registry = Registry().with_resources(pairs)
        self._arena = arena if arena is not None else {}
        self._lock = threading.Lock()

    def resolve(self, reference: str, base_uri: str) -> ResolvedReference:
        uri = urljoin(base_uri, reference) if base_uri else reference
        key = _arena_key(uri, self.base_uri)
        with self._lock:
            node = self._arena.get(key)
        if node is None:
            node = self._compile(reference, base_uri, key)
        return ResolvedReference(uri=uri, node=node, name=component_name(uri), base_uri=urldefrag(uri).url)

    def _compile(self, reference: str, base_uri: str, key: str) -> SchemaNode:
        try:
            resolved = self._registry.resolver(base_uri=base_uri).lookup(reference)
        except Unresolvable as exc:
            raise ReferenceResolutionError(reference, str(exc) or None) from None
        logger.debug("Compiling reference target %s", key)
        compiled: dict[str, SchemaNode] = {}
        SchemaLoader(config=self.config, arena=compiled).load(resolved.contents, key)
        with self._lock:
            for pointer, value in compiled.items():
                self._arena.setdefault(pointer, value)
            return self._arena[key]

    def iter_components(self) -> Iterator[tuple[str, SchemaNode]]:
        components = self.document.get("components") if isinstance(self.document, dict) else None
        schemas = components.get("schemas") if isinstance(components, dict) else None
        if not isinstance(schemas, dict):
            return
        for name in schemas:
            yield name, self.resolve(component_reference(name), self.base_uri).node


def _arena_key(uri: str, root_uri: str) -> str:
    url, fragment = urldefrag(uri)
    if url == root_uri or not url:
        return f"#{fragment}"
    return f"{url}#{fragment}"


class ResolutionContext:
    """Memo of resolution outcomes scoped to one validation call."""

    __slots__ = ("resolver", "_memo")

    def __init__(self, resolver: ReferenceResolver | None) -> None:
        self.resolver = resolver
        self._memo: dict[tuple[str, str], Result[ResolvedReference, ReferenceResolutionError]] = {}

    def resolve(self, reference: str, base_uri: str) -> Result[ResolvedReference, ReferenceResolutionError]:
        key = (reference, base_uri)
        result = self._memo.get(key)
        if result is None:
            if self.resolver is None:
                result = Err(ReferenceResolutionError(reference, "no reference resolver is configured"))
            else:
                try:
                    result = Ok(self.resolver.resolve(reference, base_uri))
                except ReferenceResolutionError as exc:
                    result = Err(exc)
            self._memo[key] = result
        return result

    def iter_components(self) -> Iterator[tuple[str, SchemaNode]]:
        if self.resolver is None:
            return iter(())
        return self.resolver.iter_components()
