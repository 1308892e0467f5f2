from __future__ import annotations

from oaschema import errors
from oaschema.config import Direction, DiscriminatorPolicy, ValidationConfig
from oaschema.core.jsonschema.formats import register_string_format, unregister_string_format
from oaschema.core.result import Err, Ok, Result
from oaschema.core.version import OASCHEMA_VERSION
from oaschema.document import OpenApiDocument
from oaschema.references import ReferenceResolver, RegistryResolver, ResolvedReference
from oaschema.schema.loader import load_schema
from oaschema.schema.nodes import SchemaNode
from oaschema.validation import (
    ErrorKind,
    Selection,
    ValidationError,
    ValidationResult,
    Validator,
    is_valid,
    resolve_discriminator,
    validate,
)

__version__ = OASCHEMA_VERSION

__all__ = [
    "__version__",
    # Core data structures
    "OpenApiDocument",
    "SchemaNode",
    "ValidationConfig",
    "Direction",
    "DiscriminatorPolicy",
    # Public errors
    "errors",
    # Compilation and validation
    "load_schema",
    "Validator",
    "validate",
    "is_valid",
    "ValidationResult",
    "ValidationError",
    "ErrorKind",
    # Discriminator
    "resolve_discriminator",
    "Selection",
    # References
    "ReferenceResolver",
    "RegistryResolver",
    "ResolvedReference",
    # Results
    "Ok",
    "Err",
    "Result",
    # Formats
    "register_string_format",
    "unregister_string_format",
]
