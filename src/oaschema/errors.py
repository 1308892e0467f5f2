"""Public oaschema errors."""

from oaschema.config import ConfigError
from oaschema.core.errors import (
    InstanceValidationFailure,
    InvalidRegexPattern,
    OaSchemaError,
    ReferenceResolutionError,
    SchemaAuthoringError,
)
from oaschema.document import UnsupportedVersion
from oaschema.validation.discriminator import DiscriminatorResolutionFailure

__all__ = [
    "ConfigError",
    "DiscriminatorResolutionFailure",
    "InstanceValidationFailure",
    "InvalidRegexPattern",
    "OaSchemaError",
    "ReferenceResolutionError",
    "SchemaAuthoringError",
    "UnsupportedVersion",
]
