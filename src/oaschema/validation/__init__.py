from oaschema.validation.discriminator import (
    DiscriminatorResolutionFailure,
    FailureReason,
    Selection,
    resolve_discriminator,
)
from oaschema.validation.engine import Validator, is_valid, validate
from oaschema.validation.result import Annotations, ErrorKind, ValidationError, ValidationResult

__all__ = [
    "Annotations",
    "DiscriminatorResolutionFailure",
    "ErrorKind",
    "FailureReason",
    "Selection",
    "ValidationError",
    "ValidationResult",
    "Validator",
    "is_valid",
    "resolve_discriminator",
    "validate",
]
