from .keywords import ALL_KEYWORDS
from .types import JsonSchema, to_json_type_name

__all__ = [
    "ALL_KEYWORDS",
    "JsonSchema",
    "to_json_type_name",
]
