from typing import Any

JsonSchemaObject = dict[str, Any]
JsonSchema = JsonSchemaObject | bool

ALL_TYPES = ["null", "boolean", "integer", "number", "string", "array", "object"]


def to_json_type_name(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, dict):
        return "object"
    if isinstance(v, list):
        return "array"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    return type(v).__name__
