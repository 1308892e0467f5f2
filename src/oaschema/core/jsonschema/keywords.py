"""Keyword families of the Schema Object."""

# Keywords holding a single subschema
IN_VALUE = frozenset(
    (
        "not",
        "if",
        "then",
        "else",
        "contains",
        "additionalProperties",
        "unevaluatedProperties",
        "additionalItems",
        "unevaluatedItems",
        "propertyNames",
    )
)
# Keywords holding a list of subschemas
IN_ITEM = frozenset(("allOf", "anyOf", "oneOf", "prefixItems"))
# Keywords holding a mapping of subschemas
IN_CHILD = frozenset(("properties", "patternProperties", "dependentSchemas", "$defs", "definitions"))

# Keywords that never influence validation
INFORMATIONAL = frozenset(
    (
        "$schema",
        "$defs",
        "definitions",
        "$recursiveAnchor",
        "$dynamicAnchor",
        "$anchor",
        "$comment",
        "$vocabulary",
        "title",
        "description",
        "default",
        "examples",
        "example",
        "deprecated",
        "contentEncoding",
        "contentMediaType",
        "contentSchema",
    )
)

ASSERTIONS = frozenset(
    (
        "type",
        "enum",
        "const",
        "multipleOf",
        "minimum",
        "maximum",
        "exclusiveMinimum",
        "exclusiveMaximum",
        "minLength",
        "maxLength",
        "pattern",
        "format",
        "minItems",
        "maxItems",
        "uniqueItems",
        "minContains",
        "maxContains",
        "minProperties",
        "maxProperties",
        "required",
        "dependentRequired",
    )
)

APPLICATORS = IN_VALUE | IN_ITEM | IN_CHILD | frozenset(("items", "$ref", "$recursiveRef", "$dynamicRef"))

OPENAPI_KEYWORDS = frozenset(("discriminator", "xml", "externalDocs", "nullable", "readOnly", "writeOnly"))

ALL_KEYWORDS = INFORMATIONAL | ASSERTIONS | APPLICATORS | OPENAPI_KEYWORDS | frozenset(("$id",))

EXTENSION_PREFIX = "x-"


def is_extension(key: str) -> bool:
    return key.startswith(EXTENSION_PREFIX)
