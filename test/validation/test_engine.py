import pytest

from oaschema import ErrorKind, ValidationConfig, Validator, is_valid, validate
from oaschema.config import Direction
from oaschema.core.errors import InstanceValidationFailure
from oaschema.references import RegistryResolver
from oaschema.schema.loader import load_schema

USER = {"type": "object", "required": ["name"], "properties": {"name": {"type": "string"}}}


def errors_of(schema, instance, **kwargs):
    result = validate(schema, instance, **kwargs)
    return [(error.instance_path, error.schema_path, error.reason) for error in result.errors]


@pytest.mark.parametrize(
    ["instance", "expected"],
    [
        (50, []),
        (150, [("", "/maximum", "maximum exceeded")]),
        (-1, [("", "/minimum", "minimum not met")]),
        ("50", [("", "/type", "type mismatch: expected integer, got string")]),
    ],
)
def test_integer_range(instance, expected):
    assert errors_of({"type": "integer", "minimum": 0, "maximum": 100}, instance) == expected


@pytest.mark.parametrize(
    ["instance", "expected"],
    [
        ({}, [("", "/required", "missing required property: name")]),
        ({"name": 123}, [("/name", "/properties/name/type", "type mismatch: expected string, got number")]),
        ({"name": "x"}, []),
    ],
)
def test_required_property(instance, expected):
    assert errors_of(USER, instance) == expected


def test_nested_paths():
    schema = {"type": "object", "properties": {"items": {"type": "array", "items": {"type": "string"}}}}
    assert errors_of(schema, {"items": ["a", 1]}) == [
        ("/items/1", "/properties/items/items/type", "type mismatch: expected string, got number")
    ]


def test_escaped_paths():
    schema = {"properties": {"a/b": {"type": "string"}}}
    assert errors_of(schema, {"a/b": 1})[0][:2] == ("/a~1b", "/properties/a~1b/type")


@pytest.mark.parametrize(
    ["instance", "valid"],
    [
        ([1, 1, 2], False),
        ([1, 2, 3], True),
    ],
)
def test_unique_items(instance, valid):
    assert is_valid({"type": "array", "uniqueItems": True}, instance) is valid


@pytest.mark.parametrize(
    ["schema", "instance", "valid"],
    [
        (True, {"anything": [1]}, True),
        (False, None, False),
        ({}, "anything", True),
        ({"not": {}}, 1, False),
        ({"not": {"type": "string"}}, 1, True),
        ({"allOf": [{"type": "integer"}, {"minimum": 5}]}, 7, True),
        ({"allOf": [{"type": "integer"}, {"minimum": 5}]}, 3, False),
        ({"anyOf": [{"type": "string"}, {"type": "integer"}]}, 1, True),
        ({"anyOf": [{"type": "string"}, {"type": "integer"}]}, 1.5, False),
        ({"oneOf": [{"type": "integer"}, {"minimum": 0}]}, -1, True),
        ({"oneOf": [{"type": "integer"}, {"minimum": 0}]}, 1, False),
        ({"oneOf": [{"type": "integer"}, {"minimum": 0}]}, -1.5, False),
        ({"if": {"type": "string"}, "then": {"minLength": 2}, "else": {"minimum": 0}}, "ab", True),
        ({"if": {"type": "string"}, "then": {"minLength": 2}, "else": {"minimum": 0}}, "a", False),
        ({"if": {"type": "string"}, "then": {"minLength": 2}, "else": {"minimum": 0}}, -1, False),
        ({"if": {"type": "string"}}, 1, True),
        ({"dependentSchemas": {"a": {"required": ["b"]}}}, {"a": 1}, False),
        ({"dependentSchemas": {"a": {"required": ["b"]}}}, {"c": 1}, True),
        ({"patternProperties": {"^x-": {"type": "string"}}}, {"x-a": 1}, False),
        ({"patternProperties": {"^x-": {"type": "string"}, "a$": {"minLength": 3}}}, {"x-a": "ab"}, False),
        ({"properties": {"a": {}}, "additionalProperties": False}, {"a": 1}, True),
        ({"properties": {"a": {}}, "additionalProperties": False}, {"a": 1, "b": 2}, False),
        ({"additionalProperties": {"type": "integer"}}, {"a": 1, "b": "2"}, False),
        ({"propertyNames": {"maxLength": 2}}, {"ab": 1}, True),
        ({"propertyNames": {"maxLength": 2}}, {"abc": 1}, False),
        ({"items": [{"type": "string"}, {"type": "integer"}]}, ["a", 1, None], True),
        ({"items": [{"type": "string"}], "additionalItems": False}, ["a", 1], False),
        ({"prefixItems": [{"type": "string"}], "items": {"type": "integer"}}, ["a", 1, 2], True),
        ({"prefixItems": [{"type": "string"}], "items": {"type": "integer"}}, ["a", 1, "b"], False),
        ({"contains": {"type": "string"}}, [1, "a"], True),
        ({"contains": {"type": "string"}}, [1, 2], False),
        ({"contains": {"type": "string"}, "minContains": 0}, [1, 2], True),
        ({"contains": {"type": "string"}, "minContains": 2}, ["a", 1], False),
        ({"contains": {"type": "string"}, "maxContains": 1}, ["a", "b"], False),
        ({"minContains": 2}, [1], True),
        ({"type": "string", "nullable": True}, None, True),
        ({"type": "string"}, None, False),
    ],
)
def test_keywords(schema, instance, valid):
    assert is_valid(schema, instance) is valid


def test_one_of_ambiguity():
    result = validate({"oneOf": [{"type": "integer"}, {"minimum": 0}]}, 5)
    assert [error.reason for error in result.errors] == ["value matches more than one oneOf schema (indices 0, 1)"]
    assert result.errors[0].schema_path == "/oneOf"


def test_combinator_errors_aggregate_branches():
    result = validate({"anyOf": [{"type": "string"}, {"type": "integer"}]}, 1.5)
    assert [(error.schema_path, error.keyword) for error in result.errors] == [
        ("/anyOf", "anyOf"),
        ("/anyOf/0/type", "type"),
        ("/anyOf/1/type", "type"),
    ]


@pytest.mark.parametrize(
    ["fail_fast", "expected"],
    [
        (False, ["/allOf/1/minLength", "/allOf/2/maxLength"]),
        (True, ["/allOf/1/minLength"]),
    ],
)
def test_fail_fast(fail_fast, expected):
    schema = {"allOf": [{"type": "string"}, {"minLength": 3}, {"maxLength": 1}]}
    result = validate(schema, "ab", config=ValidationConfig(fail_fast=fail_fast))
    assert [error.schema_path for error in result.errors] == expected


def test_if_errors_do_not_surface():
    result = validate({"if": {"type": "string", "minLength": 5}, "else": {"type": "integer"}}, "abc")
    assert [error.schema_path for error in result.errors] == ["/else/type"]


def test_additional_property_error():
    result = validate({"properties": {"a": {}}, "additionalProperties": False}, {"a": 1, "b": 2})
    assert [(error.instance_path, error.schema_path, error.reason) for error in result.errors] == [
        ("/b", "/additionalProperties", "unexpected property: b")
    ]


def test_contains_errors():
    result = validate({"contains": {"type": "string"}, "minContains": 2, "maxContains": 3}, [1])
    assert [(error.keyword, error.reason) for error in result.errors] == [
        ("minContains", "array contains fewer than 2 matching items")
    ]
    result = validate({"contains": {"type": "string"}}, [])
    assert [error.reason for error in result.errors] == ["array does not contain a matching item"]


def test_format_assertion():
    schema = {"type": "string", "format": "email"}
    assert is_valid(schema, "not an email")
    assert not is_valid(schema, "not an email", config=ValidationConfig(format_assertion=True))


@pytest.mark.parametrize(
    ["direction", "expected"],
    [
        (None, []),
        (
            Direction.REQUEST,
            [("/id", "/properties/id/readOnly", "read-only property 'id' is not allowed in a request")],
        ),
        (
            Direction.RESPONSE,
            [
                (
                    "/password",
                    "/properties/password/writeOnly",
                    "write-only property 'password' is not allowed in a response",
                )
            ],
        ),
    ],
)
def test_access_direction(direction, expected):
    schema = {
        "type": "object",
        "properties": {"id": {"type": "integer", "readOnly": True}, "password": {"type": "string", "writeOnly": True}},
    }
    instance = {"id": 1, "password": "secret"}
    assert errors_of(schema, instance, config=ValidationConfig(direction=direction)) == expected


def test_access_flags_behind_reference():
    document = {
        "components": {"schemas": {"Id": {"type": "integer", "readOnly": True}}},
        "properties": {"id": {"$ref": "#/components/schemas/Id"}},
    }
    validator = Validator(
        {"properties": {"id": {"$ref": "#/components/schemas/Id"}}},
        resolver=RegistryResolver(document),
        config=ValidationConfig(direction=Direction.REQUEST),
    )
    assert [error.keyword for error in validator.validate({"id": 1}).errors] == ["readOnly"]


def test_reference():
    document = {"$defs": {"Name": {"type": "string", "minLength": 1}}}
    resolver = RegistryResolver(document)
    schema = {"properties": {"name": {"$ref": "#/$defs/Name"}}}
    assert validate(schema, {"name": "x"}, resolver=resolver).valid
    result = validate(schema, {"name": ""}, resolver=resolver)
    assert [(error.instance_path, error.schema_path) for error in result.errors] == [
        ("/name", "/properties/name/$ref/minLength")
    ]


def test_reference_siblings_apply():
    resolver = RegistryResolver({"$defs": {"Name": {"type": "string"}}})
    schema = {"$ref": "#/$defs/Name", "maxLength": 2}
    assert not validate(schema, "abc", resolver=resolver).valid


@pytest.mark.parametrize("resolver", [None, RegistryResolver({})])
def test_unresolvable_reference(resolver):
    result = validate({"properties": {"a": {"$ref": "#/$defs/Missing"}}}, {"a": 1}, resolver=resolver)
    assert result.kinds == {ErrorKind.REFERENCE}
    assert result.errors[0].instance_path == "/a"
    assert "Reference `#/$defs/Missing` cannot be resolved" in result.errors[0].reason
    # No reference is evaluated without a matching instance
    assert validate({"properties": {"a": {"$ref": "#/$defs/Missing"}}}, {}, resolver=resolver).valid


def test_recursive_schema():
    document = {
        "$defs": {
            "Node": {
                "type": "object",
                "required": ["value"],
                "properties": {
                    "value": {"type": "integer"},
                    "children": {"type": "array", "items": {"$ref": "#/$defs/Node"}},
                },
            }
        }
    }
    resolver = RegistryResolver(document)
    tree = {"value": 1, "children": [{"value": 2, "children": [{"value": 3}]}]}
    assert validate({"$ref": "#/$defs/Node"}, tree, resolver=resolver).valid
    tree["children"][0]["children"][0]["value"] = "3"
    result = validate({"$ref": "#/$defs/Node"}, tree, resolver=resolver)
    assert [error.instance_path for error in result.errors] == ["/children/0/children/0/value"]


@pytest.mark.parametrize(
    "definitions",
    [
        {"A": {"$ref": "#/$defs/A"}},
        {"A": {"$ref": "#/$defs/B"}, "B": {"allOf": [{"$ref": "#/$defs/A"}]}},
    ],
)
def test_reference_cycle(definitions):
    resolver = RegistryResolver({"$defs": definitions})
    result = validate({"$ref": "#/$defs/A"}, 1, resolver=resolver)
    assert result.kinds == {ErrorKind.REFERENCE}
    assert "required reference" in result.errors[0].reason


def test_max_depth():
    schema = {"items": {"items": {"items": {"items": {"type": "string"}}}}}
    config = ValidationConfig(max_depth=2)
    result = validate(schema, [[[["a"]]]], config=config)
    assert result.kinds == {ErrorKind.DEPTH}
    assert result.errors[0].reason == "maximum nesting depth of 2 exceeded"
    assert validate(schema, [[[["a"]]]]).valid


def test_validator_accepts_compiled_nodes():
    node = load_schema(USER)
    validator = Validator(node)
    assert validator.schema is node
    assert validator.is_valid({"name": "x"})
    assert not validator.is_valid({})


def test_raise_for_errors():
    result = validate(USER, {})
    with pytest.raises(InstanceValidationFailure) as exc:
        result.raise_for_errors()
    assert exc.value.errors == result.errors
    assert str(exc.value) == "1 validation error(s)\n  - <root>: missing required property: name (at /required)"
    validate(USER, {"name": "x"}).raise_for_errors()


def test_result_truthiness():
    assert validate(USER, {"name": "x"})
    assert not validate(USER, {})


def test_int_and_float_are_equal_for_enum():
    assert is_valid({"enum": [1, "a"]}, 1.0)
    assert not is_valid({"enum": [1, "a"]}, True)
