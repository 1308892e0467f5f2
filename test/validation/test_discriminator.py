import pytest

from oaschema import ErrorKind, OpenApiDocument, ValidationConfig
from oaschema.core.result import Err, Ok
from oaschema.validation.discriminator import FailureReason, mapping_reference, resolve_discriminator


@pytest.mark.parametrize(
    ["instance", "name"],
    [
        ({"petType": "dog"}, "B"),
        ({"petType": "A"}, "A"),
        ({"petType": "B", "b": "x"}, "B"),
    ],
)
def test_select(document, instance, name):
    result = document.resolve_discriminator("AorB", instance)
    assert isinstance(result, Ok)
    selection = result.ok()
    assert selection.name == name
    assert selection.target is document.schema(name)
    assert selection.value == instance["petType"]


def test_mapping_selects_combinator_member(document):
    selection = document.resolve_discriminator("AorB", {"petType": "dog"}).ok()
    assert selection.schema_path == ("oneOf", 1)
    assert selection.node is document.schema("AorB").one_of[1]


@pytest.mark.parametrize(
    ["instance", "reason"],
    [
        ({"petType": "cat"}, FailureReason.UNKNOWN_VALUE),
        ({"name": "Rex"}, FailureReason.MISSING_PROPERTY),
        ({"petType": 1}, FailureReason.NOT_A_STRING),
        ("not an object", FailureReason.MISSING_PROPERTY),
    ],
)
def test_selection_failures(document, instance, reason):
    result = document.resolve_discriminator("AorB", instance)
    assert isinstance(result, Err)
    assert result.err().reason is reason


def test_unknown_value_message(document):
    failure = document.resolve_discriminator("AorB", {"petType": "cat"}).err()
    assert str(failure) == "unknown discriminator value: 'cat'"
    assert failure.is_authoring_problem


def test_no_discriminator(document):
    result = document.resolve_discriminator("A", {"petType": "A"})
    assert result.err().reason is FailureReason.NOT_APPLICABLE


def test_inline_members_never_match():
    schema = {
        "oneOf": [{"type": "object", "title": "Inline"}],
        "discriminator": {"propertyName": "kind"},
    }
    result = resolve_discriminator(schema, {"kind": "Inline"})
    assert result.err().reason is FailureReason.UNKNOWN_VALUE


def test_mapping_without_resolver():
    schema = {
        "oneOf": [{"type": "object"}],
        "discriminator": {"propertyName": "kind", "mapping": {"a": "#/components/schemas/A"}},
    }
    result = resolve_discriminator(schema, {"kind": "a"})
    assert result.err().reason is FailureReason.UNRESOLVABLE_MAPPING


@pytest.mark.parametrize(
    ["target", "expected"],
    [
        ("Dog", "#/components/schemas/Dog"),
        ("Pet.v2", "#/components/schemas/Pet.v2"),
        ("#/components/schemas/Dog", "#/components/schemas/Dog"),
        ("https://example.com/dog.json", "https://example.com/dog.json"),
    ],
)
def test_mapping_reference(target, expected):
    assert mapping_reference(target) == expected


def test_inheritance_selection(document):
    selection = document.resolve_discriminator("Pet", {"petType": "Cat"}).ok()
    assert selection.name == "Cat"
    assert selection.target is document.schema("Cat")
    # The base schema itself
    selection = document.resolve_discriminator("Pet", {"petType": "Pet"}).ok()
    assert selection.target is document.schema("Pet")
    assert document.resolve_discriminator("Pet", {"petType": "A"}).err().reason is FailureReason.UNKNOWN_VALUE


def test_shortcut_decides_the_outcome(document):
    # Both `A` and `B` accept the instance, the discriminator picks one
    instance = {"petType": "dog", "b": "x"}
    result = document.validate("AorB", instance)
    assert result.valid
    assert result.selected == {"": document.schema("B")}
    exhaustive = OpenApiDocument.from_dict(document.raw, config=ValidationConfig(discriminator_shortcut=False))
    result = exhaustive.validate("AorB", instance)
    assert [error.keyword for error in result.errors] == ["oneOf"]
    assert result.selected == {"": exhaustive.schema("B")}


def test_selected_variant_errors(document):
    result = document.validate("AorB", {"petType": "dog", "b": 1})
    assert [(error.instance_path, error.schema_path, error.reason) for error in result.errors] == [
        ("/b", "/oneOf/1/$ref/properties/b/type", "type mismatch: expected string, got number")
    ]


def test_unknown_value_error(document):
    result = document.validate("AorB", {"petType": "cat"})
    assert result.kinds == {ErrorKind.DISCRIMINATOR}
    assert [(error.instance_path, error.schema_path, error.reason) for error in result.errors] == [
        ("", "/discriminator", "unknown discriminator value: 'cat'")
    ]


@pytest.mark.parametrize(
    ["instance", "valid"],
    [
        ({"a": "x"}, True),
        # Both variants match without a discriminator value
        ({"a": 1}, False),
        # Both variants declare `petType` as a string
        ({"petType": 1, "a": "x"}, False),
    ],
)
def test_fallback_to_exhaustive(document, instance, valid):
    assert document.validate("AorB", instance).valid is valid


def test_unresolvable_mapping_error(make_document):
    raw = make_document(
        {
            "A": {"type": "object"},
            "Broken": {
                "oneOf": [{"$ref": "#/components/schemas/A"}],
                "discriminator": {"propertyName": "kind", "mapping": {"x": "Missing"}},
            },
        }
    )
    result = OpenApiDocument.from_dict(raw).validate("Broken", {"kind": "x"})
    assert result.kinds == {ErrorKind.REFERENCE}
    assert result.errors[0].schema_path == "/discriminator/mapping/x"


@pytest.mark.parametrize(
    ["instance", "expected"],
    [
        ({"petType": "Cat", "huntingSkill": "stalking"}, []),
        ({"petType": "Cat"}, [("", "missing required property: huntingSkill")]),
        ({"petType": "Dog", "packSize": -1}, [("/packSize", "minimum not met")]),
        ({"petType": "Pet"}, []),
        ({"petType": "Fish"}, [("", "unknown discriminator value: 'Fish'")]),
        ({}, [("", "missing required property: petType")]),
    ],
)
def test_inheritance(document, instance, expected):
    result = document.validate("Pet", instance)
    assert [(error.instance_path, error.reason) for error in result.errors] == expected


def test_inheritance_records_selection(document):
    result = document.validate("Pet", {"petType": "Dog", "packSize": 3})
    assert result.valid
    assert result.selected == {"": document.schema("Dog")}


@pytest.mark.parametrize(
    ["instance", "valid"],
    [
        ({"petType": "Cat", "huntingSkill": "x"}, True),
        ({"petType": "Cat"}, False),
        # The base schema dispatches to `Dog`, which requires `packSize`
        ({"petType": "Dog", "huntingSkill": "x"}, False),
    ],
)
def test_variant_validated_directly(document, instance, valid):
    assert document.validate("Cat", instance).valid is valid


def test_variant_validated_directly_reports_errors_once(document):
    result = document.validate("Cat", {"petType": "Cat"})
    assert [(error.instance_path, error.schema_path, error.reason) for error in result.errors] == [
        ("", "/allOf/1/required", "missing required property: huntingSkill")
    ]
    assert result.selected == {"": document.schema("Cat")}


def test_variant_behind_reference_reports_errors_once(make_document, pets):
    owner = {"properties": {"cat": {"$ref": "#/components/schemas/Cat"}}}
    raw = make_document({**pets["components"]["schemas"], "Owner": owner})
    document = OpenApiDocument.from_dict(raw)
    result = document.validate("Owner", {"cat": {"petType": "Cat"}})
    assert [(error.instance_path, error.schema_path) for error in result.errors] == [
        ("/cat", "/properties/cat/$ref/allOf/1/required")
    ]


def test_selection_in_failed_branch_is_discarded(make_document, pets):
    raw = make_document(
        {
            **pets["components"]["schemas"],
            "Keyed": {
                "oneOf": [{"$ref": "#/components/schemas/A"}, {"$ref": "#/components/schemas/B"}],
                "discriminator": {"propertyName": "k"},
            },
            "Wrapper": {
                "anyOf": [
                    {"allOf": [{"$ref": "#/components/schemas/Keyed"}], "required": ["zzz"]},
                    {"type": "object"},
                ]
            },
        }
    )
    document = OpenApiDocument.from_dict(raw)
    result = document.validate("Wrapper", {"k": "A"})
    assert result.valid
    assert result.selected == {}
    # The same selection counts once its branch passes
    result = document.validate("Wrapper", {"k": "A", "zzz": 1})
    assert result.valid
    assert result.selected == {"": document.schema("A")}


def test_selection_under_not_is_discarded(make_document, pets):
    raw = make_document(
        {
            **pets["components"]["schemas"],
            "NotAorB": {"not": {"$ref": "#/components/schemas/AorB"}},
        }
    )
    document = OpenApiDocument.from_dict(raw)
    result = document.validate("NotAorB", {"petType": "A", "a": "x"})
    assert result.valid
    assert result.selected == {}


def test_nested_selection(make_document):
    raw = make_document(
        {
            "Circle": {"type": "object", "properties": {"radius": {"type": "number"}}},
            "Square": {"type": "object", "properties": {"side": {"type": "number"}}},
            "Shape": {
                "anyOf": [{"$ref": "#/components/schemas/Circle"}, {"$ref": "#/components/schemas/Square"}],
                "discriminator": {"propertyName": "kind"},
            },
            "Drawing": {"type": "array", "items": {"$ref": "#/components/schemas/Shape"}},
        }
    )
    document = OpenApiDocument.from_dict(raw)
    result = document.validate("Drawing", [{"kind": "Circle", "radius": 1}, {"kind": "Square", "side": "2"}])
    assert [(error.instance_path, error.keyword) for error in result.errors] == [("/1/side", "type")]
    assert result.selected == {"/0": document.schema("Circle"), "/1": document.schema("Square")}
