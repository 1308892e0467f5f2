from __future__ import annotations

import logging

import pytest
from hypothesis import settings

from oaschema import OpenApiDocument, ValidationConfig
from oaschema.core.jsonschema import formats

# Register Hypothesis profile. Could be used as
# `pytest test --hypothesis-profile <profile-name>`
settings.register_profile("CI", max_examples=2000)

logging.getLogger("oaschema").setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def reset_formats():
    builtin = formats.FORMAT_CHECKER.checkers.copy()
    yield
    formats.FORMAT_CHECKER.checkers.clear()
    formats.FORMAT_CHECKER.checkers.update(builtin)


def _make_document(schemas: dict, version: str = "3.1.0", **kwargs) -> dict:
    return {
        "openapi": version,
        "info": {"title": "Test", "version": "0.1"},
        "paths": {},
        "components": {"schemas": schemas},
        **kwargs,
    }


PETS = {
    "Pet": {
        "type": "object",
        "required": ["petType"],
        "properties": {"petType": {"type": "string"}, "name": {"type": "string"}},
        "discriminator": {"propertyName": "petType"},
    },
    "Cat": {
        "allOf": [
            {"$ref": "#/components/schemas/Pet"},
            {"type": "object", "properties": {"huntingSkill": {"type": "string"}}, "required": ["huntingSkill"]},
        ]
    },
    "Dog": {
        "allOf": [
            {"$ref": "#/components/schemas/Pet"},
            {"type": "object", "properties": {"packSize": {"type": "integer", "minimum": 0}}, "required": ["packSize"]},
        ]
    },
    "A": {"type": "object", "properties": {"petType": {"type": "string"}, "a": {"type": "integer"}}},
    "B": {"type": "object", "properties": {"petType": {"type": "string"}, "b": {"type": "string"}}},
    "AorB": {
        "oneOf": [{"$ref": "#/components/schemas/A"}, {"$ref": "#/components/schemas/B"}],
        "discriminator": {"propertyName": "petType", "mapping": {"dog": "#/components/schemas/B"}},
    },
}


@pytest.fixture
def make_document():
    return _make_document


@pytest.fixture
def pets():
    return _make_document(PETS)


@pytest.fixture
def document(pets):
    return OpenApiDocument.from_dict(pets)


@pytest.fixture
def config():
    return ValidationConfig()
