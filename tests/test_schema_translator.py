"""
Tests for the schema translator.
"""

import pytest

from openapi_adapter.schema_translator import (
    json_body_schema,
    resolve_kind,
    translate_body,
    translate_parameter,
    translate_parameters,
    translate_schema,
)
from toolserver.tool_registry import FieldKind, FieldLocation


@pytest.mark.parametrize(
    "declared, expected",
    [
        ("string", FieldKind.STRING),
        ("number", FieldKind.NUMBER),
        ("integer", FieldKind.INTEGER),
        ("boolean", FieldKind.BOOLEAN),
        ("array", FieldKind.ARRAY),
        ("object", FieldKind.OBJECT),
    ],
)
def test_recognized_types_keep_their_kind(declared, expected):
    """Each primitive OpenAPI type maps to the matching kind."""
    assert translate_schema("f", {"type": declared}).kind == expected


@pytest.mark.parametrize("declared", ["date", "null", "", None, 7, ["string", "null"]])
def test_unrecognized_types_fall_back_to_string(declared):
    """Unknown, empty and non-string types become strings without raising."""
    assert resolve_kind(declared) == FieldKind.STRING
    assert translate_schema("f", {"type": declared}).kind == FieldKind.STRING


def test_missing_schema_falls_back_to_string():
    """Absent or malformed schema fragments are treated as empty."""
    assert translate_schema("f", None).kind == FieldKind.STRING
    assert translate_schema("f", "oops").kind == FieldKind.STRING


def test_description_attached_verbatim():
    """The fragment's description is carried over unchanged."""
    field = translate_schema("f", {"type": "string", "description": "  The *name*  "})
    assert field.description == "  The *name*  "


def test_no_description_is_none():
    """A fragment without description yields no description."""
    assert translate_schema("f", {"type": "string"}).description is None


def test_parameter_optional_by_default():
    """Parameters are optional unless explicitly required."""
    field = translate_parameter({"name": "q", "in": "query", "schema": {"type": "string"}})

    assert field.name == "q"
    assert field.required is False
    assert field.location == FieldLocation.QUERY


def test_parameter_required_only_when_true():
    """Only a literal true marks a parameter required."""
    assert translate_parameter({"name": "q", "required": True}).required is True
    assert translate_parameter({"name": "q", "required": "yes"}).required is False


def test_parameter_location_recorded():
    """The `in` field decides where the value travels."""
    assert translate_parameter({"name": "id", "in": "path"}).location == FieldLocation.PATH
    assert translate_parameter({"name": "h", "in": "header"}).location == FieldLocation.HEADER


def test_parameter_description_used_when_schema_has_none():
    """A parameter's own description backs up its schema's."""
    field = translate_parameter(
        {"name": "q", "description": "Query text", "schema": {"type": "string"}}
    )
    assert field.description == "Query text"

    field = translate_parameter(
        {"name": "q", "description": "outer", "schema": {"description": "inner"}}
    )
    assert field.description == "inner"


def test_nameless_parameter_skipped():
    """A parameter without a name is skipped, not an error."""
    assert translate_parameter({"in": "query", "schema": {"type": "string"}}) is None
    assert translate_parameter({"name": ""}) is None
    assert translate_parameter("not-a-parameter") is None


def test_translate_parameters_keeps_order_and_skips_malformed():
    """Valid parameters keep their declared order."""
    fields = translate_parameters(
        [{"name": "b"}, {"in": "query"}, {"name": "a", "schema": {"type": "boolean"}}]
    )

    assert [f.name for f in fields] == ["b", "a"]
    assert fields[1].kind == FieldKind.BOOLEAN


def test_translate_parameters_non_list():
    """A non-list parameter declaration yields no fields."""
    assert translate_parameters(None) == []
    assert translate_parameters({"name": "q"}) == []


def test_body_properties_translated_with_required_list():
    """Body properties are required only when listed in `required`."""
    body = {
        "content": {
            "application/json": {
                "schema": {
                    "type": "object",
                    "required": ["code"],
                    "properties": {
                        "code": {"type": "string", "description": "Source"},
                        "timeout": {"type": "integer"},
                        "meta": {"type": "object"},
                    },
                }
            }
        }
    }

    fields = translate_body(body)

    assert [f.name for f in fields] == ["code", "timeout", "meta"]
    assert [f.required for f in fields] == [True, False, False]
    assert fields[0].description == "Source"
    assert fields[1].kind == FieldKind.INTEGER
    assert fields[2].kind == FieldKind.OBJECT
    assert all(f.location == FieldLocation.BODY for f in fields)


def test_body_without_required_list_is_all_optional():
    """No `required` list means every property is optional."""
    body = {"content": {"application/json": {"schema": {"properties": {"x": {}}}}}}

    fields = translate_body(body)

    assert len(fields) == 1
    assert fields[0].required is False
    assert fields[0].kind == FieldKind.STRING


@pytest.mark.parametrize(
    "body",
    [
        None,
        {},
        {"content": {"text/plain": {"schema": {"properties": {"x": {}}}}}},
        {"content": {"application/json": {}}},
        {"content": {"application/json": {"schema": {"type": "object"}}}},
        {"content": {"application/json": {"schema": {"type": "array", "items": {}}}}},
    ],
)
def test_body_without_json_object_properties_yields_nothing(body):
    """Only application/json schemas with properties contribute fields."""
    assert json_body_schema(body) is None
    assert translate_body(body) == []
