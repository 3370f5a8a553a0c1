"""
Schema Translator

Turns one OpenAPI parameter or request-body property into a FieldDescriptor.
Translation never fails: unknown or missing types fall back to string and
nameless parameters are skipped, so one malformed field cannot block the
rest of the document.
"""

from typing import Any, Dict, List, Mapping, Optional

from common.logging import get_logger
from toolserver.tool_registry import FieldDescriptor, FieldKind, FieldLocation

logger = get_logger(__name__)

JSON_MEDIA_TYPE = "application/json"

_KIND_BY_TYPE = {
    "string": FieldKind.STRING,
    "number": FieldKind.NUMBER,
    "integer": FieldKind.INTEGER,
    "boolean": FieldKind.BOOLEAN,
    "array": FieldKind.ARRAY,
    "object": FieldKind.OBJECT,
}

_LOCATION_BY_IN = {
    "query": FieldLocation.QUERY,
    "path": FieldLocation.PATH,
    "header": FieldLocation.HEADER,
    "cookie": FieldLocation.COOKIE,
}


def resolve_kind(declared_type: Any) -> FieldKind:
    """Map an OpenAPI `type` to a field kind, defaulting to string."""
    if isinstance(declared_type, str):
        return _KIND_BY_TYPE.get(declared_type, FieldKind.STRING)
    return FieldKind.STRING


def translate_schema(
    name: str,
    schema: Any,
    required: bool = False,
    location: FieldLocation = FieldLocation.QUERY,
    fallback_description: Optional[str] = None,
) -> FieldDescriptor:
    """
    Translate one schema fragment into a field descriptor.

    Args:
        name: Field name
        schema: The fragment, e.g. {"type": "integer", "description": "..."}
        required: Whether the enclosing context marks the field required
        location: Where the value travels in the outbound request
        fallback_description: Used when the fragment has no description

    Returns:
        The field descriptor
    """
    if not isinstance(schema, Mapping):
        schema = {}

    kind = resolve_kind(schema.get("type"))
    if "type" in schema and kind.value != schema.get("type"):
        logger.debug(event="schema_type_fallback", field=name, declared_type=schema.get("type"))

    description = schema.get("description")
    if not isinstance(description, str) or not description:
        description = fallback_description or None

    return FieldDescriptor(
        name=name,
        kind=kind,
        description=description,
        required=required,
        location=location,
    )


def translate_parameter(parameter: Any) -> Optional[FieldDescriptor]:
    """
    Translate an OpenAPI parameter object.

    Returns None for a parameter that has no name.
    """
    if not isinstance(parameter, Mapping):
        return None

    name = parameter.get("name")
    if not isinstance(name, str) or not name:
        logger.debug(event="parameter_skipped", reason="missing name")
        return None

    location = _LOCATION_BY_IN.get(parameter.get("in"), FieldLocation.QUERY)
    description = parameter.get("description")

    return translate_schema(
        name,
        parameter.get("schema"),
        required=parameter.get("required") is True,
        location=location,
        fallback_description=description if isinstance(description, str) else None,
    )


def translate_parameters(parameters: Any) -> List[FieldDescriptor]:
    """Translate a parameter list, skipping malformed entries."""
    if not isinstance(parameters, list):
        return []

    translated = []
    for parameter in parameters:
        descriptor = translate_parameter(parameter)
        if descriptor is not None:
            translated.append(descriptor)
    return translated


def json_body_schema(request_body: Any) -> Optional[Dict[str, Any]]:
    """Return the application/json schema of a request body, if it has properties."""
    if not isinstance(request_body, Mapping):
        return None

    content = request_body.get("content")
    if not isinstance(content, Mapping):
        return None

    media = content.get(JSON_MEDIA_TYPE)
    if not isinstance(media, Mapping):
        return None

    schema = media.get("schema")
    if not isinstance(schema, Mapping) or not isinstance(schema.get("properties"), Mapping):
        return None

    return dict(schema)


def translate_body(request_body: Any) -> List[FieldDescriptor]:
    """
    Translate the properties of a JSON request body.

    A property is required only when the schema's `required` list names it.
    """
    schema = json_body_schema(request_body)
    if schema is None:
        return []

    required_names = schema.get("required")
    if not isinstance(required_names, list):
        required_names = []

    return [
        translate_schema(
            str(name),
            property_schema,
            required=name in required_names,
            location=FieldLocation.BODY,
        )
        for name, property_schema in schema["properties"].items()
    ]
