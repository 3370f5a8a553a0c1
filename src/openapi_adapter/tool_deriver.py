"""
Tool Deriver

Walks every path and HTTP method of an OpenAPI document and produces one
ToolDescriptor per operation.
"""

from typing import Any, Dict, List, Mapping, Optional

from common.logging import get_logger
from toolserver.tool_registry import FieldDescriptor, ToolDescriptor

from .errors import MissingDescriptionError
from .schema_translator import translate_body, translate_parameters

logger = get_logger(__name__)

# Extension field naming the tool explicitly
TOOL_NAME_EXTENSION = "x_mcp_tool"

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


def _text(value: Any) -> Optional[str]:
    """Return value if it is a non-empty string."""
    if isinstance(value, str) and value:
        return value
    return None


def resolve_tool_name(path: str, operation: Mapping[str, Any]) -> str:
    """Tool name: extension field, then summary, then the raw path."""
    return _text(operation.get(TOOL_NAME_EXTENSION)) or _text(operation.get("summary")) or path


def resolve_description(path: str, method: str, operation: Mapping[str, Any]) -> str:
    """
    Tool description: description, then summary, then the extension field.

    This is not the name order: the long description is preferred over the
    summary, and the extension field comes last.

    Raises:
        MissingDescriptionError: If the operation documents none of them
    """
    description = (
        _text(operation.get("description"))
        or _text(operation.get("summary"))
        or _text(operation.get(TOOL_NAME_EXTENSION))
    )
    if description is None:
        raise MissingDescriptionError(path, method)
    return description


def derive_tool(
    path: str,
    method: str,
    operation: Mapping[str, Any],
    shared_parameters: Any = None,
) -> ToolDescriptor:
    """
    Build the tool descriptor for one operation.

    Parameters come first (path-level ones ahead of the operation's own),
    then JSON body properties. A body property replaces a parameter of the
    same name.
    """
    name = resolve_tool_name(path, operation)
    description = resolve_description(path, method, operation)

    fields: Dict[str, FieldDescriptor] = {}
    for descriptor in translate_parameters(shared_parameters):
        fields[descriptor.name] = descriptor
    for descriptor in translate_parameters(operation.get("parameters")):
        fields[descriptor.name] = descriptor
    for descriptor in translate_body(operation.get("requestBody")):
        if descriptor.name in fields:
            logger.debug(
                event="body_property_overrides_parameter",
                tool_name=name,
                field=descriptor.name,
            )
        fields[descriptor.name] = descriptor

    return ToolDescriptor(
        name=name,
        description=description,
        parameters=fields,
        path=path,
        method=method.lower(),
    )


def derive_tools(document: Mapping[str, Any]) -> List[ToolDescriptor]:
    """
    Derive every tool of a document, in document order.

    Raises:
        MissingDescriptionError: If any operation lacks a description. The
            whole derivation fails, never just that operation.
    """
    tools: List[ToolDescriptor] = []
    paths = document.get("paths") or {}

    for path, path_item in paths.items():
        if not isinstance(path_item, Mapping):
            continue

        shared_parameters = path_item.get("parameters")
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, Mapping):
                continue
            tools.append(derive_tool(path, method, operation, shared_parameters))

    logger.info(event="tools_derived", tools_count=len(tools))
    return tools
