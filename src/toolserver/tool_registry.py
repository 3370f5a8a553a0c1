"""
Tool Registry for the MCP bridge

Holds every tool the server exposes together with the handler that runs it.
Tools are registered once at startup and read concurrently afterwards.

Key Features:
- Protocol-neutral tool and field descriptors
- Argument validation against each field's declared kind before dispatch
- Handler failures reported as failed executions, never raised to the caller
"""

import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from common.logging import get_logger

logger = get_logger(__name__)


class FieldKind(str, Enum):
    """Primitive kinds a tool argument can take."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class FieldLocation(str, Enum):
    """Where an argument travels in the outbound request."""

    QUERY = "query"
    PATH = "path"
    HEADER = "header"
    COOKIE = "cookie"
    BODY = "body"


class FieldDescriptor(BaseModel):
    """One typed tool argument."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: FieldKind = FieldKind.STRING
    description: Optional[str] = None
    required: bool = False
    location: FieldLocation = FieldLocation.QUERY

    def json_schema(self) -> Dict[str, Any]:
        """Render this field as a JSON Schema property."""
        schema: Dict[str, Any] = {"type": self.kind.value}
        if self.kind == FieldKind.ARRAY:
            schema["items"] = {}
        elif self.kind == FieldKind.OBJECT:
            schema["properties"] = {}
        if self.description:
            schema["description"] = self.description
        return schema


class ToolDescriptor(BaseModel):
    """One callable tool: name, description, parameters and the HTTP route it maps to."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: Dict[str, FieldDescriptor] = Field(default_factory=dict)
    path: str = ""
    method: str = "post"

    def input_schema(self) -> Dict[str, Any]:
        """Render the MCP inputSchema for this tool."""
        return {
            "type": "object",
            "properties": {name: f.json_schema() for name, f in self.parameters.items()},
            "required": [name for name, f in self.parameters.items() if f.required],
        }

    def to_mcp(self) -> Dict[str, Any]:
        """Render the tools/list entry for this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ArgumentValidationError(ValueError):
    """A caller-supplied argument does not fit the tool's field set."""

    def __init__(self, field_name: Optional[str], message: str):
        self.field_name = field_name
        self.message = message
        if field_name:
            super().__init__(f"Parameter '{field_name}': {message}")
        else:
            super().__init__(message)


@dataclass
class ToolExecution:
    """Result of tool execution."""

    success: bool
    content: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None


class ToolHandler(ABC):
    """Abstract base class for tool handlers."""

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Execute the tool with validated arguments and return content items."""
        pass

    @abstractmethod
    def get_tool_definition(self) -> ToolDescriptor:
        """Get the tool definition for this handler."""
        pass


def validate_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """
    Check one argument value against its field kind.

    Returns the value to dispatch. Integral floats given for integer fields
    are narrowed to int; everything else passes through unchanged.

    Raises:
        ArgumentValidationError: If the value does not match the kind
    """
    if value is None:
        if descriptor.required:
            raise ArgumentValidationError(descriptor.name, "is required but got null")
        return None

    kind = descriptor.kind
    type_name = type(value).__name__

    if kind == FieldKind.STRING:
        if not isinstance(value, str):
            raise ArgumentValidationError(descriptor.name, f"expected string, got {type_name}")
        return value

    if kind == FieldKind.BOOLEAN:
        if not isinstance(value, bool):
            raise ArgumentValidationError(descriptor.name, f"expected boolean, got {type_name}")
        return value

    if kind in (FieldKind.INTEGER, FieldKind.NUMBER):
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ArgumentValidationError(
                descriptor.name, f"expected {kind.value}, got {type_name}"
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise ArgumentValidationError(descriptor.name, f"expected finite {kind.value}")
        if kind == FieldKind.INTEGER:
            if isinstance(value, float):
                if not value.is_integer():
                    raise ArgumentValidationError(
                        descriptor.name, f"expected integer, got {value}"
                    )
                return int(value)
        return value

    if kind == FieldKind.ARRAY:
        if not isinstance(value, list):
            raise ArgumentValidationError(descriptor.name, f"expected array, got {type_name}")
        return value

    if kind == FieldKind.OBJECT:
        if not isinstance(value, dict):
            raise ArgumentValidationError(descriptor.name, f"expected object, got {type_name}")
        return value

    return value


def validate_arguments(tool: ToolDescriptor, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an invocation's arguments against a tool's field set.

    Returns:
        The validated arguments, in the caller's order

    Raises:
        ArgumentValidationError: On a missing required, unknown, or mistyped argument
    """
    for name, descriptor in tool.parameters.items():
        if descriptor.required and name not in arguments:
            raise ArgumentValidationError(name, "is required but missing")

    validated: Dict[str, Any] = {}
    for name, value in arguments.items():
        descriptor = tool.parameters.get(name)
        if descriptor is None:
            raise ArgumentValidationError(name, "is not a known parameter")
        validated[name] = validate_value(descriptor, value)

    return validated


class ToolRegistry:
    """
    Registry for the tools served by the bridge.

    Built once at startup; lookups and executions afterwards never mutate it.
    """

    def __init__(self):
        """Initialize the tool registry."""
        self.tools: Dict[str, ToolDescriptor] = {}
        self.handlers: Dict[str, ToolHandler] = {}

    async def register_tool_handler(self, handler: ToolHandler) -> None:
        """Register a tool with its handler."""
        tool = handler.get_tool_definition()
        if tool.name in self.tools:
            logger.warning(event="tool_replaced", tool_name=tool.name)

        self.tools[tool.name] = tool
        self.handlers[tool.name] = handler

        logger.info(
            event="tool_registered",
            tool_name=tool.name,
            parameters_count=len(tool.parameters),
            handler_type=type(handler).__name__,
        )

    async def list_tools(self) -> List[ToolDescriptor]:
        """List all registered tools."""
        return list(self.tools.values())

    async def get_tool(self, tool_name: str) -> Optional[ToolDescriptor]:
        """Get a specific tool definition."""
        return self.tools.get(tool_name)

    async def execute_tool(self, tool_name: str, arguments: Dict[str, Any]) -> ToolExecution:
        """
        Execute a tool with given arguments.

        Args:
            tool_name: Name of the tool to execute
            arguments: Arguments to pass to the tool

        Returns:
            ToolExecution result with success status and content items
        """
        start_time = time.perf_counter()

        tool = self.tools.get(tool_name)
        handler = self.handlers.get(tool_name)
        if tool is None or handler is None:
            return ToolExecution(
                success=False,
                error=f"Tool '{tool_name}' not found. Available tools: {list(self.tools.keys())}",
            )

        try:
            validated = validate_arguments(tool, arguments)
        except ArgumentValidationError as e:
            logger.info(event="tool_arguments_rejected", tool_name=tool_name, error=str(e))
            return ToolExecution(success=False, error=f"Argument validation failed: {e}")

        try:
            content = await handler.execute(validated)
        except Exception as e:
            execution_time = (time.perf_counter() - start_time) * 1000

            logger.error(
                event="tool_execution_error",
                tool_name=tool_name,
                error_type=type(e).__name__,
                error=str(e),
                execution_time_ms=round(execution_time, 2),
            )

            return ToolExecution(
                success=False, error=str(e) or type(e).__name__, execution_time_ms=execution_time
            )

        execution_time = (time.perf_counter() - start_time) * 1000

        logger.info(
            event="tool_executed",
            tool_name=tool_name,
            execution_time_ms=round(execution_time, 2),
            content_items=len(content),
        )

        return ToolExecution(success=True, content=content, execution_time_ms=execution_time)
