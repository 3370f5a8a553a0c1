"""
Tests for the tool registry and argument validation.
"""

from typing import Any, Dict, List

import pytest

from toolserver.tool_registry import (
    ArgumentValidationError,
    FieldDescriptor,
    FieldKind,
    ToolDescriptor,
    ToolHandler,
    ToolRegistry,
    validate_arguments,
    validate_value,
)


class EchoHandler(ToolHandler):
    """Returns its arguments as a text item."""

    def __init__(self, descriptor: ToolDescriptor):
        self.descriptor = descriptor
        self.calls: List[Dict[str, Any]] = []

    def get_tool_definition(self) -> ToolDescriptor:
        return self.descriptor

    async def execute(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append(arguments)
        return [{"type": "text", "text": repr(sorted(arguments.items()))}]


class FailingHandler(EchoHandler):
    """Always raises."""

    def __init__(self, descriptor: ToolDescriptor, error: Exception):
        super().__init__(descriptor)
        self.error = error

    async def execute(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise self.error


@pytest.fixture
def search_tool() -> ToolDescriptor:
    return ToolDescriptor(
        name="search",
        description="Search things",
        parameters={
            "q": FieldDescriptor(name="q", kind=FieldKind.STRING, required=True),
            "limit": FieldDescriptor(name="limit", kind=FieldKind.INTEGER),
            "ratio": FieldDescriptor(name="ratio", kind=FieldKind.NUMBER),
            "exact": FieldDescriptor(name="exact", kind=FieldKind.BOOLEAN),
            "tags": FieldDescriptor(name="tags", kind=FieldKind.ARRAY),
            "filter": FieldDescriptor(name="filter", kind=FieldKind.OBJECT),
        },
        path="/search",
        method="get",
    )


class TestValidation:
    """Argument validation against field kinds."""

    def test_valid_arguments_pass_through(self, search_tool):
        arguments = {
            "q": "cats",
            "limit": 5,
            "ratio": 0.5,
            "exact": False,
            "tags": ["a"],
            "filter": {"k": "v"},
        }

        assert validate_arguments(search_tool, arguments) == arguments

    def test_missing_required_rejected(self, search_tool):
        with pytest.raises(ArgumentValidationError) as exc_info:
            validate_arguments(search_tool, {"limit": 5})

        assert exc_info.value.field_name == "q"
        assert "required" in str(exc_info.value)

    def test_unknown_argument_rejected(self, search_tool):
        with pytest.raises(ArgumentValidationError, match="'nope'"):
            validate_arguments(search_tool, {"q": "x", "nope": 1})

    @pytest.mark.parametrize(
        "name, value",
        [
            ("q", 1),
            ("limit", "5"),
            ("limit", 1.5),
            ("limit", True),
            ("ratio", "0.5"),
            ("ratio", False),
            ("ratio", float("nan")),
            ("exact", "true"),
            ("exact", 1),
            ("tags", "a,b"),
            ("filter", ["k"]),
        ],
    )
    def test_mistyped_argument_rejected(self, search_tool, name, value):
        arguments = {"q": "x", name: value} if name != "q" else {"q": value}

        with pytest.raises(ArgumentValidationError) as exc_info:
            validate_arguments(search_tool, arguments)

        assert exc_info.value.field_name == name

    def test_integral_float_narrowed_for_integer(self, search_tool):
        validated = validate_arguments(search_tool, {"q": "x", "limit": 3.0})

        assert validated["limit"] == 3
        assert isinstance(validated["limit"], int)

    def test_number_accepts_int(self, search_tool):
        assert validate_arguments(search_tool, {"q": "x", "ratio": 2})["ratio"] == 2

    def test_null_for_optional_allowed(self, search_tool):
        assert validate_arguments(search_tool, {"q": "x", "limit": None})["limit"] is None

    def test_null_for_required_rejected(self):
        field = FieldDescriptor(name="q", required=True)

        with pytest.raises(ArgumentValidationError, match="null"):
            validate_value(field, None)

    def test_argument_order_kept(self, search_tool):
        validated = validate_arguments(search_tool, {"limit": 1, "q": "x"})

        assert list(validated) == ["limit", "q"]


class TestToolRegistry:
    """Registration and execution."""

    @pytest.mark.asyncio
    async def test_register_and_list(self, search_tool):
        registry = ToolRegistry()
        await registry.register_tool_handler(EchoHandler(search_tool))

        tools = await registry.list_tools()

        assert [t.name for t in tools] == ["search"]
        assert await registry.get_tool("search") == search_tool
        assert await registry.get_tool("missing") is None

    @pytest.mark.asyncio
    async def test_execute_success(self, search_tool):
        registry = ToolRegistry()
        handler = EchoHandler(search_tool)
        await registry.register_tool_handler(handler)

        execution = await registry.execute_tool("search", {"q": "cats", "limit": 2.0})

        assert execution.success is True
        assert execution.error is None
        assert execution.content[0]["type"] == "text"
        assert execution.execution_time_ms is not None
        assert handler.calls == [{"q": "cats", "limit": 2}]

    @pytest.mark.asyncio
    async def test_unknown_tool_lists_available(self, search_tool):
        registry = ToolRegistry()
        await registry.register_tool_handler(EchoHandler(search_tool))

        execution = await registry.execute_tool("nope", {})

        assert execution.success is False
        assert "Tool 'nope' not found" in execution.error
        assert "search" in execution.error

    @pytest.mark.asyncio
    async def test_invalid_arguments_never_reach_handler(self, search_tool):
        registry = ToolRegistry()
        handler = EchoHandler(search_tool)
        await registry.register_tool_handler(handler)

        execution = await registry.execute_tool("search", {"limit": 1})

        assert execution.success is False
        assert execution.error.startswith("Argument validation failed")
        assert handler.calls == []

    @pytest.mark.asyncio
    async def test_handler_error_becomes_failed_execution(self, search_tool):
        registry = ToolRegistry()
        await registry.register_tool_handler(
            FailingHandler(search_tool, RuntimeError("upstream exploded"))
        )

        execution = await registry.execute_tool("search", {"q": "x"})

        assert execution.success is False
        assert execution.error == "upstream exploded"

    @pytest.mark.asyncio
    async def test_empty_error_message_uses_type_name(self, search_tool):
        registry = ToolRegistry()
        await registry.register_tool_handler(FailingHandler(search_tool, KeyError()))

        execution = await registry.execute_tool("search", {"q": "x"})

        assert execution.error == "KeyError"

    @pytest.mark.asyncio
    async def test_reregistration_replaces(self, search_tool):
        registry = ToolRegistry()
        first = EchoHandler(search_tool)
        second = EchoHandler(search_tool)
        await registry.register_tool_handler(first)
        await registry.register_tool_handler(second)

        await registry.execute_tool("search", {"q": "x"})

        assert len(await registry.list_tools()) == 1
        assert first.calls == []
        assert second.calls == [{"q": "x"}]


def test_to_mcp_shape(search_tool):
    rendered = search_tool.to_mcp()

    assert rendered["name"] == "search"
    assert rendered["description"] == "Search things"
    assert rendered["inputSchema"]["required"] == ["q"]
    assert rendered["inputSchema"]["properties"]["filter"] == {"type": "object", "properties": {}}
