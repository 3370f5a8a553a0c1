"""
Static sandbox tool binding.

The sandbox API exposes a handful of POST endpoints under /api/tools/. Every
tool is declared once in SANDBOX_TOOLS and served through the same
dispatcher as OpenAPI-derived tools, so key handling, timeouts and response
normalization are shared.
"""

from typing import Any, Dict, List, Optional

import httpx

from common.config import Config
from common.logging import get_logger
from openapi_adapter.dispatcher import HttpToolHandler, classify_response
from toolserver.jsonrpc import text_item
from toolserver.tool_registry import (
    ArgumentValidationError,
    FieldDescriptor,
    FieldKind,
    FieldLocation,
    ToolDescriptor,
)

logger = get_logger(__name__)

SANDBOX_ID_DESCRIPTION = "The sandbox id of an existing sandbox to {action}"


def _field(name: str, description: str, required: bool = True) -> FieldDescriptor:
    return FieldDescriptor(
        name=name,
        kind=FieldKind.STRING,
        description=description,
        required=required,
        location=FieldLocation.BODY,
    )


def _tool(name: str, description: str, action: str, *fields: FieldDescriptor) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        parameters={f.name: f for f in fields},
        path=f"/api/tools/{action}",
        method="post",
    )


SANDBOX_TOOLS: List[ToolDescriptor] = [
    _tool(
        "sandbox_write_file",
        "Create a new file or overwrite an existing file in a python+nodejs code linux sandbox, "
        "auto create new sandbox if sandbox_id is undefined",
        "write_file",
        _field(
            "path",
            "The relative path of the file to write to, relative to the linux home directory, "
            "(e.g. 'src/main.py' or 'package.json')",
        ),
        _field("content", "The content to write to the file"),
        _field(
            "sandbox_id",
            "The sandbox id of an existing sandbox to write the file to, "
            "will create new if undefined",
            required=False,
        ),
    ),
    _tool(
        "sandbox_read_file",
        "Read the content of a file from an existing python+nodejs code sandbox linux debian VM",
        "read_file",
        _field(
            "path",
            "The relative path of the file to read, relative to the linux sandbox home directory",
        ),
        _field("sandbox_id", SANDBOX_ID_DESCRIPTION.format(action="read from")),
    ),
    _tool(
        "sandbox_list_directory",
        "List all direct children in a directory in an existing code sandbox, non recursive, "
        "linux debian VM",
        "list_directory",
        _field(
            "path",
            "The relative path of the directory to list, "
            "relative to the linux sandbox home directory",
        ),
        _field("sandbox_id", SANDBOX_ID_DESCRIPTION.format(action="list the directory from")),
    ),
    _tool(
        "sandbox_execute_command",
        "Execute a command in an existing nodejs+python code sandbox in a Linux debian VM",
        "execute_command",
        _field("command", "The command to execute"),
        _field("sandbox_id", SANDBOX_ID_DESCRIPTION.format(action="execute the command in")),
    ),
]


class SandboxToolHandler(HttpToolHandler):
    """
    Handler for one sandbox endpoint.

    The sandbox answers `{"text": ...}`; that text becomes the tool result.
    """

    async def execute(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        for name, field in self.descriptor.parameters.items():
            if field.required and not arguments.get(name):
                raise ArgumentValidationError(name, "Invalid arguments: must not be empty")
        return await super().execute(arguments)

    def classify(self, response: httpx.Response) -> List[Dict[str, Any]]:
        if response.is_success and "application/json" in response.headers.get(
            "content-type", ""
        ):
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict) and isinstance(data.get("text"), str):
                return [text_item(data["text"])]
        return classify_response(response)


def build_sandbox_handlers(
    config: Optional[Config] = None,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[SandboxToolHandler]:
    """Bind every sandbox tool to the configured sandbox API."""
    config = config or Config()
    logger.info(
        event="sandbox_tools_bound",
        api_base=config.sandbox.api_base,
        tools=[tool.name for tool in SANDBOX_TOOLS],
    )
    return [
        SandboxToolHandler(
            tool,
            base_url=config.sandbox.api_base,
            settings=config.http,
            api_key=api_key,
            transport=transport,
        )
        for tool in SANDBOX_TOOLS
    ]
