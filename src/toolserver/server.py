"""
MCP Tool Server

Routes JSON-RPC requests to the tool registry:
- Initialize/capabilities handshake
- Cursor-based pagination for tools/list
- tools/call with failures reported as isError results
- Cancellation of in-flight calls by request id

Transports (stdio, http) feed messages in; this module never does I/O itself.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set, Union

from common.logging import get_logger
from .tool_registry import ToolHandler, ToolRegistry
from .jsonrpc import (
    JSONRPCHandler,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    MCPMethods,
    MCPCapabilities,
    MCPImplementation,
    MCPInitializeParams,
    MCPInitializeResult,
    MCPToolsListParams,
    MCPToolsListResult,
    MCPToolsCallParams,
    MCPToolsCallResult,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    RequestId,
    text_item,
)

logger = get_logger(__name__)

MCP_PROTOCOL_VERSION = "2025-06-18"

DEFAULT_PAGE_SIZE = 50


class ToolServerState:
    """Per-process protocol state."""

    def __init__(self):
        self.initialized = False
        self.in_flight: Dict[RequestId, asyncio.Task] = {}
        self.cancelled: Set[RequestId] = set()


class ToolServer:
    """
    MCP server over a fixed set of tools.

    The registry is filled before serving starts and only read afterwards.
    """

    def __init__(
        self,
        name: str = "openapi-mcp-bridge",
        version: str = "0.1.0",
        instructions: Optional[str] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.tool_registry = registry or ToolRegistry()
        self.state = ToolServerState()
        self.capabilities = MCPCapabilities(tools={"listChanged": False}, logging={})
        self.server_info = MCPImplementation(name=name, version=version)
        self.instructions = instructions

    async def register_handler(self, handler: ToolHandler) -> None:
        """Register a tool handler with the registry."""
        await self.tool_registry.register_tool_handler(handler)

    async def handle_message(
        self, message: Union[JSONRPCRequest, JSONRPCNotification]
    ) -> Optional[Union[JSONRPCResponse, JSONRPCErrorResponse]]:
        """
        Handle one parsed message.

        Requests run as tracked tasks so a cancellation notification can stop
        them. A cancelled request produces no response.
        """
        if isinstance(message, JSONRPCNotification):
            await self._handle_notification(message)
            return None

        task = asyncio.ensure_future(self._handle_request(message))
        self.state.in_flight[message.id] = task
        try:
            return await task
        except asyncio.CancelledError:
            if message.id in self.state.cancelled:
                logger.info(event="request_cancelled_no_response", request_id=message.id)
                return None
            raise
        finally:
            self.state.in_flight.pop(message.id, None)
            self.state.cancelled.discard(message.id)

    async def _handle_request(
        self, request: JSONRPCRequest
    ) -> Union[JSONRPCResponse, JSONRPCErrorResponse]:
        """Handle a JSON-RPC request."""
        try:
            logger.debug(event="jsonrpc_request", method=request.method, id=request.id)

            if request.method == MCPMethods.INITIALIZE:
                return await self._handle_initialize(request)
            elif request.method == MCPMethods.PING:
                return await self._handle_ping(request)
            elif request.method == MCPMethods.TOOLS_LIST:
                return await self._handle_tools_list(request)
            elif request.method == MCPMethods.TOOLS_CALL:
                return await self._handle_tools_call(request)
            else:
                return JSONRPCHandler.create_error_response(
                    request.id, METHOD_NOT_FOUND, f"Method '{request.method}' not found"
                )

        except Exception as e:
            logger.error(event="request_handler_error", method=request.method, error=str(e))
            return JSONRPCHandler.create_error_response(
                request.id, INTERNAL_ERROR, f"Internal error: {str(e)}"
            )

    async def _handle_notification(self, notification: JSONRPCNotification) -> None:
        """Handle a JSON-RPC notification."""
        logger.debug(event="jsonrpc_notification", method=notification.method)

        if notification.method == MCPMethods.INITIALIZED:
            self.state.initialized = True
            logger.info(event="client_ready")
        elif notification.method == MCPMethods.CANCEL:
            await self._handle_cancel(notification)
        else:
            logger.warning(event="unknown_notification", method=notification.method)

    async def _handle_initialize(
        self, request: JSONRPCRequest
    ) -> Union[JSONRPCResponse, JSONRPCErrorResponse]:
        """Handle initialize request - capability negotiation."""
        if not request.params:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Initialize requires params"
            )

        try:
            params = MCPInitializeParams.model_validate(request.params)
        except ValueError as e:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, f"Invalid initialize params: {str(e)}"
            )

        if params.protocolVersion != MCP_PROTOCOL_VERSION:
            logger.warning(
                event="protocol_version_mismatch",
                client_version=params.protocolVersion,
                server_version=MCP_PROTOCOL_VERSION,
            )

        result = MCPInitializeResult(
            protocolVersion=MCP_PROTOCOL_VERSION,
            capabilities=self.capabilities,
            serverInfo=self.server_info,
            instructions=self.instructions,
        )

        logger.info(
            event="client_initialized",
            client_info=params.clientInfo.model_dump() if params.clientInfo else None,
            protocol_version=params.protocolVersion,
        )

        return JSONRPCHandler.create_response(request.id, result.model_dump(exclude_none=True))

    async def _handle_ping(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Handle ping request."""
        return JSONRPCHandler.create_response(
            request.id,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "server": self.server_info.model_dump(),
            },
        )

    async def _handle_tools_list(
        self, request: JSONRPCRequest
    ) -> Union[JSONRPCResponse, JSONRPCErrorResponse]:
        """Handle tools/list request with cursor-based pagination."""
        try:
            params = MCPToolsListParams.model_validate(request.params or {})
        except ValueError:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Invalid cursor format"
            )

        all_tools = await self.tool_registry.list_tools()
        mcp_tools = [tool.to_mcp() for tool in all_tools]

        cursor_index = 0
        if params.cursor:
            try:
                cursor_index = int(params.cursor)
            except ValueError:
                return JSONRPCHandler.create_error_response(
                    request.id, INVALID_PARAMS, "Invalid cursor format"
                )
            if cursor_index < 0:
                return JSONRPCHandler.create_error_response(
                    request.id, INVALID_PARAMS, "Invalid cursor format"
                )

        end_index = cursor_index + DEFAULT_PAGE_SIZE
        paginated_tools = mcp_tools[cursor_index:end_index]
        next_cursor = str(end_index) if end_index < len(mcp_tools) else None

        result = MCPToolsListResult(tools=paginated_tools, nextCursor=next_cursor)

        logger.info(
            event="tools_listed",
            total_tools=len(all_tools),
            returned_tools=len(paginated_tools),
            cursor=params.cursor,
            next_cursor=next_cursor,
        )

        return JSONRPCHandler.create_response(request.id, result.model_dump(exclude_none=True))

    async def _handle_tools_call(
        self, request: JSONRPCRequest
    ) -> Union[JSONRPCResponse, JSONRPCErrorResponse]:
        """Handle tools/call request."""
        if not request.params:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, "Tool call requires params"
            )

        try:
            params = MCPToolsCallParams.model_validate(request.params)
        except ValueError as e:
            return JSONRPCHandler.create_error_response(
                request.id, INVALID_PARAMS, f"Invalid tool call params: {str(e)}"
            )

        execution = await self.tool_registry.execute_tool(
            tool_name=params.name, arguments=params.arguments or {}
        )

        if execution.success:
            result = MCPToolsCallResult(content=execution.content, isError=False)
        else:
            logger.warning(
                event="tool_execution_failed", tool_name=params.name, error=execution.error
            )
            result = MCPToolsCallResult(
                content=[text_item(execution.error or "Tool execution failed")],
                isError=True,
            )

        return JSONRPCHandler.create_response(request.id, result.model_dump())

    async def _handle_cancel(self, notification: JSONRPCNotification) -> None:
        """Cancel the in-flight request named by a cancellation notification."""
        params = notification.params or {}
        request_id = params.get("requestId")
        task = self.state.in_flight.get(request_id)

        if task is None or task.done():
            logger.info(event="cancel_ignored", request_id=request_id)
            return

        self.state.cancelled.add(request_id)
        task.cancel()
        logger.info(event="request_cancelled", request_id=request_id, reason=params.get("reason"))

    async def health_check(self) -> Dict[str, Any]:
        """Health summary for the server."""
        tools = await self.tool_registry.list_tools()

        return {
            "status": "healthy",
            "protocol_version": MCP_PROTOCOL_VERSION,
            "server": self.server_info.model_dump(),
            "tools_count": len(tools),
            "in_flight": len(self.state.in_flight),
        }
