"""
JSON-RPC 2.0 wire layer for the tool server.

Envelope models, error codes, the subset of MCP methods and payload models
the bridge answers, and `JSONRPCHandler`, which turns decoded JSON into
messages the server can route (or into the error response owed to the
client when it cannot).

Reference: https://www.jsonrpc.org/specification
MCP: https://modelcontextprotocol.io/specification/2025-06-18/basic/
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[str, int]


class JSONRPCError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCRequest(BaseModel):
    """A call that expects exactly one response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCNotification(BaseModel):
    """A call without an id; never answered."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId
    result: Any


class JSONRPCErrorResponse(BaseModel):
    """Error reply. `id` is null when the request id could not be read."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[RequestId]
    error: JSONRPCError


IncomingMessage = Union[JSONRPCRequest, JSONRPCNotification]
OutgoingMessage = Union[JSONRPCResponse, JSONRPCErrorResponse, JSONRPCNotification]


class MCPMethods:
    """MCP methods and notifications the server understands."""

    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    PING = "ping"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    CANCEL = "notifications/cancelled"


class MCPContentTypes:
    TEXT = "text"
    IMAGE = "image"


class TextContent(BaseModel):
    """One text item of a tool result."""

    type: Literal["text"] = MCPContentTypes.TEXT
    text: str


def text_item(text: str) -> Dict[str, Any]:
    """Build a text content item."""
    return TextContent(text=text).model_dump()


class MCPCapabilities(BaseModel):
    """Server capabilities announced in the initialize result."""

    experimental: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


class MCPClientCapabilities(BaseModel):
    experimental: Optional[Dict[str, Any]] = None
    roots: Optional[Dict[str, Any]] = None
    sampling: Optional[Dict[str, Any]] = None
    elicitation: Optional[Dict[str, Any]] = None


class MCPImplementation(BaseModel):
    name: str
    version: str


class MCPInitializeParams(BaseModel):
    """Initialize params. Clients differ on what they send beyond the version."""

    protocolVersion: str
    capabilities: MCPClientCapabilities = MCPClientCapabilities()
    clientInfo: Optional[MCPImplementation] = None


class MCPInitializeResult(BaseModel):
    protocolVersion: str
    capabilities: MCPCapabilities
    serverInfo: MCPImplementation
    instructions: Optional[str] = None


class MCPToolsListParams(BaseModel):
    cursor: Optional[str] = None


class MCPToolsListResult(BaseModel):
    tools: List[Dict[str, Any]]
    nextCursor: Optional[str] = None


class MCPToolsCallParams(BaseModel):
    name: str
    arguments: Optional[Dict[str, Any]] = None


class MCPToolsCallResult(BaseModel):
    """tools/call result. Tool failures set isError instead of a JSON-RPC error."""

    content: List[Dict[str, Any]]
    isError: bool = False


class JSONRPCHandler:
    """Builds, reads and serializes JSON-RPC messages."""

    @staticmethod
    def create_request(
        id: RequestId, method: str, params: Optional[Dict[str, Any]] = None
    ) -> JSONRPCRequest:
        return JSONRPCRequest(id=id, method=method, params=params)

    @staticmethod
    def create_response(id: RequestId, result: Any) -> JSONRPCResponse:
        return JSONRPCResponse(id=id, result=result)

    @staticmethod
    def create_error_response(
        id: Optional[RequestId], code: int, message: str, data: Optional[Any] = None
    ) -> JSONRPCErrorResponse:
        error = JSONRPCError(code=code, message=message, data=data)
        return JSONRPCErrorResponse(id=id, error=error)

    @staticmethod
    def create_notification(
        method: str, params: Optional[Dict[str, Any]] = None
    ) -> JSONRPCNotification:
        return JSONRPCNotification(method=method, params=params)

    @staticmethod
    def parse_message(
        data: Any,
    ) -> Union[JSONRPCRequest, JSONRPCNotification, JSONRPCResponse, JSONRPCErrorResponse]:
        """
        Read one decoded JSON value as a JSON-RPC message.

        The shape decides the type: `method` with `id` is a request, `method`
        alone a notification, `result`/`error` with `id` a response.

        Raises:
            ValueError: If the value is not a valid JSON-RPC message
        """
        if not isinstance(data, dict):
            raise ValueError(f"Invalid JSON-RPC message: expected an object, got {data!r}")

        if "method" in data:
            if "id" in data:
                return JSONRPCRequest.model_validate(data)
            return JSONRPCNotification.model_validate(data)
        if "id" in data and "result" in data:
            return JSONRPCResponse.model_validate(data)
        if "id" in data and "error" in data:
            return JSONRPCErrorResponse.model_validate(data)

        raise ValueError(f"Invalid JSON-RPC message: {data}")

    @staticmethod
    def decode(data: Any) -> Union[IncomingMessage, JSONRPCErrorResponse, None]:
        """
        Turn one decoded JSON value into something the server can act on.

        Returns a request or notification to route, the INVALID_REQUEST
        error owed to the client (keeping its id when one can be read), or
        None for responses, which the bridge never solicits.
        """
        try:
            message = JSONRPCHandler.parse_message(data)
        except ValueError as e:
            request_id = data.get("id") if isinstance(data, dict) else None
            if isinstance(request_id, bool) or not isinstance(request_id, (str, int)):
                request_id = None
            return JSONRPCHandler.create_error_response(
                request_id, INVALID_REQUEST, f"Invalid request: {e}"
            )

        if isinstance(message, (JSONRPCResponse, JSONRPCErrorResponse)):
            return None
        return message

    @staticmethod
    def is_batch(data: Any) -> bool:
        return isinstance(data, list)

    @staticmethod
    def dump(message: OutgoingMessage) -> Dict[str, Any]:
        """Serialize a message for the wire; an error's empty `data` is omitted."""
        payload = message.model_dump()
        error = payload.get("error")
        if isinstance(error, dict) and error.get("data") is None:
            error.pop("data", None)
        if isinstance(message, JSONRPCNotification) and message.params is None:
            payload.pop("params", None)
        return payload
