"""
HTTP Transport for MCP

Serves the same JSON-RPC protocol as the stdio transport through a FastAPI
app: `POST /mcp/jsonrpc` takes single or batch messages and `GET /health`
reports server status.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from common.logging import get_logger
from ..jsonrpc import INVALID_REQUEST, PARSE_ERROR, JSONRPCErrorResponse, JSONRPCHandler
from ..server import ToolServer

logger = get_logger(__name__)


async def _dispatch(server: ToolServer, data: Any) -> Optional[Dict[str, Any]]:
    """Handle one decoded message; returns the response payload, if one is owed."""
    decoded = JSONRPCHandler.decode(data)
    if decoded is None:
        return None
    if isinstance(decoded, JSONRPCErrorResponse):
        return JSONRPCHandler.dump(decoded)

    response = await server.handle_message(decoded)
    return JSONRPCHandler.dump(response) if response is not None else None


def create_router(server: ToolServer) -> APIRouter:
    """Build the MCP router bound to one server."""
    router = APIRouter(prefix="/mcp", tags=["MCP"])

    @router.post("/jsonrpc")
    async def handle_jsonrpc(request: Request) -> Response:
        """
        Main JSON-RPC endpoint.

        A batch is answered with the array of its responses, one per request,
        in order. A body holding only notifications is acknowledged with 202.
        """
        try:
            body = await request.json()
        except ValueError as e:
            error = JSONRPCHandler.create_error_response(None, PARSE_ERROR, f"Parse error: {e}")
            return JSONResponse(content=JSONRPCHandler.dump(error), status_code=400)

        if not JSONRPCHandler.is_batch(body):
            payload = await _dispatch(server, body)
            if payload is None:
                return Response(status_code=202)
            status_code = 400 if payload.get("error", {}).get("code") == INVALID_REQUEST else 200
            return JSONResponse(content=payload, status_code=status_code)

        if not body:
            error = JSONRPCHandler.create_error_response(None, INVALID_REQUEST, "Empty batch")
            return JSONResponse(content=JSONRPCHandler.dump(error), status_code=400)

        responses: List[Dict[str, Any]] = []
        for item in body:
            payload = await _dispatch(server, item)
            if payload is not None:
                responses.append(payload)

        logger.debug(event="jsonrpc_batch_handled", messages=len(body), responses=len(responses))
        if not responses:
            return Response(status_code=202)
        return JSONResponse(content=responses)

    return router


def create_http_app(server: ToolServer) -> FastAPI:
    """Create the FastAPI app serving one tool server."""
    app = FastAPI(title=server.server_info.name, version=server.server_info.version)
    app.include_router(create_router(server))

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse(content=await server.health_check())

    logger.info(event="http_app_created", endpoints=["/mcp/jsonrpc", "/health"])
    return app
