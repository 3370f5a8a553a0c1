"""
Call Dispatcher

Turns one validated tool invocation into exactly one HTTP request against
`<base-url><path>` and normalizes the response into MCP content items.

Request shape:
- GET: arguments become query parameters, in argument order
- anything else: arguments become a JSON body

Response classification, in order:
1. error status -> UpstreamStatusError
2. non-JSON content type -> one text item with the raw body
3. JSON array of image items -> returned verbatim
4. any other JSON -> one text item, pretty-printed with 2-space indent
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from common.config import HttpConfig
from common.logging import TimedLogger, get_logger
from toolserver.jsonrpc import MCPContentTypes, text_item
from toolserver.tool_registry import FieldLocation, ToolDescriptor, ToolHandler

from .errors import (
    DispatchTimeoutError,
    InvocationError,
    ResponseDecodeError,
    UpstreamStatusError,
)

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


def join_url(base_url: str, path: str) -> str:
    """Join a server base URL and an operation path."""
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url.rstrip('/')}{path}"


def stringify_value(value: Any) -> str:
    """Render one argument value as query-string text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, list):
        return ",".join(stringify_value(item) for item in value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def is_image_content(data: Any) -> bool:
    """True when the payload is already a list of MCP image items."""
    return (
        isinstance(data, list)
        and len(data) > 0
        and isinstance(data[0], dict)
        and data[0].get("type") == MCPContentTypes.IMAGE
        and bool(data[0].get("data"))
    )


def classify_response(response: httpx.Response) -> List[Dict[str, Any]]:
    """
    Normalize an HTTP response into content items.

    Raises:
        UpstreamStatusError: On any status outside 2xx
        ResponseDecodeError: If a JSON content type carries invalid JSON
    """
    if not response.is_success:
        raise UpstreamStatusError(response.status_code, response.text, str(response.url))

    content_type = response.headers.get("content-type", "")
    if JSON_CONTENT_TYPE not in content_type.lower():
        return [text_item(response.text)]

    try:
        data = response.json()
    except ValueError as e:
        raise ResponseDecodeError(str(response.url), str(e)) from e

    if is_image_content(data):
        return data

    return [text_item(json.dumps(data, indent=2, ensure_ascii=False))]


class HttpToolHandler(ToolHandler):
    """
    Proxies one tool to one HTTP operation.

    Each handler is bound to a single descriptor: its path and method decide
    where every invocation goes.
    """

    def __init__(
        self,
        descriptor: ToolDescriptor,
        base_url: str,
        settings: Optional[HttpConfig] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.descriptor = descriptor
        self.base_url = base_url
        self.settings = settings or HttpConfig()
        self.api_key = api_key
        self.transport = transport

    def get_tool_definition(self) -> ToolDescriptor:
        return self.descriptor

    def _split_path_arguments(self, arguments: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Fill `{name}` path placeholders and return the remaining arguments."""
        path = self.descriptor.path
        remaining = dict(arguments)

        for name, field in self.descriptor.parameters.items():
            if field.location != FieldLocation.PATH or name not in remaining:
                continue
            placeholder = "{" + name + "}"
            if placeholder not in path:
                continue
            value = remaining.pop(name)
            path = path.replace(placeholder, quote(stringify_value(value), safe=""))

        return path, remaining

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.settings.attach_api_key and self.api_key:
            headers[self.settings.api_key_header] = self.api_key
        return headers

    def build_request(self, arguments: Dict[str, Any]) -> httpx.Request:
        """Build the outbound request for one invocation."""
        path, arguments = self._split_path_arguments(arguments)
        url = join_url(self.base_url, path)
        method = self.descriptor.method.upper()
        headers = self._headers()
        extensions = {"timeout": httpx.Timeout(self.settings.request_timeout).as_dict()}

        if method == "GET":
            params = [
                (name, stringify_value(value))
                for name, value in arguments.items()
                if value is not None
            ]
            return httpx.Request(
                method, url, params=params or None, headers=headers, extensions=extensions
            )

        headers["Content-Type"] = JSON_CONTENT_TYPE
        body = json.dumps(arguments, separators=(",", ":"), ensure_ascii=False)
        return httpx.Request(
            method, url, content=body.encode("utf-8"), headers=headers, extensions=extensions
        )

    def classify(self, response: httpx.Response) -> List[Dict[str, Any]]:
        """Normalize the upstream response into content items."""
        return classify_response(response)

    async def _send(self, request: httpx.Request) -> List[Dict[str, Any]]:
        timeout = self.settings.request_timeout
        async with httpx.AsyncClient(
            timeout=timeout, transport=self.transport, follow_redirects=True
        ) as client:
            response = await client.send(request)
            return self.classify(response)

    async def execute(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Perform the HTTP round-trip for one invocation.

        Raises:
            InvocationError: On timeout, transport failure, error status or bad JSON
        """
        request = self.build_request(arguments)
        url = str(request.url).split("?", 1)[0]
        timeout = self.settings.request_timeout

        with TimedLogger(
            logger,
            "upstream_call",
            tool_name=self.descriptor.name,
            method=request.method,
            url=url,
        ):
            try:
                return await asyncio.wait_for(self._send(request), timeout=timeout)
            except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                raise DispatchTimeoutError(url, timeout) from e
            except httpx.RequestError as e:
                raise InvocationError(f"Request to {url} failed: {e}") from e
