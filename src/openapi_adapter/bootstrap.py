"""
Adapter Bootstrap

Fetches the OpenAPI document, checks the little structure the adapter needs,
derives every tool and registers them on a ToolServer. Any problem here is a
ConfigurationError: nothing is registered unless the whole document derives.
"""

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urljoin

import httpx

from common.config import Config, HttpConfig
from common.logging import TimedLogger, get_logger, log_startup_message
from toolserver.server import ToolServer
from toolserver.tool_registry import ToolDescriptor

from .dispatcher import HttpToolHandler
from .errors import (
    DocumentFetchError,
    DuplicateToolNameError,
    MissingDocumentUrlError,
    MissingPathsError,
    MissingServerUrlError,
)
from .tool_deriver import derive_tools

logger = get_logger(__name__)


async def fetch_document(
    url: str,
    settings: Optional[HttpConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """
    Fetch and decode the OpenAPI document.

    Raises:
        DocumentFetchError: On transport failure, error status or a non-object body
    """
    settings = settings or HttpConfig()

    with TimedLogger(logger, "openapi_document_fetched", url=url):
        try:
            async with httpx.AsyncClient(
                timeout=settings.document_timeout, transport=transport, follow_redirects=True
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise DocumentFetchError(url, str(e) or type(e).__name__) from e

    if not response.is_success:
        raise DocumentFetchError(url, f"HTTP {response.status_code}")

    try:
        document = response.json()
    except ValueError as e:
        raise DocumentFetchError(url, f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise DocumentFetchError(url, "document is not a JSON object")

    return document


def _expand_server_variables(server: Mapping[str, Any], url: str) -> str:
    """Substitute `{name}` server variables with their declared defaults."""
    variables = server.get("variables")
    if not isinstance(variables, Mapping):
        return url

    for name, variable in variables.items():
        if isinstance(variable, Mapping) and isinstance(variable.get("default"), str):
            url = url.replace("{" + str(name) + "}", variable["default"])
    return url


def validate_document(document: Mapping[str, Any], document_url: Optional[str] = None) -> str:
    """
    Check the document has a base server URL and at least one path.

    Args:
        document: The decoded OpenAPI document
        document_url: Where it was fetched from; relative server URLs resolve against it

    Returns:
        The base URL every tool call is sent to

    Raises:
        MissingServerUrlError: If servers[0].url is absent
        MissingPathsError: If paths is absent, not a mapping, or empty
    """
    servers = document.get("servers")
    server = servers[0] if isinstance(servers, list) and servers else None
    url = server.get("url") if isinstance(server, Mapping) else None
    if not isinstance(url, str) or not url:
        raise MissingServerUrlError()

    paths = document.get("paths")
    if not isinstance(paths, Mapping) or not paths:
        raise MissingPathsError()

    base_url = _expand_server_variables(server, url)
    if document_url and "://" not in base_url:
        base_url = urljoin(document_url, base_url)

    return base_url


def check_unique_names(descriptors: List[ToolDescriptor]) -> None:
    """Raise if two operations would be served under the same tool name."""
    seen: Dict[str, ToolDescriptor] = {}
    for descriptor in descriptors:
        first = seen.setdefault(descriptor.name, descriptor)
        if first is not descriptor:
            raise DuplicateToolNameError(
                descriptor.name,
                f"{first.path} {first.method}",
                f"{descriptor.path} {descriptor.method}",
            )


def build_handlers(
    document: Mapping[str, Any],
    config: Optional[Config] = None,
    api_key: Optional[str] = None,
    document_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[HttpToolHandler]:
    """
    Derive one bound handler per operation.

    Derivation runs to completion before any handler exists, so a bad
    operation anywhere leaves nothing half-built.
    """
    config = config or Config()
    base_url = validate_document(document, document_url)
    descriptors = derive_tools(document)
    if not descriptors:
        raise MissingPathsError()
    check_unique_names(descriptors)

    return [
        HttpToolHandler(
            descriptor,
            base_url=base_url,
            settings=config.http,
            api_key=api_key,
            transport=transport,
        )
        for descriptor in descriptors
    ]


def create_server(config: Config, instructions: Optional[str] = None) -> ToolServer:
    """Create an empty tool server named from configuration."""
    return ToolServer(
        name=config.server.name,
        version=config.server.version,
        instructions=instructions,
    )


async def register_handlers(server: ToolServer, handlers: List[HttpToolHandler]) -> None:
    """Register every handler on the server."""
    for handler in handlers:
        await server.register_handler(handler)


async def bootstrap_from_url(
    url: Optional[str],
    config: Optional[Config] = None,
    api_key: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ToolServer:
    """
    Build a ready-to-serve ToolServer from an OpenAPI document URL.

    Raises:
        ConfigurationError: If the URL is missing, the fetch fails, or the
            document cannot produce a complete tool set
    """
    if not url:
        raise MissingDocumentUrlError()

    config = config or Config()
    document = await fetch_document(url, config.http, transport=transport)
    handlers = build_handlers(
        document, config, api_key=api_key, document_url=url, transport=transport
    )

    info = document.get("info")
    instructions = info.get("description") if isinstance(info, Mapping) else None
    if not isinstance(instructions, str) or not instructions:
        instructions = None
    server = create_server(config, instructions=instructions)
    await register_handlers(server, handlers)

    log_startup_message(
        "openapi_tools_registered",
        document_url=url,
        base_url=handlers[0].base_url if handlers else None,
        tools_count=len(handlers),
    )
    return server
