"""
Main entry point for the OpenAPI MCP bridge.

Dynamic mode derives tools from an OpenAPI document:
    openapi-mcp-bridge --json-url=https://example.com/openapi.json

Static mode serves the sandbox tools:
    openapi-mcp-bridge --static

Exit code 0 on clean shutdown, 1 on any startup or top-level failure.
"""

# Standard library imports
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

# Third-party imports
import uvicorn
from dotenv import load_dotenv

# Local imports
from common.config import Config, get_api_key, load_config
from common.logging import get_logger, log_startup_message, setup_logging
from openapi_adapter.bootstrap import bootstrap_from_url, create_server, register_handlers
from openapi_adapter.errors import ConfigurationError
from sandbox.tools import build_sandbox_handlers
from toolserver.server import ToolServer
from toolserver.transports.http import create_http_app
from toolserver.transports.stdio import StdioTransport

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Expose an HTTP API as MCP tools")
    parser.add_argument("--json-url", dest="json_url", help="URL of the OpenAPI 3.x document")
    parser.add_argument(
        "--static", action="store_true", help="Serve the static sandbox tools instead"
    )
    parser.add_argument(
        "--transport", choices=["stdio", "http"], default="stdio", help="Transport to serve on"
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--host", type=str, help="Override the host to run on (http)")
    parser.add_argument("--port", type=int, help="Override the port to run on (http)")
    return parser.parse_args(argv)


async def build_server(args: argparse.Namespace, config: Config) -> ToolServer:
    """
    Build the tool server for the selected binding.

    Raises:
        ConfigurationError: If the server cannot be built with a complete tool set
    """
    api_key = get_api_key()

    if args.static:
        server = create_server(config)
        await register_handlers(server, build_sandbox_handlers(config, api_key=api_key))
        log_startup_message("sandbox_tools_registered", api_base=config.sandbox.api_base)
        return server

    return await bootstrap_from_url(args.json_url, config, api_key=api_key)


async def serve_stdio(server: ToolServer) -> None:
    """Serve over stdin/stdout until EOF."""
    transport = StdioTransport(server)
    logger.info(event="mcp_server_running", transport="stdio")
    await transport.serve()


def serve_http(server: ToolServer, config: Config, args: argparse.Namespace) -> None:
    """Serve over HTTP with uvicorn."""
    host = args.host or config.server.host
    port = args.port or config.server.port

    logger.info(event="mcp_server_running", transport="http", host=host, port=port)

    uvicorn.run(
        create_http_app(server),
        host=host,
        port=port,
        log_config=None,  # Use our custom logging setup
        access_log=False,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    load_dotenv()

    args = parse_args(argv)
    config = load_config(args.config)
    setup_logging(config)

    try:
        server = asyncio.run(build_server(args, config))

        if args.transport == "http":
            serve_http(server, config, args)
        else:
            asyncio.run(serve_stdio(server))

    except ConfigurationError as e:
        logger.critical(event="startup_failed", error_type=type(e).__name__, error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info(event="application_shutdown", reason="Keyboard interrupt")
        return 0
    except Exception as e:
        logger.critical(event="application_failed", error_type=type(e).__name__, error=str(e))
        return 1

    logger.info(event="application_shutdown", reason="transport closed")
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
