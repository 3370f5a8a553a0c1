"""
Standard I/O Transport for MCP

Newline-delimited JSON-RPC over stdin/stdout. MCP clients spawn the bridge as
a subprocess and talk to it through its standard streams, so nothing but
protocol messages may ever be written to stdout.

Each request is handled in its own task: slow upstream calls interleave
instead of blocking the read loop.

Reference: https://modelcontextprotocol.io/specification/2025-06-18/basic/transports
"""

import asyncio
import json
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import IO, Optional, Set

from common.logging import get_logger
from ..jsonrpc import PARSE_ERROR, JSONRPCErrorResponse, JSONRPCHandler, OutgoingMessage
from ..server import ToolServer

logger = get_logger(__name__)


class StdioTransport:
    """
    Standard I/O transport for MCP communication.

    Reads one JSON-RPC message per line and writes one response per line.
    """

    def __init__(
        self,
        server: ToolServer,
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
    ):
        """Initialize stdio transport."""
        self.server = server
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="stdio")
        self.running = False
        self.pending: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    async def serve(self) -> None:
        """Serve until stdin reaches EOF, then wait for outstanding requests."""
        self.running = True
        logger.info(event="stdio_transport_started")

        try:
            await self._read_stdin()
            if self.pending:
                await asyncio.gather(*self.pending, return_exceptions=True)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the stdio transport and cancel anything still running."""
        if not self.running:
            return

        self.running = False
        for task in list(self.pending):
            task.cancel()
        if self.pending:
            await asyncio.gather(*self.pending, return_exceptions=True)

        self.executor.shutdown(wait=False)
        logger.info(event="stdio_transport_stopped")

    async def _read_stdin(self) -> None:
        """Read JSON-RPC messages from stdin until EOF."""
        loop = asyncio.get_running_loop()

        while self.running:
            line = await loop.run_in_executor(self.executor, self.stdin.readline)

            if not line:
                logger.info(event="stdin_eof")
                break

            line = line.strip()
            if not line:
                continue

            task = asyncio.create_task(self._handle_message(line))
            self.pending.add(task)
            task.add_done_callback(self.pending.discard)
            # Let the task reach its first await so notifications keep their order
            await asyncio.sleep(0)

    async def _handle_message(self, message: str) -> None:
        """Handle a JSON-RPC message from stdin."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError as e:
            await self._write_stdout(
                JSONRPCHandler.create_error_response(None, PARSE_ERROR, f"Parse error: {e}")
            )
            return

        decoded = JSONRPCHandler.decode(data)
        if decoded is None:
            logger.warning(event="unsolicited_response_ignored")
            return
        if isinstance(decoded, JSONRPCErrorResponse):
            await self._write_stdout(decoded)
            return

        response = await self.server.handle_message(decoded)
        if response is not None:
            await self._write_stdout(response)

    async def _write_stdout(self, message: OutgoingMessage) -> None:
        """Write one JSON-RPC message to stdout as a single line."""
        line = json.dumps(JSONRPCHandler.dump(message), separators=(",", ":"), ensure_ascii=False)

        async with self._write_lock:
            try:
                self.stdout.write(line + "\n")
                self.stdout.flush()
            except (OSError, ValueError) as e:
                logger.error(event="stdout_write_error", error=str(e))
