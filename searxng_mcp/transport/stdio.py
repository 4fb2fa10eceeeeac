"""ABOUTME: stdio transport - the MCP SDK's stdio server with one request in flight at a time.

stdio_server() does the newline-delimited framing. A SequentialGate sits
between it and Server.run: a request is forwarded only once the previous
response has gone out, so requests are answered strictly in order. The
first malformed frame ends the session: after the last response it gets
one error response (id null) and serve_stdio raises ProtocolError. EOF
ends it normally.
"""

import asyncio
import json
import logging
import sys
from io import TextIOWrapper
from typing import Any, Optional

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.shared.message import SessionMessage
from mcp.types import INVALID_REQUEST, PARSE_ERROR, JSONRPCError, JSONRPCRequest, JSONRPCResponse, RequestId
from pydantic import ValidationError

from ..common.error_handling import ProtocolError

logger = logging.getLogger(__name__)

# Longest accepted frame, in bytes
MAX_FRAME_BYTES = 16 * 1024 * 1024


class StdinLines:
    """Async line iterator over stdin.

    Reads through an asyncio pipe rather than a worker thread, so waiting
    for input can be cancelled on shutdown. A line longer than the limit
    ends the iteration and sets ``overflowed``.
    """

    def __init__(self, limit: int = MAX_FRAME_BYTES):
        self._limit = limit
        self._reader: Optional[asyncio.StreamReader] = None
        self.overflowed = False

    def __aiter__(self) -> "StdinLines":
        return self

    async def __anext__(self) -> str:
        if self._reader is None:
            loop = asyncio.get_running_loop()
            self._reader = asyncio.StreamReader(limit=self._limit)
            await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(self._reader), sys.stdin)

        try:
            line = await self._reader.readline()
        except ValueError:
            # StreamReader raises ValueError when a line exceeds its limit
            logger.error(f"Frame exceeds {self._limit} bytes, closing stdin")
            self.overflowed = True
            raise StopAsyncIteration from None

        if not line:
            raise StopAsyncIteration
        return line.decode("utf-8", errors="replace")


def _is_blank_frame(error: Exception) -> bool:
    if not isinstance(error, ValidationError):
        return False
    return all(
        err["type"] == "json_invalid" and not str(err.get("input", "")).strip()
        for err in error.errors()
    )


def _frame_error(error: Exception) -> ProtocolError:
    if isinstance(error, ValidationError) and any(err["type"] == "json_invalid" for err in error.errors()):
        return ProtocolError("Parse error: frame is not valid JSON", PARSE_ERROR)
    return ProtocolError("Invalid Request: frame is not a JSON-RPC 2.0 message", INVALID_REQUEST)


class SequentialGate:
    """Passes messages between the stdio streams and the server, one request at a time.

    Attributes:
        error: Set when the session ended on a malformed frame
    """

    def __init__(self):
        self._pending: Optional[RequestId] = None
        self._answered = anyio.Event()
        self._read_scope: Optional[anyio.CancelScope] = None
        self._stopping = False
        self.error: Optional[ProtocolError] = None

    def request_shutdown(self) -> None:
        """Stop reading; a request already in flight is still answered."""
        self._stopping = True
        if self._pending is None and self._read_scope is not None:
            self._read_scope.cancel()

    async def to_server(
        self,
        client_read: MemoryObjectReceiveStream,
        server_write: MemoryObjectSendStream,
    ) -> None:
        async with server_write:
            while not self._stopping:
                with anyio.CancelScope() as self._read_scope:
                    try:
                        item = await client_read.receive()
                    except anyio.EndOfStream:
                        logger.info("stdin closed, stopping stdio transport")
                        return
                if self._read_scope.cancel_called:
                    logger.info("Shutdown requested, stopping stdio transport")
                    return

                if isinstance(item, Exception):
                    if _is_blank_frame(item):
                        continue
                    self._reject(item)
                    return

                message = item.message.root
                if isinstance(message, JSONRPCRequest):
                    self._pending = message.id
                    self._answered = anyio.Event()
                    await server_write.send(item)
                    await self._answered.wait()
                    self._pending = None
                else:
                    await server_write.send(item)

    async def to_client(
        self,
        server_read: MemoryObjectReceiveStream,
        client_write: MemoryObjectSendStream,
    ) -> None:
        async with client_write:
            async for item in server_read:
                await client_write.send(item)
                message = item.message.root
                if isinstance(message, (JSONRPCResponse, JSONRPCError)) and message.id == self._pending:
                    self._answered.set()

    def _reject(self, cause: Exception) -> None:
        self.error = _frame_error(cause)
        logger.error(f"Malformed frame, closing session: {self.error}")


async def write_error_frame(stdout: Any, error: ProtocolError) -> None:
    """Write a JSON-RPC error with a null id.

    JSONRPCError cannot carry a null id, so the frame bypasses the SDK writer.
    """
    frame = {"jsonrpc": "2.0", "id": None, "error": {"code": error.code, "message": str(error)}}
    await stdout.write(json.dumps(frame, separators=(",", ":")) + "\n")
    await stdout.flush()


def stdout_file() -> Any:
    """The process stdout as an async UTF-8 text file."""
    return anyio.wrap_file(TextIOWrapper(sys.stdout.buffer, encoding="utf-8"))


async def serve_stdio(
    server: Server,
    gate: Optional[SequentialGate] = None,
    stdin: Any = None,
    stdout: Any = None,
) -> None:
    """Serve one MCP session over stdin/stdout until EOF or shutdown.

    Args:
        server: The MCP server to run
        gate: Gate to use, so the caller can request shutdown (one is made when omitted)
        stdin: Async line source (StdinLines over the process stdin by default)
        stdout: Async text file for frames (the process stdout by default)

    Raises:
        ProtocolError: A malformed or oversized frame was received
    """
    stdin = stdin if stdin is not None else StdinLines()
    stdout = stdout if stdout is not None else stdout_file()
    gate = gate if gate is not None else SequentialGate()

    to_server_write, to_server_read = anyio.create_memory_object_stream[SessionMessage](0)
    to_client_write, to_client_read = anyio.create_memory_object_stream[SessionMessage](0)

    logger.info("stdio transport ready")
    with anyio.CancelScope() as reader_scope:
        async with stdio_server(stdin, stdout) as (read_stream, write_stream):
            async with anyio.create_task_group() as tg:
                tg.start_soon(gate.to_server, read_stream, to_server_write)
                tg.start_soon(gate.to_client, to_client_read, write_stream)
                await server.run(to_server_read, to_client_write, server.create_initialization_options())
            # Every response has been handed to the writer; the stdin reader may
            # still be waiting for input after a malformed frame or shutdown
            reader_scope.cancel()
    await stdout.flush()

    if gate.error is not None:
        # Written after the session drained so it follows the last response
        await write_error_frame(stdout, gate.error)
        raise gate.error
    if getattr(stdin, "overflowed", False):
        raise ProtocolError(f"Invalid Request: frame too large (max {MAX_FRAME_BYTES} bytes)", INVALID_REQUEST)
