"""ABOUTME: MCP streamable-HTTP transport - the SDK's session manager mounted in Starlette, served by uvicorn.

The endpoint path is handled by StreamableHTTPSessionManager. In stateful
mode (the default) clients initialize once and carry an Mcp-Session-Id
header; GET opens the server-to-client stream and DELETE ends the session.
In stateless mode every POST is self-contained and GET/DELETE give 405.
Responses are SSE streams with periodic keep-alive pings. /health is a
plain JSON status route.
"""

import contextlib
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional

import uvicorn
from mcp.server.lowlevel import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from sse_starlette import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from .. import SERVER_NAME, __version__
from ..config import ServerSettings, StreamableHttpSettings

logger = logging.getLogger(__name__)

# Ping interval standing in for "off"; older sse-starlette releases spin on 0
KEEP_ALIVE_DISABLED_SECS = 24 * 60 * 60


def configure_keep_alive(keep_alive_secs: float) -> None:
    """Set the SSE ping interval used by the SDK's event streams.

    The SDK builds its EventSourceResponses without a ping argument, so the
    class default is the one place the interval can be set.
    """
    EventSourceResponse.DEFAULT_PING_INTERVAL = keep_alive_secs if keep_alive_secs > 0 else KEEP_ALIVE_DISABLED_SECS


class McpEndpoint:
    """ASGI endpoint handing every request on the MCP path to the session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


def create_session_manager(mcp_server: Server, settings: StreamableHttpSettings) -> StreamableHTTPSessionManager:
    retry_ms = int(settings.sse_retry_secs * 1000) if settings.sse_retry_secs else None
    return StreamableHTTPSessionManager(
        app=mcp_server,
        stateless=not settings.stateful_mode,
        json_response=False,
        retry_interval=retry_ms,
    )


def create_app(
    mcp_server: Server,
    tool_names: List[str],
    server_settings: ServerSettings,
    http_settings: StreamableHttpSettings,
    on_shutdown: Optional[Callable[[], Awaitable[None]]] = None,
) -> Starlette:
    """Build the Starlette application for the streamable-HTTP transport.

    Args:
        mcp_server: The MCP server handling protocol messages
        tool_names: Enabled tools, reported by /health
        server_settings: Endpoint path
        http_settings: Session mode and SSE timings
        on_shutdown: Called from the lifespan once the server stops (closes HTTP clients)
    """
    configure_keep_alive(http_settings.sse_keep_alive_secs)
    session_manager = create_session_manager(mcp_server, http_settings)
    methods = ["GET", "POST", "DELETE"] if http_settings.stateful_mode else ["POST"]

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({
            "ok": True,
            "name": SERVER_NAME,
            "version": __version__,
            "tools": tool_names,
        })

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            mode = "stateful" if http_settings.stateful_mode else "stateless"
            logger.info(f"HTTP transport ready: path={server_settings.path} mode={mode} tools={','.join(tool_names)}")
            try:
                yield
            finally:
                if on_shutdown is not None:
                    await on_shutdown()
                logger.info("HTTP transport stopped")

    return Starlette(
        routes=[
            Route(server_settings.path, McpEndpoint(session_manager), methods=methods),
            Route("/health", health, methods=["GET"]),
        ],
        lifespan=lifespan,
    )


async def serve_http(app: Starlette, settings: ServerSettings, graceful_timeout: float) -> None:
    """Serve the app with uvicorn until SIGINT/SIGTERM.

    uvicorn lets in-flight requests finish (up to graceful_timeout seconds)
    and refuses new connections once shutdown starts.
    """
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        timeout_graceful_shutdown=int(graceful_timeout) + 1,
        lifespan="on",
    )
    server = uvicorn.Server(config)
    logger.info(f"Serving streamable HTTP on http://{settings.bind}{settings.path}")
    await server.serve()
