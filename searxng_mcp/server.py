"""ABOUTME: Server assembly - builds clients, registry, dispatcher and MCP server from an EffectiveConfig."""

import asyncio
import logging
import signal
from typing import Optional

import httpx

from . import __version__
from .browse.fetcher import Fetcher
from .browse.ssrf import Resolver
from .config import EffectiveConfig, Transport
from .registry import Dispatcher, ToolRegistry
from .searxng import SearxngClient
from .tools import build_handlers
from .transport.http import create_app, serve_http
from .transport.protocol import build_mcp_server
from .transport.stdio import SequentialGate, serve_stdio

logger = logging.getLogger(__name__)


class SearxngMcpServer:
    """Everything a running server needs, wired together once at startup.

    The HTTP clients are the only resources that need closing; close() is
    safe to call more than once.
    """

    def __init__(
        self,
        config: EffectiveConfig,
        searxng_transport: Optional[httpx.AsyncBaseTransport] = None,
        browse_transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[Resolver] = None,
    ):
        self.config = config
        self.searxng = SearxngClient(config.searxng, transport=searxng_transport)
        self.fetcher = Fetcher(config.browse, transport=browse_transport, resolver=resolver)
        self.registry = ToolRegistry(build_handlers(self.searxng, self.fetcher), config.tools)
        self.dispatcher = Dispatcher(self.registry)
        self.mcp_server = build_mcp_server(self.registry, self.dispatcher)
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.searxng.aclose()
        await self.fetcher.aclose()
        logger.debug("HTTP clients closed")

    def graceful_timeout(self) -> float:
        """Longest a single tool call can legitimately take."""
        return max(self.config.searxng.timeout_secs, self.config.browse.timeout_secs)

    async def run(self) -> None:
        """Serve on the configured transport until shutdown.

        Raises:
            ProtocolError: The stdio peer sent a malformed frame
        """
        transport = self.config.server.transport
        logger.info(
            f"searxng-mcp {__version__} starting: transport={transport.value} "
            f"searxng={self.config.searxng.base_url} tools={','.join(self.registry.names())}"
        )
        if transport == Transport.STREAMABLE_HTTP:
            app = create_app(
                self.mcp_server,
                self.registry.names(),
                self.config.server,
                self.config.streamable_http,
                on_shutdown=self.close,
            )
            await serve_http(app, self.config.server, self.graceful_timeout())
            return

        try:
            await self._run_stdio()
        finally:
            await self.close()

    async def _run_stdio(self) -> None:
        gate = SequentialGate()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, gate.request_shutdown)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                logger.debug(f"Cannot install handler for {sig.name}")

        try:
            await serve_stdio(self.mcp_server, gate)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except NotImplementedError:
                    logger.debug(f"Cannot remove handler for {sig.name}")
