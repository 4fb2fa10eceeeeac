"""ABOUTME: Tests for the MCP server wiring, driven by an SDK ClientSession over memory streams."""

import contextlib

import anyio
import pytest
from mcp import ClientSession, McpError
from mcp.shared.memory import create_client_server_memory_streams
from mcp.types import (
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolRequestParams,
    CallToolResult,
    ClientRequest,
    ListResourcesRequest,
    ListResourcesResult,
)

from searxng_mcp import SERVER_NAME, __version__
from searxng_mcp.config import ToolName
from searxng_mcp.registry import Dispatcher, ToolRegistry
from searxng_mcp.tools import PingTool
from searxng_mcp.transport.protocol import SERVER_INSTRUCTIONS, build_mcp_server


@contextlib.asynccontextmanager
async def connected_session():
    """Run the server on memory streams; yields (client session, initialize result)."""
    registry = ToolRegistry([PingTool()], {ToolName.PING})
    server = build_mcp_server(registry, Dispatcher(registry))

    async with create_client_server_memory_streams() as (client_streams, server_streams):
        async with anyio.create_task_group() as tg:
            tg.start_soon(lambda: server.run(*server_streams, server.create_initialization_options()))
            try:
                async with ClientSession(*client_streams) as session:
                    init = await session.initialize()
                    yield session, init
            finally:
                tg.cancel_scope.cancel()


class TestServerWiring:
    """Tests for build_mcp_server."""

    @pytest.mark.asyncio
    async def test_initialize_reports_server(self):
        """Test serverInfo, instructions and the tools capability."""
        async with connected_session() as (_, init):
            assert init.serverInfo.name == SERVER_NAME
            assert init.serverInfo.version == __version__
            assert init.instructions == SERVER_INSTRUCTIONS
            assert init.capabilities.tools is not None

    @pytest.mark.asyncio
    async def test_ping(self):
        """Test protocol-level ping is answered."""
        async with connected_session() as (session, _):
            await session.send_ping()

    @pytest.mark.asyncio
    async def test_tools_list(self):
        """Test tools/list returns only the registered tools."""
        async with connected_session() as (session, _):
            result = await session.list_tools()
        assert [t.name for t in result.tools] == ["ping"]
        assert result.tools[0].inputSchema["type"] == "object"

    @pytest.mark.asyncio
    async def test_tools_call(self):
        """Test tools/call returns the dispatcher's CallToolResult."""
        async with connected_session() as (session, _):
            result = await session.call_tool("ping", {"message": "hi"})
        assert result.isError is False
        assert result.structuredContent == {"ok": True, "message": "hi"}
        assert result.content[0].type == "text"

    @pytest.mark.asyncio
    async def test_tools_call_unknown_tool(self):
        """Test an unknown tool is a tool error result, not a JSON-RPC error."""
        async with connected_session() as (session, _):
            result = await session.call_tool("search", {"query": "x"})
        assert result.isError is True
        assert result.structuredContent["kind"] == "tool_not_found"

    @pytest.mark.asyncio
    async def test_tools_call_bad_arguments(self):
        """Test argument errors come from the tool's own validation."""
        async with connected_session() as (session, _):
            result = await session.call_tool("ping", {"message": 5})
        assert result.isError is True
        assert result.structuredContent["kind"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_tools_call_without_arguments(self):
        """Test a call with no arguments object uses an empty one."""
        async with connected_session() as (session, _):
            result = await session.send_request(
                ClientRequest(CallToolRequest(params=CallToolRequestParams(name="ping"))),
                CallToolResult,
            )
        assert result.structuredContent == {"ok": True, "message": "pong"}

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        """Test a method the server does not offer is method-not-found."""
        async with connected_session() as (session, _):
            with pytest.raises(McpError) as exc_info:
                await session.send_request(ClientRequest(ListResourcesRequest()), ListResourcesResult)
        assert exc_info.value.error.code == METHOD_NOT_FOUND
