"""ABOUTME: MCP protocol layer - the SDK's low-level Server wired to the tool registry.

JSON-RPC framing, initialize and ping are handled by mcp.server.lowlevel.
tools/list answers from the registry and tools/call goes through the
Dispatcher, so the stdio and HTTP transports share one allowlist and one
error mapping.
"""

import logging
from typing import Any, Dict, List, Optional

from mcp.server.lowlevel import Server
from mcp.types import CallToolResult, Tool

from .. import SERVER_NAME, __version__
from ..registry import Dispatcher, ToolCall, ToolRegistry

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = (
    "SearXNG MCP server. Use search to find pages and browse to read them."
)


def build_mcp_server(registry: ToolRegistry, dispatcher: Dispatcher) -> Server:
    """Create the MCP server exposing the enabled tools.

    Args:
        registry: Allowlisted tools; only these are listed
        dispatcher: Runs tool calls and turns every failure into a result

    Returns:
        A low-level Server ready for Server.run() or a session manager
    """
    server: Server = Server(SERVER_NAME, version=__version__, instructions=SERVER_INSTRUCTIONS)

    @server.list_tools()
    async def list_tools() -> List[Tool]:
        return registry.list_tools()

    # Each tool validates its own arguments so failures come back as
    # invalid_arguments results rather than SDK schema errors
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> CallToolResult:
        result = await dispatcher.dispatch(ToolCall(name=name, arguments=arguments or {}))
        return result.to_call_tool_result()

    logger.debug(f"MCP server built with tools={','.join(registry.names())}")
    return server
