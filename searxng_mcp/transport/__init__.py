"""ABOUTME: Transports - the MCP server built on the SDK, served over stdio or streamable HTTP."""

from .http import create_app, serve_http
from .protocol import build_mcp_server
from .stdio import SequentialGate, StdinLines, serve_stdio

__all__ = [
    "build_mcp_server",
    "SequentialGate",
    "StdinLines",
    "serve_stdio",
    "create_app",
    "serve_http",
]
