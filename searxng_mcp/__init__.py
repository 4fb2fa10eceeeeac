"""
SearXNG MCP Server

MCP server exposing SearXNG search and SSRF-guarded page browsing as tools.
"""

__version__ = "0.3.0"

SERVER_NAME = "searxng-mcp"
DEFAULT_USER_AGENT = f"{SERVER_NAME}/{__version__}"

__all__ = ["__version__", "SERVER_NAME", "DEFAULT_USER_AGENT"]
