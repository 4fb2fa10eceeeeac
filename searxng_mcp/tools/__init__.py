"""ABOUTME: Tool handlers exposed by the server."""

from typing import List

from ..browse.fetcher import Fetcher
from ..config import ToolName
from ..searxng import SearxngClient
from .base import ToolHandler
from .handlers import BrowseTool, EnginesTool, HealthTool, PingTool, SearchTool


def build_handlers(client: SearxngClient, fetcher: Fetcher) -> List[ToolHandler]:
    """Create one handler per known tool, before any allowlist is applied."""
    return [
        SearchTool(client),
        BrowseTool(fetcher),
        EnginesTool(client),
        HealthTool(client),
        PingTool(),
    ]


__all__ = [
    "ToolName",
    "ToolHandler",
    "SearchTool",
    "BrowseTool",
    "EnginesTool",
    "HealthTool",
    "PingTool",
    "build_handlers",
]
