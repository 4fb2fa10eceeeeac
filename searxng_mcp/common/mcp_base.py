"""ABOUTME: Common MCP server plumbing - logging setup and success result helpers.

Logging always goes to stderr: on the stdio transport stdout carries protocol
frames and must never receive log lines.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from mcp.types import CallToolResult, TextContent

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

LOG_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def verbosity_to_level(verbose: int) -> Optional[str]:
    """Map a -v count to a log level name (None when no -v was given)."""
    if verbose <= 0:
        return None
    if verbose == 1:
        return "info"
    return "debug"


def setup_logging(level: str = "warning") -> logging.Logger:
    """Configure process-wide logging on stderr.

    Args:
        level: Level name (debug, info, warning, error)

    Returns:
        The package logger
    """
    logging.basicConfig(
        level=LOG_LEVELS.get(level, logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO, which drowns tool logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("searxng_mcp")


def truncate_for_log(value: str, max_length: int) -> str:
    """Trim long values (queries, URLs) before they go into a log line."""
    value = value.strip()
    if len(value) <= max_length:
        return value
    return value[:max_length] + "..."


def create_success_result(payload: Dict[str, Any]) -> CallToolResult:
    """Create standardized success result.

    The payload is returned both as structured content and as JSON text, so
    clients that only read text content still get the full result.

    Examples:
        >>> result = create_success_result({"ok": True, "message": "pong"})
    """
    text = json.dumps(payload, ensure_ascii=False)
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        structuredContent=payload,
    )
