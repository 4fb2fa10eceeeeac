"""ABOUTME: Shared error handling for the SearXNG MCP server.

Provides the error taxonomy (exception classes and their machine-readable
kinds), HTTP status code helpers, and the functions that turn failures into
MCP CallToolResult payloads. Every failure that reaches a client is a
structured {kind, message} pair, never a traceback.
"""

from typing import Any, Dict, Optional

from mcp.types import CallToolResult, TextContent


# =============================================================================
# Error Kind Constants
# =============================================================================

# Caller errors
ERROR_TOOL_NOT_FOUND: str = "tool_not_found"
ERROR_INVALID_ARGUMENTS: str = "invalid_arguments"

# Fetch path errors
ERROR_SSRF_BLOCKED: str = "ssrf_blocked"
ERROR_TIMEOUT: str = "timeout"
ERROR_TOO_MANY_REDIRECTS: str = "too_many_redirects"
ERROR_NETWORK_ERROR: str = "network_error"
ERROR_NON_TEXT_CONTENT: str = "non_text_content"

# Search path errors
ERROR_AGGREGATOR: str = "aggregator_error"

# General errors
ERROR_INTERNAL: str = "internal_error"


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Invalid configuration detected while resolving settings at startup."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class ProtocolError(Exception):
    """A malformed frame was received on a stream transport."""

    def __init__(self, message: str, code: int):
        self.code = code
        super().__init__(message)


class ToolError(Exception):
    """Base class for failures that are reported to the caller as tool results.

    Subclasses set ``kind`` to one of the ERROR_* constants. ``details`` holds
    extra structured context that is safe to show to the caller.
    """

    kind: str = ERROR_INTERNAL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = dict(details or {})
        super().__init__(message)


class ToolNotFound(ToolError):
    kind = ERROR_TOOL_NOT_FOUND

    def __init__(self, name: str):
        # Unknown and disabled tools must be indistinguishable
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArguments(ToolError):
    kind = ERROR_INVALID_ARGUMENTS

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}", {"field": field})
        self.field = field


class FetchError(ToolError):
    """Base class for outbound fetch failures."""

    kind = ERROR_NETWORK_ERROR


class SsrfBlocked(FetchError):
    kind = ERROR_SSRF_BLOCKED

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Refusing to fetch {url} ({reason})",
            {"reason": reason},
        )
        self.reason = reason


class FetchTimeout(FetchError):
    kind = ERROR_TIMEOUT

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(
            f"Fetching {url} timed out after {timeout_seconds} seconds",
            {"timeout_seconds": timeout_seconds},
        )


class TooManyRedirects(FetchError):
    kind = ERROR_TOO_MANY_REDIRECTS

    def __init__(self, url: str, max_redirects: int):
        super().__init__(
            f"Too many redirects fetching {url} (max_redirects={max_redirects})",
            {"max_redirects": max_redirects},
        )


class NetworkError(FetchError):
    kind = ERROR_NETWORK_ERROR


class HttpStatusError(NetworkError):
    """Final response of a fetch was not a 2xx."""

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        super().__init__(
            message or f"HTTP {status_code} fetching {url}",
            {"status_code": status_code},
        )
        self.status_code = status_code


class NonTextContent(FetchError):
    kind = ERROR_NON_TEXT_CONTENT

    def __init__(self, url: str, content_type: str):
        super().__init__(
            f"Unsupported content-type for browse: {content_type}",
            {"content_type": content_type},
        )
        self.content_type = content_type


class AggregatorError(ToolError):
    """The SearXNG instance failed or returned something unusable."""

    kind = ERROR_AGGREGATOR

    def __init__(self, message: str, status: Optional[int] = None):
        details = {"status_code": status} if status is not None else None
        super().__init__(message, details)
        self.status = status


class AggregatorTimeout(AggregatorError):
    kind = ERROR_TIMEOUT


# =============================================================================
# HTTP Status Code Helpers
# =============================================================================

class HTTPStatusCodes:
    """Helper methods for HTTP status code checks.

    Provides semantic methods to check HTTP status codes instead of
    hardcoding numeric values throughout the codebase.
    """

    @staticmethod
    def is_success(status_code: int) -> bool:
        """Check if status code is a 2xx."""
        return 200 <= status_code < 300

    @staticmethod
    def is_redirect(status_code: int) -> bool:
        """Check if status code is a redirect that carries a Location header.

        Example:
            if HTTPStatusCodes.is_redirect(response.status_code):
                location = response.headers.get("location")
        """
        return status_code in (301, 302, 303, 307, 308)

    @staticmethod
    def is_rate_limit(status_code: int) -> bool:
        """Check if status code is 429 (Too Many Requests)."""
        return status_code == 429


# =============================================================================
# Error Result Creation
# =============================================================================

def create_error_result(
    error_message: str,
    error_code: str,
    additional_metadata: Optional[Dict[str, Any]] = None
) -> CallToolResult:
    """Create standardized error CallToolResult.

    This is the main error creation function. The text content is meant for
    LLMs, the structured content for programmatic clients.

    Args:
        error_message: Human-readable error message for users and LLMs
        error_code: Machine-readable error kind (use ERROR_* constants)
        additional_metadata: Extra caller-safe context (optional)

    Returns:
        CallToolResult with isError=True

    Example:
        result = create_error_result(
            error_message="Unknown tool: fetch",
            error_code=ERROR_TOOL_NOT_FOUND,
        )
    """
    structured: Dict[str, Any] = {"kind": error_code, "message": error_message}
    if additional_metadata:
        structured["details"] = dict(additional_metadata)

    return CallToolResult(
        content=[TextContent(type="text", text=f"Error: {error_message}")],
        structuredContent=structured,
        isError=True,
    )
