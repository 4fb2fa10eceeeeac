"""ABOUTME: Common MCP server utilities and shared infrastructure."""

from .error_handling import (
    # Error kind constants
    ERROR_TOOL_NOT_FOUND,
    ERROR_INVALID_ARGUMENTS,
    ERROR_SSRF_BLOCKED,
    ERROR_TIMEOUT,
    ERROR_TOO_MANY_REDIRECTS,
    ERROR_NETWORK_ERROR,
    ERROR_NON_TEXT_CONTENT,
    ERROR_AGGREGATOR,
    ERROR_INTERNAL,
    # Exceptions
    ConfigError,
    ProtocolError,
    ToolError,
    ToolNotFound,
    InvalidArguments,
    FetchError,
    SsrfBlocked,
    FetchTimeout,
    TooManyRedirects,
    NetworkError,
    HttpStatusError,
    NonTextContent,
    AggregatorError,
    AggregatorTimeout,
    # HTTP status code helpers
    HTTPStatusCodes,
    # Error result creation
    create_error_result,
)
from .mcp_base import create_success_result, setup_logging

__all__ = [
    "ERROR_TOOL_NOT_FOUND",
    "ERROR_INVALID_ARGUMENTS",
    "ERROR_SSRF_BLOCKED",
    "ERROR_TIMEOUT",
    "ERROR_TOO_MANY_REDIRECTS",
    "ERROR_NETWORK_ERROR",
    "ERROR_NON_TEXT_CONTENT",
    "ERROR_AGGREGATOR",
    "ERROR_INTERNAL",
    "ConfigError",
    "ProtocolError",
    "ToolError",
    "ToolNotFound",
    "InvalidArguments",
    "FetchError",
    "SsrfBlocked",
    "FetchTimeout",
    "TooManyRedirects",
    "NetworkError",
    "HttpStatusError",
    "NonTextContent",
    "AggregatorError",
    "AggregatorTimeout",
    "HTTPStatusCodes",
    "create_error_result",
    "create_success_result",
    "setup_logging",
]
