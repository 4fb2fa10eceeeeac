"""ABOUTME: HTTP client utilities - shared httpx client construction and content-type checks."""

from typing import Optional

import httpx

# Content types browse is willing to decode as text
TEXT_CONTENT_TYPES = (
    "application/xhtml+xml",
    "application/xml",
    "application/json",
)
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


def build_async_client(
    timeout: float,
    user_agent: str,
    base_url: str = "",
    follow_redirects: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient with the server's standard settings.

    Args:
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header value
        base_url: Optional base URL for relative requests
        follow_redirects: Let httpx follow redirects itself (browse never does)
        transport: Optional transport override (tests pass httpx.MockTransport)
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": user_agent},
        follow_redirects=follow_redirects,
        transport=transport,
    )


def media_type(content_type: Optional[str]) -> str:
    """Return the lower-cased media type without parameters ("" if missing)."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_text_content_type(content_type: Optional[str]) -> bool:
    """Check whether a Content-Type header can be decoded as text.

    A missing header is accepted; the body is decoded and left as text.
    """
    mt = media_type(content_type)
    if not mt:
        return True
    if mt.startswith("text/"):
        return True
    if mt in TEXT_CONTENT_TYPES:
        return True
    return mt.endswith("+xml") or mt.endswith("+json")


def is_html_content_type(content_type: Optional[str]) -> bool:
    """Check whether a Content-Type header denotes HTML."""
    return media_type(content_type) in HTML_CONTENT_TYPES


__all__ = [
    "TEXT_CONTENT_TYPES",
    "HTML_CONTENT_TYPES",
    "build_async_client",
    "media_type",
    "is_text_content_type",
    "is_html_content_type",
]
