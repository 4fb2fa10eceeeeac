"""ABOUTME: Outbound fetch subsystem - SSRF guard, fetcher and HTML to text conversion."""

from .fetcher import FetchResult, Fetcher
from .html_to_text import html_to_text
from .ssrf import FetchPolicy, FetchPolicyDecision, evaluate

__all__ = [
    "FetchResult",
    "Fetcher",
    "html_to_text",
    "FetchPolicy",
    "FetchPolicyDecision",
    "evaluate",
]
