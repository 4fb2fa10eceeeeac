"""ABOUTME: Pytest configuration and shared fixtures for searxng-mcp tests.

Provides config factories, a fake DNS resolver, sample SearXNG payloads and
helpers for building httpx.MockTransport-backed clients, so no test touches
the network.
"""

import os
import socket
from typing import Any, Dict, List

import httpx
import pytest

from searxng_mcp.browse.fetcher import Fetcher
from searxng_mcp.config import BrowseSettings, EffectiveConfig, SearxngSettings
from searxng_mcp.searxng import SearxngClient

PUBLIC_IP = "93.184.216.34"

DNS_TABLE: Dict[str, List[str]] = {
    "example.com": [PUBLIC_IP],
    "www.example.com": [PUBLIC_IP],
    "other.example.org": ["93.184.216.35"],
    "localhost": ["127.0.0.1", "::1"],
    "intranet.corp": ["10.0.0.7"],
    "mixed.example.net": [PUBLIC_IP, "192.168.1.10"],
    "metadata.google.internal": ["169.254.169.254"],
    "empty.example": [],
}

# Environment prefixes read by the config sections
CONFIG_ENV_PREFIXES = ("SEARXNG_", "BROWSE_", "STREAMABLE_HTTP_")


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Remove config environment variables so the host environment never leaks into a test."""
    for name in list(os.environ):
        if name.upper().startswith(CONFIG_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_resolver():
    """Fixture providing an async resolver backed by DNS_TABLE.

    Unknown hosts raise socket.gaierror like getaddrinfo does.
    """
    async def resolve(host: str) -> List[str]:
        if host not in DNS_TABLE:
            raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        return list(DNS_TABLE[host])

    return resolve


@pytest.fixture
def make_config():
    """Fixture providing a factory for EffectiveConfig with section overrides.

    Example:
        config = make_config(browse={"max_bytes": 10}, tools=["ping"])
    """
    def factory(**sections: Any) -> EffectiveConfig:
        return EffectiveConfig.model_validate(sections)

    return factory


@pytest.fixture
def make_fetcher(fake_resolver):
    """Fixture providing a factory for Fetchers backed by a MockTransport handler."""

    def factory(handler, **settings: Any) -> Fetcher:
        return Fetcher(
            BrowseSettings(**settings),
            transport=httpx.MockTransport(handler),
            resolver=fake_resolver,
        )

    return factory


@pytest.fixture
def make_searxng_client():
    """Fixture providing a factory for SearxngClients backed by a MockTransport handler."""
    def factory(handler, **settings: Any) -> SearxngClient:
        return SearxngClient(SearxngSettings(**settings), transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def searxng_search_payload() -> Dict[str, Any]:
    """Fixture providing a SearXNG /search?format=json response.

    Results are deliberately out of score order.
    """
    return {
        "query": "python asyncio",
        "number_of_results": 4,
        "results": [
            {
                "title": "Low score",
                "url": "https://low.example.com",
                "content": "Rarely useful",
                "engine": "bing",
                "engines": ["bing"],
                "score": 0.5,
                "category": "general",
            },
            {
                "title": "asyncio docs",
                "url": "https://docs.python.org/3/library/asyncio.html",
                "content": "asyncio is a library to write concurrent code",
                "engine": "google",
                "engines": ["google", "duckduckgo"],
                "score": 4.0,
                "category": "general",
            },
            {
                "title": "Medium score",
                "url": "https://medium.example.com",
                "content": "Somewhat useful",
                "engine": "duckduckgo",
                "score": 2.0,
            },
            {
                "title": "No score",
                "url": "https://noscore.example.com",
                "content": "",
                "engines": ["brave"],
            },
        ],
        "suggestions": ["python asyncio tutorial", "asyncio gather"],
        "answers": [],
        "infoboxes": [],
    }


@pytest.fixture
def searxng_config_payload() -> Dict[str, Any]:
    """Fixture providing a SearXNG /config response."""
    return {
        "instance_name": "SearXNG",
        "engines": [
            {"name": "google", "categories": ["general"], "enabled": True, "shortcut": "go"},
            {"name": "duckduckgo", "categories": ["general"], "enabled": True, "shortcut": "ddg"},
            {"name": "bing news", "categories": ["news"], "enabled": False, "shortcut": "bin"},
            {"categories": ["general"], "enabled": True},
        ],
    }
