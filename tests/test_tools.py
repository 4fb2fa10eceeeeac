"""ABOUTME: Tests for the tool handlers, run end to end through the dispatcher."""

import httpx
import pytest

from searxng_mcp import __version__
from searxng_mcp.browse.fetcher import Fetcher
from searxng_mcp.common.error_handling import ERROR_INVALID_ARGUMENTS, ERROR_SSRF_BLOCKED
from searxng_mcp.config import BrowseSettings, SearxngSettings, ToolName
from searxng_mcp.registry import Dispatcher, ToolCall, ToolFailure, ToolRegistry, ToolSuccess
from searxng_mcp.searxng import SearxngClient
from searxng_mcp.tools import build_handlers


@pytest.fixture
def make_dispatcher(fake_resolver):
    """Fixture providing a factory for a dispatcher with every tool enabled.

    searxng_handler serves the aggregator, browse_handler serves fetched pages.
    """
    def factory(searxng_handler=None, browse_handler=None, **browse_settings):
        def refuse(request):
            raise AssertionError(f"unexpected request to {request.url}")

        client = SearxngClient(
            SearxngSettings(num_results=5),
            transport=httpx.MockTransport(searxng_handler or refuse),
        )
        fetcher = Fetcher(
            BrowseSettings(**browse_settings),
            transport=httpx.MockTransport(browse_handler or refuse),
            resolver=fake_resolver,
        )
        return Dispatcher(ToolRegistry(build_handlers(client, fetcher), set(ToolName)))

    return factory


class TestSearchTool:
    """Tests for the search tool."""

    @pytest.mark.asyncio
    async def test_search(self, make_dispatcher, searxng_search_payload):
        """Test arguments flow to SearXNG and results come back ordered."""
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=searxng_search_payload)

        dispatcher = make_dispatcher(searxng_handler=handler)
        result = await dispatcher.dispatch(ToolCall("search", {
            "query": "python asyncio",
            "engines": "google, duckduckgo",
            "categories": ["general"],
            "safeSearch": "strict",
            "numResults": 2,
            "timeRange": "month",
        }))

        assert isinstance(result, ToolSuccess)
        assert seen["params"]["engines"] == "google,duckduckgo"
        assert seen["params"]["categories"] == "general"
        assert seen["params"]["safesearch"] == "2"
        assert seen["params"]["time_range"] == "month"
        assert [r["title"] for r in result.payload["results"]] == ["asyncio docs", "Medium score"]
        assert result.payload["suggestions"] == ["python asyncio tutorial", "asyncio gather"]

    @pytest.mark.asyncio
    async def test_invalid_time_range(self, make_dispatcher):
        """Test an unknown time range is rejected before any request."""
        dispatcher = make_dispatcher()
        result = await dispatcher.dispatch(ToolCall("search", {"query": "q", "timeRange": "decade"}))
        assert result.kind == ERROR_INVALID_ARGUMENTS

    @pytest.mark.asyncio
    async def test_invalid_safe_search(self, make_dispatcher):
        """Test an unknown safe-search level is rejected."""
        dispatcher = make_dispatcher()
        result = await dispatcher.dispatch(ToolCall("search", {"query": "q", "safeSearch": 5}))
        assert result.kind == ERROR_INVALID_ARGUMENTS
        assert result.details == {"field": "safeSearch"}

    @pytest.mark.asyncio
    async def test_aggregator_failure(self, make_dispatcher):
        """Test a SearXNG failure becomes an aggregator_error result."""
        dispatcher = make_dispatcher(searxng_handler=lambda request: httpx.Response(500, text="boom"))
        result = await dispatcher.dispatch(ToolCall("search", {"query": "q"}))
        assert isinstance(result, ToolFailure)
        assert result.kind == "aggregator_error"
        assert result.details == {"status_code": 500}


class TestBrowseTool:
    """Tests for the browse tool."""

    @pytest.mark.asyncio
    async def test_browse(self, make_dispatcher):
        """Test a page is fetched and returned with metadata."""
        dispatcher = make_dispatcher(
            browse_handler=lambda request: httpx.Response(
                200,
                headers={"content-type": "text/html"},
                content=b"<html><head><title>Hi</title></head><body><h1>Hello</h1></body></html>",
            )
        )
        result = await dispatcher.dispatch(ToolCall("browse", {"url": "https://example.com/"}))

        assert isinstance(result, ToolSuccess)
        assert result.payload["title"] == "Hi"
        assert result.payload["text"] == "# Hello"
        assert result.payload["finalUrl"] == "https://example.com/"
        assert result.payload["status"] == 200
        assert result.payload["truncated"] is False

    @pytest.mark.asyncio
    async def test_browse_blocked(self, make_dispatcher):
        """Test a private target is reported as ssrf_blocked."""
        dispatcher = make_dispatcher()
        result = await dispatcher.dispatch(ToolCall("browse", {"url": "http://10.0.0.1/admin"}))
        assert result.kind == ERROR_SSRF_BLOCKED
        assert result.details == {"reason": "private_address"}

    @pytest.mark.asyncio
    async def test_follow_redirects_argument(self, make_dispatcher):
        """Test followRedirects enables redirects for one call."""
        def handler(request):
            if request.url.path == "/start":
                return httpx.Response(302, headers={"location": "/end"})
            return httpx.Response(200, headers={"content-type": "text/plain"}, content=b"end")

        dispatcher = make_dispatcher(browse_handler=handler)
        result = await dispatcher.dispatch(ToolCall("browse", {
            "url": "https://example.com/start",
            "followRedirects": True,
        }))
        assert result.payload["redirects"] == 1
        assert result.payload["text"] == "end"

    @pytest.mark.asyncio
    async def test_blank_url(self, make_dispatcher):
        """Test an empty URL is invalid_arguments."""
        dispatcher = make_dispatcher()
        result = await dispatcher.dispatch(ToolCall("browse", {"url": " "}))
        assert result.kind == ERROR_INVALID_ARGUMENTS
        assert result.details == {"field": "url"}


class TestEnginesAndHealth:
    """Tests for the engines and health tools."""

    @pytest.mark.asyncio
    async def test_engines(self, make_dispatcher, searxng_config_payload):
        """Test engines are listed with the requested filter."""
        dispatcher = make_dispatcher(
            searxng_handler=lambda request: httpx.Response(200, json=searxng_config_payload)
        )
        result = await dispatcher.dispatch(ToolCall("engines", {"filter": "all"}))
        names = [e["name"] for e in result.payload["engines"]]
        assert names == ["google", "duckduckgo", "bing news"]
        assert result.payload["engines"][0] == {
            "name": "google", "categories": ["general"], "enabled": True, "shortcut": "go",
        }

    @pytest.mark.asyncio
    async def test_bad_engine_filter(self, make_dispatcher):
        """Test an unknown filter is rejected."""
        dispatcher = make_dispatcher()
        result = await dispatcher.dispatch(ToolCall("engines", {"filter": "broken"}))
        assert result.kind == ERROR_INVALID_ARGUMENTS

    @pytest.mark.asyncio
    async def test_health(self, make_dispatcher, searxng_config_payload):
        """Test health reports reachability, version and engine count."""
        dispatcher = make_dispatcher(
            searxng_handler=lambda request: httpx.Response(200, json=searxng_config_payload)
        )
        result = await dispatcher.dispatch(ToolCall("health", {"includeEngines": True}))
        assert result.payload["reachable"] is True
        assert result.payload["version"] == __version__
        assert result.payload["enginesEnabled"] == 2
        assert "latencyMs" in result.payload
        assert "error" not in result.payload

    @pytest.mark.asyncio
    async def test_health_unreachable(self, make_dispatcher):
        """Test an unreachable instance is a successful result with reachable=false."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        dispatcher = make_dispatcher(searxng_handler=handler)
        result = await dispatcher.dispatch(ToolCall("health", {}))
        assert isinstance(result, ToolSuccess)
        assert result.payload["reachable"] is False
        assert "connection refused" in result.payload["error"]
