"""ABOUTME: The five tool handlers - search, browse, engines, health and ping."""

import logging
from typing import Any, Dict

from .. import __version__
from ..browse.fetcher import Fetcher
from ..common.mcp_base import truncate_for_log
from ..config import ToolName
from ..searxng import SearchRequest, SearxngClient
from .base import ToolHandler
from .schemas import BrowseInput, EnginesInput, HealthInput, PingInput, SearchInput

logger = logging.getLogger(__name__)


class SearchTool(ToolHandler):
    name = ToolName.SEARCH
    description = (
        "Search the web through the configured SearXNG instance. Returns results "
        "ordered by relevance score, each with title, url, snippet and the engine "
        "that found it, plus any query suggestions."
    )
    input_model = SearchInput

    def __init__(self, client: SearxngClient):
        self.client = client

    async def invoke(self, args: SearchInput) -> Dict[str, Any]:
        request = SearchRequest(
            query=args.query,
            engines=tuple(args.engines) if args.engines else None,
            categories=tuple(args.categories) if args.categories else None,
            language=args.language,
            safe_search=args.safe_search,
            num_results=args.num_results,
            pageno=args.pageno,
            time_range=args.time_range,
        )
        logger.debug(
            f"search query='{truncate_for_log(args.query, 100)}' "
            f"engines={request.engines} categories={request.categories}"
        )
        response = await self.client.search(request)
        return response.to_payload()


class BrowseTool(ToolHandler):
    name = ToolName.BROWSE
    description = (
        "Fetch a web page over HTTP(S) and return its readable text. HTML is "
        "converted to Markdown-like text. Private, loopback and cloud metadata "
        "addresses are refused, and large pages are truncated."
    )
    input_model = BrowseInput

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    async def invoke(self, args: BrowseInput) -> Dict[str, Any]:
        result = await self.fetcher.fetch(args.url, follow_redirects=args.follow_redirects)
        return result.to_payload()


class EnginesTool(ToolHandler):
    name = ToolName.ENGINES
    description = "List the search engines configured on the SearXNG instance."
    input_model = EnginesInput

    def __init__(self, client: SearxngClient):
        self.client = client

    async def invoke(self, args: EnginesInput) -> Dict[str, Any]:
        engines = await self.client.get_engines(args.filter)
        logger.debug(f"engines filter={args.filter.value} count={len(engines)}")
        return {"engines": [e.to_payload() for e in engines]}


class HealthTool(ToolHandler):
    name = ToolName.HEALTH
    description = "Check connectivity to the configured SearXNG instance."
    input_model = HealthInput

    def __init__(self, client: SearxngClient):
        self.client = client

    async def invoke(self, args: HealthInput) -> Dict[str, Any]:
        status = await self.client.health(include_engines=args.include_engines)
        payload: Dict[str, Any] = {"reachable": status.reachable, "version": __version__}
        if status.latency_ms is not None:
            payload["latencyMs"] = status.latency_ms
        if status.engines_enabled is not None:
            payload["enginesEnabled"] = status.engines_enabled
        if status.error:
            payload["error"] = status.error
        return payload


class PingTool(ToolHandler):
    name = ToolName.PING
    description = "Check that the server is alive. Makes no network calls."
    input_model = PingInput

    async def invoke(self, args: PingInput) -> Dict[str, Any]:
        return {"ok": True, "message": args.message if args.message is not None else "pong"}
