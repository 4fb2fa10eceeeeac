"""ABOUTME: Async client for the SearXNG HTTP API (/search and /config).

Wraps one httpx.AsyncClient configured with the instance base URL, timeout and
User-Agent. Responses are mapped to frozen value objects; every failure is
raised as AggregatorError (or AggregatorTimeout) with a caller-safe message.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .common.error_handling import AggregatorError, AggregatorTimeout, HTTPStatusCodes
from .common.http_utils import build_async_client
from .common.mcp_base import truncate_for_log
from .config import SearxngSettings

logger = logging.getLogger(__name__)

# How much of an error body is written to the log
MAX_ERROR_BODY_CHARS = 200


class EngineFilter(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"
    ALL = "all"


@dataclass(frozen=True)
class SearchRequest:
    """One search call. None means "use the configured default"."""
    query: str
    engines: Optional[Tuple[str, ...]] = None
    categories: Optional[Tuple[str, ...]] = None
    language: Optional[str] = None
    safe_search: Optional[int] = None
    num_results: Optional[int] = None
    pageno: Optional[int] = None
    time_range: Optional[str] = None


@dataclass(frozen=True)
class SearchResult:
    """One SearXNG result.

    Attributes:
        title: Result title
        url: Result URL
        snippet: Result text (SearXNG "content")
        engine: First engine that returned the result
        engines: Every engine that returned the result
        score: SearXNG relevance score (0.0 when missing)
        category: SearXNG category, if reported
    """
    title: str
    url: str
    snippet: str = ""
    engine: Optional[str] = None
    engines: Tuple[str, ...] = ()
    score: float = 0.0
    category: Optional[str] = None

    @classmethod
    def from_json(cls, item: Dict[str, Any]) -> "SearchResult":
        engines = tuple(e for e in item.get("engines") or () if isinstance(e, str))
        engine = engines[0] if engines else item.get("engine")
        score = item.get("score")
        return cls(
            title=str(item.get("title") or ""),
            url=str(item.get("url") or ""),
            snippet=str(item.get("content") or ""),
            engine=engine if isinstance(engine, str) else None,
            engines=engines,
            score=float(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else 0.0,
            category=item.get("category") if isinstance(item.get("category"), str) else None,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "snippet": self.snippet,
            "engine": self.engine,
            "engines": list(self.engines),
            "score": self.score,
            "category": self.category,
        }


@dataclass(frozen=True)
class SearchResponse:
    query: str
    results: Tuple[SearchResult, ...] = ()
    suggestions: Tuple[str, ...] = ()

    def to_payload(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_payload() for r in self.results],
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class EngineInfo:
    name: str
    categories: Tuple[str, ...] = ()
    enabled: bool = False
    shortcut: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "categories": list(self.categories),
            "enabled": self.enabled,
            "shortcut": self.shortcut,
        }


@dataclass(frozen=True)
class HealthStatus:
    """Connectivity check result. An unreachable instance is reported, not raised."""
    reachable: bool
    latency_ms: Optional[int] = None
    engines_enabled: Optional[int] = None
    error: Optional[str] = None


class SearxngClient:
    """Typed async client for one SearXNG instance."""

    def __init__(
        self,
        settings: SearxngSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self._client = build_async_client(
            timeout=settings.timeout_secs,
            user_agent=settings.user_agent,
            base_url=settings.base_url,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def build_params(self, request: SearchRequest) -> Dict[str, str]:
        """Build /search query parameters, filling gaps from the configured defaults."""
        s = self.settings
        engines = request.engines if request.engines is not None else s.default_engines
        categories = request.categories if request.categories is not None else s.default_categories
        safe_search = request.safe_search if request.safe_search is not None else s.safe_search

        params = {
            "q": request.query,
            "format": "json",
            "language": request.language or s.language,
            "safesearch": str(safe_search),
        }
        if categories:
            params["categories"] = ",".join(categories)
        if engines:
            params["engines"] = ",".join(engines)
        if request.pageno is not None:
            params["pageno"] = str(request.pageno)
        if request.time_range:
            params["time_range"] = request.time_range
        return params

    async def _get_json(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException:
            logger.warning(f"SearXNG {path} timed out after {self.settings.timeout_secs}s")
            raise AggregatorTimeout(
                f"SearXNG {path} timed out after {self.settings.timeout_secs} seconds"
            ) from None
        except httpx.RequestError as e:
            logger.warning(f"SearXNG {path} request failed: {e!r}")
            raise AggregatorError(f"SearXNG {path} request failed ({type(e).__name__})") from e

        if not HTTPStatusCodes.is_success(response.status_code):
            body = truncate_for_log(response.text, MAX_ERROR_BODY_CHARS)
            logger.warning(f"SearXNG {path} returned HTTP {response.status_code}: {body}")
            message = f"SearXNG {path} failed: HTTP {response.status_code}"
            if HTTPStatusCodes.is_rate_limit(response.status_code):
                message += " (rate limited)"
            raise AggregatorError(message, status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise AggregatorError(
                f"SearXNG {path} returned invalid JSON (is format=json enabled?)",
                status=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise AggregatorError(f"Unexpected SearXNG {path} response: expected a JSON object")
        return data

    async def search(self, request: SearchRequest) -> SearchResponse:
        """Run a search and return results ordered by score, highest first.

        Raises:
            AggregatorError: Non-2xx, invalid JSON, unexpected shape or transport failure
            AggregatorTimeout: The request timed out
        """
        data = await self._get_json("/search", self.build_params(request))

        raw_results = data.get("results", [])
        if not isinstance(raw_results, list):
            raise AggregatorError("Unexpected SearXNG /search response: results is not a list")

        results = [SearchResult.from_json(item) for item in raw_results if isinstance(item, dict)]
        # sorted() is stable, so equal scores keep SearXNG's order
        results = sorted(results, key=lambda r: r.score, reverse=True)

        limit = request.num_results if request.num_results is not None else self.settings.num_results
        if limit > 0:
            results = results[:limit]

        suggestions = tuple(s for s in data.get("suggestions") or () if isinstance(s, str))
        return SearchResponse(query=request.query, results=tuple(results), suggestions=suggestions)

    async def get_engines(self, engine_filter: EngineFilter = EngineFilter.ENABLED) -> List[EngineInfo]:
        """List engines from /config, filtered by enabled state."""
        data = await self._get_json("/config")
        raw_engines = data.get("engines")
        if not isinstance(raw_engines, list):
            raise AggregatorError("Unexpected SearXNG /config response: missing engines array")

        engines = []
        for item in raw_engines:
            if not isinstance(item, dict) or not isinstance(item.get("name"), str):
                continue
            enabled = item.get("enabled") is True
            if engine_filter == EngineFilter.ENABLED and not enabled:
                continue
            if engine_filter == EngineFilter.DISABLED and enabled:
                continue
            shortcut = item.get("shortcut")
            engines.append(EngineInfo(
                name=item["name"],
                categories=tuple(c for c in item.get("categories") or () if isinstance(c, str)),
                enabled=enabled,
                shortcut=shortcut if isinstance(shortcut, str) else None,
            ))
        return engines

    async def health(self, include_engines: bool = False) -> HealthStatus:
        """Check /config. Failures are reported in the status instead of raised."""
        start = time.perf_counter()
        try:
            if include_engines:
                engines = await self.get_engines(EngineFilter.ENABLED)
                engines_enabled: Optional[int] = len(engines)
            else:
                await self._get_json("/config")
                engines_enabled = None
        except AggregatorError as e:
            return HealthStatus(reachable=False, error=e.message)

        latency_ms = int((time.perf_counter() - start) * 1000)
        return HealthStatus(reachable=True, latency_ms=latency_ms, engines_enabled=engines_enabled)
