"""ABOUTME: Outbound fetcher for the browse tool.

Performs a GET with redirects handled by hand so that every hop goes through
the SSRF guard. The whole call, redirects included, is bounded by the browse
timeout, and the body is capped at max_bytes.
"""

import asyncio
import codecs
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx

from ..common.error_handling import (
    FetchTimeout,
    HTTPStatusCodes,
    HttpStatusError,
    NetworkError,
    NonTextContent,
    SsrfBlocked,
    TooManyRedirects,
)
from ..common.http_utils import build_async_client, is_html_content_type, is_text_content_type, media_type
from ..common.mcp_base import truncate_for_log
from ..config import BrowseSettings
from .html_to_text import html_to_text
from .ssrf import FetchPolicy, Resolver, evaluate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch."""
    url: str
    final_url: str
    status: int
    content_type: Optional[str]
    text: str
    title: Optional[str]
    truncated: bool
    bytes_read: int
    redirects: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "finalUrl": self.final_url,
            "status": self.status,
            "contentType": self.content_type,
            "title": self.title,
            "text": self.text,
            "truncated": self.truncated,
            "bytes": self.bytes_read,
            "redirects": self.redirects,
        }


def _codec_for(response: httpx.Response) -> str:
    encoding = response.charset_encoding or "utf-8"
    try:
        codecs.lookup(encoding)
    except LookupError:
        return "utf-8"
    return encoding


class Fetcher:
    """Fetches pages for the browse tool.

    One httpx client is created per Fetcher with automatic redirects turned
    off. The Fetcher holds no per-call state, so one instance serves any
    number of concurrent calls.
    """

    def __init__(
        self,
        settings: BrowseSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[Resolver] = None,
    ):
        self.settings = settings
        self.policy = FetchPolicy(
            allowed_hosts=settings.allowed_hosts,
            allow_private=settings.allow_private,
        )
        self._resolver = resolver
        self._client = build_async_client(
            timeout=settings.timeout_secs,
            user_agent=settings.user_agent,
            follow_redirects=False,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str, follow_redirects: Optional[bool] = None) -> FetchResult:
        """Fetch a URL and return its text.

        Args:
            url: Absolute http(s) URL
            follow_redirects: Override the configured redirect behaviour for this call

        Raises:
            SsrfBlocked: A hop was denied by the SSRF guard
            FetchTimeout: The call exceeded the browse timeout
            TooManyRedirects: The redirect chain exceeded max_redirects
            HttpStatusError: The final response was not a 2xx
            NonTextContent: The response is not decodable as text
            NetworkError: Connection or protocol failure
        """
        follow = self.settings.follow_redirects if follow_redirects is None else follow_redirects
        timeout = self.settings.timeout_secs
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._fetch(url, follow), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Fetch timed out: url={truncate_for_log(url, 200)} timeout={timeout}s")
            raise FetchTimeout(url, timeout) from None

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Fetched url={truncate_for_log(url, 200)} status={result.status} "
            f"bytes={result.bytes_read} truncated={result.truncated} "
            f"redirects={result.redirects} elapsed_ms={elapsed_ms:.0f}"
        )
        return result

    async def _fetch(self, url: str, follow: bool) -> FetchResult:
        max_redirects = self.settings.max_redirects
        current = url

        for hop in range(max_redirects + 1):
            decision = await evaluate(current, self.policy, self._resolver)
            if not decision.allowed:
                logger.warning(
                    f"Blocked fetch: url={truncate_for_log(current, 200)} "
                    f"hop={hop} reason={decision.reason}"
                )
                raise SsrfBlocked(current, decision.reason)

            try:
                async with self._client.stream("GET", current) as response:
                    status = response.status_code
                    location = response.headers.get("location")

                    if HTTPStatusCodes.is_redirect(status) and location and follow:
                        if hop == max_redirects:
                            raise TooManyRedirects(url, max_redirects)
                        current = str(response.url.join(location))
                        logger.debug(f"Redirect hop={hop + 1} status={status} to={truncate_for_log(current, 200)}")
                        continue

                    if HTTPStatusCodes.is_redirect(status) and follow:
                        raise HttpStatusError(
                            current, status, f"HTTP {status} redirect missing Location header from {current}"
                        )
                    if HTTPStatusCodes.is_redirect(status):
                        raise HttpStatusError(
                            current,
                            status,
                            f"HTTP {status} redirect from {current} (redirects are disabled)",
                        )
                    if not HTTPStatusCodes.is_success(status):
                        raise HttpStatusError(current, status)

                    content_type = response.headers.get("content-type")
                    if not is_text_content_type(content_type):
                        raise NonTextContent(current, media_type(content_type))

                    body, truncated = await self._read_body(response)
                    encoding = _codec_for(response)
            except httpx.TimeoutException:
                raise FetchTimeout(url, self.settings.timeout_secs) from None
            except httpx.InvalidURL as e:
                logger.warning(f"Invalid URL while fetching {truncate_for_log(current, 200)}: {e}")
                raise NetworkError(
                    f"Invalid URL while fetching {current}", {"error": type(e).__name__}
                ) from e
            except httpx.RequestError as e:
                logger.warning(f"Network error fetching {truncate_for_log(current, 200)}: {e!r}")
                raise NetworkError(
                    f"Network error fetching {current}", {"error": type(e).__name__}
                ) from e

            decoded = body.decode(encoding, errors="replace")
            title = None
            if is_html_content_type(content_type):
                decoded, title = await asyncio.to_thread(html_to_text, decoded)

            return FetchResult(
                url=url,
                final_url=current,
                status=status,
                content_type=content_type,
                text=decoded,
                title=title,
                truncated=truncated,
                bytes_read=len(body),
                redirects=hop,
            )

        raise TooManyRedirects(url, max_redirects)

    async def _read_body(self, response: httpx.Response) -> Tuple[bytes, bool]:
        """Read at most max_bytes of the body; report whether more was available."""
        limit = self.settings.max_bytes
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            if not chunk:
                continue
            remaining = limit - len(buffer)
            if len(chunk) > remaining:
                buffer.extend(chunk[:remaining])
                return bytes(buffer), True
            buffer.extend(chunk)
        return bytes(buffer), False
