"""
Async HTTP fetcher shared by all providers.

A fetch is a single attempt; pacing and retries belong to each provider's
RateLimiter so that one slow source never throttles another.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp


RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


class FetchError(Exception):
    """A failed HTTP fetch. `retryable` tells the limiter whether to try again."""

    def __init__(self, message: str, status: int = 0, retryable: bool = True, retry_after_s: Optional[float] = None):
        super().__init__(message)
        self.status = status
        self.retryable = retryable
        self.retry_after_s = retry_after_s


@dataclass
class FetchResult:
    """Result of a fetch operation."""
    url: str
    status: int = 0
    text: str = ""
    content_type: str = ""
    error: str = ""
    retry_after: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400 and not self.error

    def raise_for_status(self) -> "FetchResult":
        """Raise FetchError unless the fetch succeeded."""
        if self.ok:
            return self
        retryable = self.status == 0 or self.status in RETRYABLE_STATUSES
        message = self.error or f"HTTP {self.status}"
        raise FetchError(
            f"{message} ({self.url})",
            status=self.status,
            retryable=retryable,
            retry_after_s=_parse_retry_after(self.retry_after),
        )

    def json(self) -> Any:
        """Decode the body as JSON whatever the Content-Type says."""
        try:
            return json.loads(self.text or "")
        except (json.JSONDecodeError, TypeError) as e:
            raise FetchError(f"Invalid JSON from {self.url}: {e}", status=self.status, retryable=False) from e


def _parse_retry_after(header: str) -> Optional[float]:
    if not header:
        return None
    try:
        return float(header)
    except ValueError:
        return None


class HttpFetcher:
    """
    One aiohttp session for a whole run. Providers share it and never
    open their own connections.
    """

    USER_AGENT = "internship-tracker/1.0"
    BROWSER_USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    DEFAULT_HEADERS = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }

    def __init__(self, timeout_s: float = 20):
        self.timeout_s = timeout_s
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpFetcher":
        self._ensure_session()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self.DEFAULT_HEADERS,
                timeout=aiohttp.ClientTimeout(total=self.timeout_s),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResult:
        """
        GET a URL once. Transport failures come back as a FetchResult with
        status 0 and an error message; nothing is raised.
        """
        session = self._ensure_session()
        try:
            async with session.get(url, headers=headers) as resp:
                content_type = resp.headers.get("Content-Type", "")
                if resp.status >= 400:
                    return FetchResult(
                        url=url,
                        status=resp.status,
                        content_type=content_type,
                        error=f"HTTP {resp.status}",
                        retry_after=resp.headers.get("Retry-After", ""),
                    )
                text = await resp.text(errors="replace")
                return FetchResult(url=url, status=resp.status, text=text, content_type=content_type)
        except asyncio.TimeoutError:
            return FetchResult(url=url, error=f"Timeout after {self.timeout_s:g}s")
        except aiohttp.ClientError as e:
            return FetchResult(url=url, error=str(e) or type(e).__name__)

    async def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Fetch and return the body, raising FetchError on failure."""
        result = await self.fetch(url, headers=headers)
        return result.raise_for_status().text

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """Fetch and decode a JSON body, raising FetchError on failure."""
        result = await self.fetch(url, headers={"Accept": "application/json", **(headers or {})})
        return result.raise_for_status().json()
