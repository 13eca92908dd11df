"""
Per-provider pacing and retry.

Each provider owns one RateLimiter; limiters share no state, so a blocked
source only ever slows itself down.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, Set, TypeVar
from urllib.parse import urlsplit

from internscout.fetchers.http import FetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass
class RetryOutcome(Generic[T]):
    """Value on success, otherwise the last error after retries were spent."""
    value: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> str:
        if self.error is None:
            return ""
        return str(self.error) or type(self.error).__name__


class RateLimiter:
    """
    Randomized inter-request delay plus bounded exponential backoff.

    Args:
        min_delay_s / max_delay_s: uniform range for the polite delay
        max_attempts: total attempts per call (first try included)
        backoff_base_s: first backoff; doubles on every further retry
        backoff_max_s: cap for a single backoff (jitter included)
        sleep: awaitable used for every wait (tests inject a no-op)
        rng: random source for delays and jitter
    """

    def __init__(
        self,
        min_delay_s: float = 2.0,
        max_delay_s: float = 8.0,
        max_attempts: int = 3,
        backoff_base_s: float = 1.0,
        backoff_max_s: float = 30.0,
        sleep: Optional[SleepFn] = None,
        rng: Optional[random.Random] = None,
    ):
        if max_delay_s < min_delay_s:
            raise ValueError("max_delay_s must be >= min_delay_s")
        self.min_delay_s = min_delay_s
        self.max_delay_s = max_delay_s
        self.max_attempts = max(1, max_attempts)
        self.backoff_base_s = backoff_base_s
        self.backoff_max_s = backoff_max_s
        self._sleep: SleepFn = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self._hosts_seen: Set[str] = set()

    @classmethod
    def from_settings(cls, settings, **overrides) -> "RateLimiter":
        """Build a limiter from Settings (fields min/max_delay_s, max_attempts, backoff_*)."""
        kwargs = dict(
            min_delay_s=settings.min_delay_s,
            max_delay_s=settings.max_delay_s,
            max_attempts=settings.max_attempts,
            backoff_base_s=settings.backoff_base_s,
            backoff_max_s=settings.backoff_max_s,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    def polite_delay(self) -> float:
        """Draw one inter-request delay in seconds."""
        return self._rng.uniform(self.min_delay_s, self.max_delay_s)

    def backoff_delay(self, retry_index: int) -> float:
        """Backoff before retry number `retry_index` (0-based), jitter included."""
        base = self.backoff_base_s * (2 ** retry_index)
        jitter = self._rng.uniform(0, self.backoff_base_s)
        return min(base + jitter, self.backoff_max_s)

    async def pace(self, url_or_host: str) -> None:
        """
        Wait before a request to a host this limiter already called.
        The first request to a host goes out immediately.
        """
        host = urlsplit(url_or_host).netloc.lower() or url_or_host.lower()
        if host in self._hosts_seen:
            delay = self.polite_delay()
            if delay > 0:
                await self._sleep(delay)
        self._hosts_seen.add(host)

    async def run(self, fn: Callable[[], Awaitable[T]], label: str = "") -> RetryOutcome[T]:
        """
        Call `fn` until it succeeds or attempts run out.

        Non-retryable FetchErrors (client errors) stop immediately. The
        returned outcome carries the last error instead of raising it.
        """
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                value = await fn()
                return RetryOutcome(value=value, attempts=attempt)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                if isinstance(e, FetchError) and not e.retryable:
                    return RetryOutcome(error=e, attempts=attempt)
                if attempt >= self.max_attempts:
                    break
                delay = self.backoff_delay(attempt - 1)
                if isinstance(e, FetchError) and e.retry_after_s is not None:
                    delay = min(max(delay, e.retry_after_s), self.backoff_max_s)
                logger.debug("Retrying %s after %.1fs (attempt %d failed: %s)", label or "call", delay, attempt, e)
                if delay > 0:
                    await self._sleep(delay)

        return RetryOutcome(error=last_error, attempts=self.max_attempts)
