"""Tests for pacing and bounded retry."""

import asyncio
import random
from typing import List

import pytest

from internscout.fetchers.http import FetchError
from internscout.ratelimit import RateLimiter


class _Recorder:
    def __init__(self) -> None:
        self.sleeps: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def _limiter(sleep, **kw) -> RateLimiter:
    defaults = dict(min_delay_s=2, max_delay_s=8, max_attempts=3, backoff_base_s=1, backoff_max_s=30)
    defaults.update(kw)
    return RateLimiter(sleep=sleep, rng=random.Random(7), **defaults)


class TestDelays:
    def test_polite_delay_in_range(self) -> None:
        lim = _limiter(_Recorder())
        for _ in range(50):
            assert 2 <= lim.polite_delay() <= 8

    def test_backoff_grows_and_caps(self) -> None:
        lim = _limiter(_Recorder())
        assert 1 <= lim.backoff_delay(0) <= 2
        assert 2 <= lim.backoff_delay(1) <= 3
        assert lim.backoff_delay(10) == 30

    def test_invalid_range(self) -> None:
        with pytest.raises(ValueError):
            RateLimiter(min_delay_s=5, max_delay_s=1)

    async def test_pace_skips_first_request_per_host(self) -> None:
        rec = _Recorder()
        lim = _limiter(rec)
        await lim.pace("https://api.github.com/a")
        await lim.pace("https://www.indeed.com/jobs")
        assert rec.sleeps == []
        await lim.pace("https://api.github.com/b")
        assert len(rec.sleeps) == 1
        assert 2 <= rec.sleeps[0] <= 8


class TestRun:
    async def test_success_first_try(self) -> None:
        rec = _Recorder()

        async def ok() -> str:
            return "body"

        outcome = await _limiter(rec).run(ok)
        assert outcome.ok and outcome.value == "body" and outcome.attempts == 1
        assert rec.sleeps == []

    async def test_retries_then_succeeds(self) -> None:
        rec = _Recorder()
        calls = {"n": 0}

        async def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise FetchError("HTTP 503", status=503)
            return "ok"

        outcome = await _limiter(rec).run(flaky)
        assert outcome.ok
        assert outcome.attempts == 3
        assert len(rec.sleeps) == 2

    async def test_exhaustion_returns_error(self) -> None:
        rec = _Recorder()

        async def down() -> str:
            raise FetchError("Timeout")

        outcome = await _limiter(rec).run(down)
        assert not outcome.ok
        assert outcome.attempts == 3
        assert outcome.error_message == "Timeout"
        assert len(rec.sleeps) == 2

    async def test_non_retryable_stops(self) -> None:
        rec = _Recorder()
        calls = {"n": 0}

        async def forbidden() -> str:
            calls["n"] += 1
            raise FetchError("HTTP 403", status=403, retryable=False)

        outcome = await _limiter(rec).run(forbidden)
        assert calls["n"] == 1
        assert outcome.attempts == 1
        assert rec.sleeps == []

    async def test_retry_after_honored_within_cap(self) -> None:
        rec = _Recorder()
        calls = {"n": 0}

        async def limited() -> str:
            calls["n"] += 1
            if calls["n"] == 1:
                raise FetchError("HTTP 429", status=429, retry_after_s=12)
            return "ok"

        await _limiter(rec).run(limited)
        assert rec.sleeps == [12]

    async def test_cancellation_propagates(self) -> None:
        async def cancelled() -> str:
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await _limiter(_Recorder()).run(cancelled)

    def test_from_settings(self, settings) -> None:
        lim = RateLimiter.from_settings(settings, max_attempts=5)
        assert lim.max_attempts == 5
        assert lim.max_delay_s == settings.max_delay_s
