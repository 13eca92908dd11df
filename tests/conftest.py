"""Shared fixtures: a network-free fetcher, instant limiters, a test profile."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from internscout.config import Settings
from internscout.fetchers.http import FetchError
from internscout.models import CandidateProfile
from internscout.ratelimit import RateLimiter
from internscout.storage.sqlite import SqlitePostingStore


async def _no_sleep(_: float) -> None:
    return None


class StubFetcher:
    """
    Stands in for HttpFetcher. Routes map a URL substring to a body (str,
    dict or list) or to an exception instance raised on every call.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes = dict(routes or {})
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []

    def _lookup(self, url: str) -> Any:
        for fragment, body in self.routes.items():
            if fragment in url:
                return body
        raise FetchError(f"HTTP 404 ({url})", status=404, retryable=False)

    async def get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        self.calls.append((url, headers))
        body = self._lookup(url)
        if isinstance(body, BaseException):
            raise body
        return body if isinstance(body, str) else json.dumps(body)

    async def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        self.calls.append((url, headers))
        body = self._lookup(url)
        if isinstance(body, BaseException):
            raise body
        return json.loads(body) if isinstance(body, str) else body

    async def close(self) -> None:
        return None


def make_limiter(max_attempts: int = 3) -> RateLimiter:
    return RateLimiter(
        min_delay_s=0,
        max_delay_s=0,
        max_attempts=max_attempts,
        backoff_base_s=0,
        backoff_max_s=0,
        sleep=_no_sleep,
    )


@pytest.fixture
def no_sleep():
    return _no_sleep


@pytest.fixture
def limiter() -> RateLimiter:
    return make_limiter()


@pytest.fixture
def profile() -> CandidateProfile:
    return CandidateProfile(
        target_roles=("Software Engineering Intern", "Quantitative Research Intern"),
        target_firms=("Jane Street", "Citadel"),
        keywords=("Python", "C++", "statistics"),
        blacklist=("US citizenship required",),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        db_path=str(tmp_path / "internscout.db"),
        min_delay_s=0,
        max_delay_s=0,
        backoff_base_s=0,
        backoff_max_s=0,
        run_budget_s=5,
        provider_timeout_s=2,
    )


@pytest.fixture
def store(tmp_path):
    s = SqlitePostingStore(str(tmp_path / "test.db"))
    yield s
    s.close()
