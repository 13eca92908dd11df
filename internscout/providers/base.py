"""
Base provider interface for posting sources.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from internscout.dedupe import dedupe_postings
from internscout.models import CandidateProfile, RawPosting
from internscout.ratelimit import RateLimiter
from internscout.scoring import detect_visa_restriction

if TYPE_CHECKING:
    from internscout.fetchers.http import HttpFetcher

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGES = 20


@dataclass
class ProviderStats:
    """Statistics for one provider call."""
    collected: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: List[str] = field(default_factory=list)


@dataclass
class ProviderResult:
    """What one provider call hands back: postings plus non-fatal errors."""
    source: str
    postings: List[RawPosting] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def found(self) -> int:
        return len(self.postings)


class Provider(ABC):
    """
    Base class for posting sources.

    Each provider is responsible for:
    - Fetching postings from its source (API, JSON feed, README, HTML page)
    - Converting each entry to a RawPosting, skipping malformed entries
    - First-pass visa flagging

    `fetch()` wraps `collect()` with the soft timeout, error capture and the
    within-call dedup filter; it never raises.
    """

    name: str = "base"

    def __init__(
        self,
        limiter: Optional[RateLimiter] = None,
        timeout_s: float = 45.0,
    ):
        self.limiter = limiter or RateLimiter()
        self.timeout_s = timeout_s
        self.stats = ProviderStats()

    @abstractmethod
    async def collect(
        self,
        fetcher: "HttpFetcher",
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        """
        Collect postings from this provider.

        Args:
            fetcher: HTTP fetcher for making requests
            profile: Candidate profile (target roles/firms drive some queries)

        Returns:
            List of RawPosting objects
        """
        raise NotImplementedError

    async def fetch(
        self,
        fetcher: "HttpFetcher",
        profile: CandidateProfile,
    ) -> ProviderResult:
        """Run one collection, converting every failure into an error entry."""
        self.reset_stats()
        postings: List[RawPosting] = []
        try:
            postings = await asyncio.wait_for(self.collect(fetcher, profile), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            self.log_error(f"timed out after {self.timeout_s:g}s")
        except Exception as e:
            self.log_error(f"failed: {str(e)[:200] or type(e).__name__}")

        postings = dedupe_postings(postings)
        self.stats.collected = len(postings)
        return ProviderResult(
            source=self.name,
            postings=postings,
            errors=list(self.stats.error_messages),
        )

    def reset_stats(self) -> None:
        """Reset provider statistics."""
        self.stats = ProviderStats()

    def log_error(self, message: str) -> None:
        """Record a non-fatal error for this provider."""
        logger.warning("%s: %s", self.name, message)
        self.stats.errors += 1
        if len(self.stats.error_messages) < MAX_ERROR_MESSAGES:
            self.stats.error_messages.append(message)

    def skip_entry(self, reason: Exception) -> None:
        """Count a malformed entry that was skipped."""
        self.stats.skipped += 1
        logger.debug("%s: skipped entry: %s", self.name, reason)

    def flag_visa(self, text: str, profile: CandidateProfile) -> bool:
        return detect_visa_restriction(text, profile.blacklist)

    async def request_text(
        self,
        fetcher: "HttpFetcher",
        url: str,
        label: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[str]:
        """Paced, retried GET returning the body or None (error recorded)."""
        await self.limiter.pace(url)
        outcome = await self.limiter.run(lambda: fetcher.get_text(url, headers=headers), label=label)
        if not outcome.ok:
            self.log_error(f"{label}: {outcome.error_message}")
            return None
        return outcome.value

    async def request_json(
        self,
        fetcher: "HttpFetcher",
        url: str,
        label: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Paced, retried GET returning decoded JSON or None (error recorded)."""
        await self.limiter.pace(url)
        outcome = await self.limiter.run(lambda: fetcher.get_json(url, headers=headers), label=label)
        if not outcome.ok:
            self.log_error(f"{label}: {outcome.error_message}")
            return None
        return outcome.value
