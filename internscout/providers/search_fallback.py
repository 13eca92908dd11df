"""
Search-engine fallback for target firms.

For each of the first few target firms, runs one DuckDuckGo text search
restricted to the firm's careers/jobs hosts and keeps the top links as
placeholder "Intern" postings. Useful for firms with no supported ATS.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Dict, List

from duckduckgo_search import DDGS

from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting
from internscout.providers.base import Provider


MAX_FIRMS = 5
LINKS_PER_FIRM = 3
RESULTS_PER_QUERY = 10


def firm_host_slug(firm: str) -> str:
    return re.sub(r"[^a-z0-9]", "", firm.lower())


def build_query(firm: str) -> str:
    s = firm_host_slug(firm)
    return f'"{firm}" internship 2025 2026 site:careers.{s}.com OR site:jobs.{s}.com'


def ddg_search(query: str, max_results: int = RESULTS_PER_QUERY) -> List[Dict[str, Any]]:
    """Blocking DuckDuckGo text search; raises on rate limits and network errors."""
    with DDGS() as ddgs:
        return list(ddgs.text(query, max_results=max_results) or [])


def result_links(results: List[Dict[str, Any]], limit: int = LINKS_PER_FIRM) -> List[str]:
    links: List[str] = []
    for r in results:
        href = r.get("href") or r.get("link") or r.get("url")
        if not href or not str(href).startswith(("http://", "https://")):
            continue
        if "duckduckgo.com" in href or "google.com" in href:
            continue
        if href not in links:
            links.append(href)
        if len(links) >= limit:
            break
    return links


class SearchFallbackProvider(Provider):
    """Provider that turns search hits on firm career hosts into postings."""

    name = "search_fallback"

    def __init__(self, max_firms: int = MAX_FIRMS, search=ddg_search, **kwargs):
        super().__init__(**kwargs)
        self.max_firms = max_firms
        self._search = search

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []

        for firm in profile.target_firms[:self.max_firms]:
            query = build_query(firm)
            await self.limiter.pace("duckduckgo.com")
            outcome = await self.limiter.run(lambda: asyncio.to_thread(self._search, query), label=f"search {firm}")
            if not outcome.ok:
                self.log_error(f"{firm}: {outcome.error_message}")
                continue
            for link in result_links(outcome.value):
                postings.append(RawPosting(
                    title="Intern",
                    company=firm,
                    url=link,
                    skills=[],
                    visa_flag=False,
                ))

        return postings
