"""
Indeed provider.

Note: Indeed does not have a public API. This provider reads the public
search result pages, one search per target role. Use with caution and
respect rate limits and robots.txt.
"""

from __future__ import annotations

import urllib.parse
from typing import List

from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting
from internscout.providers._provider_utils import CardSelectors, parse_cards
from internscout.providers.base import Provider
from internscout.scoring import has_intern_signal


INDEED_BASE = "https://www.indeed.com"
MAX_QUERIES = 5

SELECTORS = CardSelectors(
    cards=(".job_seen_beacon", "div[data-jk]", "[class*='jobcard']"),
    title=("h2.jobTitle a", "h2 a", "[class*='jobTitle']"),
    company=("span[data-testid='company-name']", "[class*='companyName']"),
    location=("div[data-testid='text-location']", "[class*='companyLocation']"),
    link=("h2 a[href]", "a[data-jk]", "a[href*='/viewjob']"),
)


def build_queries(profile: CandidateProfile, limit: int = MAX_QUERIES) -> List[str]:
    """One query per target role, always mentioning 'intern'."""
    queries: List[str] = []
    for role in profile.target_roles[:limit]:
        q = role if has_intern_signal(role) else f"{role} intern"
        if q not in queries:
            queries.append(q)
    return queries


class IndeedProvider(Provider):
    """Provider for Indeed job listings (scraping-based)."""

    name = "indeed"

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []
        headers = {"User-Agent": HttpFetcher.BROWSER_USER_AGENT, "Accept": "text/html"}

        for query in build_queries(profile):
            url = f"{INDEED_BASE}/jobs?{urllib.parse.urlencode({'q': query})}"
            html = await self.request_text(fetcher, url, label=f"Indeed {query}", headers=headers)
            if html is None:
                continue
            postings.extend(self.parse_page(html, profile))

        return postings

    def parse_page(self, html: str, profile: CandidateProfile) -> List[RawPosting]:
        return parse_cards(html, INDEED_BASE, SELECTORS, self, profile)
