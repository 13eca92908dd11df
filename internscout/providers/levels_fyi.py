"""
Levels.fyi internships page provider.
"""

from __future__ import annotations

from typing import List

from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting
from internscout.providers._provider_utils import CardSelectors, parse_cards
from internscout.providers.base import Provider


LEVELS_BASE = "https://www.levels.fyi"
INTERNSHIPS_URL = f"{LEVELS_BASE}/internships"

SELECTORS = CardSelectors(
    cards=("[class*='job']", "[class*='listing']", "a[href*='/job']"),
    title=("[class*='title']", "h3"),
    company=("[class*='company']", "[class*='Company']"),
    location=("[class*='location']",),
    link=("a[href]",),
)


class LevelsFyiProvider(Provider):
    """Provider for the levels.fyi internship listings."""

    name = "levels_fyi"

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        headers = {"User-Agent": HttpFetcher.BROWSER_USER_AGENT}
        html = await self.request_text(fetcher, INTERNSHIPS_URL, label="Levels.fyi", headers=headers)
        if html is None:
            return []
        return self.parse_page(html, profile)

    def parse_page(self, html: str, profile: CandidateProfile) -> List[RawPosting]:
        return parse_cards(html, LEVELS_BASE, SELECTORS, self, profile)
