"""
Simplify job board provider (simplify.jobs search pages).

The board renders cards client-side more often than not; when no card
selector matches, posting links (`/p/<id>`) are read directly.
"""

from __future__ import annotations

from typing import List, Sequence

from internscout.extract.html import absolute_url, first_text, parse_html
from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting, normalize_text
from internscout.providers._provider_utils import CardSelectors, parse_cards
from internscout.providers.base import Provider


SIMPLIFY_BASE = "https://simplify.jobs"
SEARCH_PATHS = (
    "/jobs?q=intern",
    "/jobs?q=software+intern",
    "/jobs?q=quant+intern",
    "/jobs?q=research+intern",
)
MAX_FALLBACK_LINKS = 30

SELECTORS = CardSelectors(
    cards=("[data-testid='job-card']", "article[class*='job']", "[class*='JobCard']", ".job-card"),
    title=("[data-testid='job-title']", ".job-title", "h3", "[class*='title']"),
    company=("[data-testid='company-name']", ".company-name", "[class*='company']"),
    location=("[data-testid='job-location']", ".location", "[class*='location']"),
    link=("a[href*='/p/']", "a[href*='/job']"),
)


class SimplifyProvider(Provider):
    """Provider for simplify.jobs search result pages."""

    name = "simplify"

    def __init__(self, search_paths: Sequence[str] = SEARCH_PATHS, **kwargs):
        super().__init__(**kwargs)
        self.search_paths = list(search_paths)

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []
        headers = {"User-Agent": HttpFetcher.BROWSER_USER_AGENT}

        for path in self.search_paths:
            url = f"{SIMPLIFY_BASE}{path}"
            html = await self.request_text(fetcher, url, label=f"Simplify {path}", headers=headers)
            if html is None:
                continue
            postings.extend(self.parse_page(html, profile))

        return postings

    def parse_page(self, html: str, profile: CandidateProfile) -> List[RawPosting]:
        postings = [p for p in parse_cards(html, SIMPLIFY_BASE, SELECTORS, self, profile) if not p.url_is_fallback]
        if postings:
            return postings
        return self.parse_posting_links(html, profile)

    def parse_posting_links(self, html: str, profile: CandidateProfile) -> List[RawPosting]:
        """Fallback: one posting per `/p/` link, company from the enclosing block."""
        soup = parse_html(html)
        postings: List[RawPosting] = []
        for a in soup.select("a[href*='/p/']")[:MAX_FALLBACK_LINKS]:
            title = normalize_text(a.get_text(" ", strip=True))
            parent = a.find_parent(["div", "article", "li"])
            company = first_text(parent, ("[class*='company']", "[class*='Company']")) if parent else ""
            location = first_text(parent, ("[class*='location']", "[class*='Location']")) if parent else ""
            postings.append(RawPosting(
                title=title,
                company=company,
                location=location or None,
                url=absolute_url(str(a.get("href")), SIMPLIFY_BASE),
                skills=[],
                visa_flag=self.flag_visa(title, profile),
                raw_html=str(parent) if parent is not None else None,
            ))
        return postings
