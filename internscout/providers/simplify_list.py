"""
SimplifyJobs community listings provider.

Reads the maintained listings.json from the SimplifyJobs internship repos
(raw GitHub, no auth needed). Far more stable than scraping simplify.jobs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Union, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError

from internscout.models import CandidateProfile, RawPosting, normalize_text
from internscout.providers.base import Provider

if TYPE_CHECKING:
    from internscout.fetchers.http import HttpFetcher


LISTING_URLS = (
    "https://raw.githubusercontent.com/SimplifyJobs/Summer2026-Internships/dev/.github/scripts/listings.json",
    "https://raw.githubusercontent.com/SimplifyJobs/Summer2025-Internships/dev/.github/scripts/listings.json",
)

SIMPLIFY_POSTING_URL = "https://simplify.jobs/p/{id}"

_NO_SPONSOR_MARKERS = ("does not offer", "no sponsorship", "authorization", "us citizen", "u.s. citizen")


class ListingLink(BaseModel):
    model_config = ConfigDict(extra="ignore")

    href: Optional[str] = None
    text: Optional[str] = None


class SimplifyEntry(BaseModel):
    """One entry of listings.json; every field optional because the schema drifts."""

    model_config = ConfigDict(extra="ignore")

    id: Union[str, int, None] = None
    company_name: Optional[str] = None
    title: Optional[str] = None
    url: Union[str, List[ListingLink], None] = None
    locations: Optional[List[str]] = None
    sponsorship: Optional[str] = None
    is_visible: Optional[bool] = None
    active: Optional[bool] = None
    date_posted: Optional[float] = None
    season: Optional[str] = None
    terms: Optional[List[str]] = None

    @property
    def excluded(self) -> bool:
        return self.is_visible is False or self.active is False

    def resolve_url(self) -> str:
        if isinstance(self.url, str):
            return self.url.strip()
        if isinstance(self.url, list) and self.url:
            return (self.url[0].href or "").strip()
        return ""


def flag_sponsorship(sponsorship: Optional[str]) -> bool:
    """True when the listing's sponsorship field signals a restriction."""
    if not sponsorship:
        return False
    s = sponsorship.lower()
    return any(m in s for m in _NO_SPONSOR_MARKERS)


def entry_to_posting(entry: SimplifyEntry, profile: CandidateProfile, provider: Provider) -> RawPosting:
    title = normalize_text(entry.title or "")
    company = normalize_text(entry.company_name or "")
    location = entry.locations[0] if entry.locations else None
    season = entry.season or (", ".join(entry.terms) if entry.terms else None)

    posted_at = None
    if entry.date_posted:
        posted_at = datetime.fromtimestamp(entry.date_posted, tz=timezone.utc)

    url = entry.resolve_url()
    if not url and entry.id:
        url = SIMPLIFY_POSTING_URL.format(id=entry.id)

    description = " | ".join(p for p in [title, location, entry.sponsorship, season] if p)
    visa_flag = flag_sponsorship(entry.sponsorship) or provider.flag_visa(
        f"{title} {company} {entry.sponsorship or ''}", profile
    )

    return RawPosting(
        title=title,
        company=company,
        location=location,
        url=url,
        posted_at=posted_at,
        description=description or None,
        skills=[],
        visa_flag=visa_flag,
        raw_json=entry.model_dump_json(exclude_none=True),
    )


class SimplifyListProvider(Provider):
    """Provider for the SimplifyJobs listings.json feeds."""

    name = "simplify_list"

    def __init__(self, listing_urls: Sequence[str] = LISTING_URLS, **kwargs):
        super().__init__(**kwargs)
        self.listing_urls = list(listing_urls)

    async def collect(
        self,
        fetcher: "HttpFetcher",
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []

        for url in self.listing_urls:
            data = await self.request_json(fetcher, url, label=f"listings {url}")
            if data is None:
                continue
            if not isinstance(data, list):
                self.log_error(f"listings {url}: unexpected response format")
                continue
            postings.extend(self.parse_entries(data, profile))

        return postings

    def parse_entries(self, data: List[Any], profile: CandidateProfile) -> List[RawPosting]:
        """Map raw JSON entries, skipping hidden/inactive and malformed ones."""
        postings: List[RawPosting] = []
        for raw in data:
            if not isinstance(raw, dict):
                continue
            try:
                entry = SimplifyEntry.model_validate(raw)
            except ValidationError as e:
                self.skip_entry(e)
                continue
            if entry.excluded:
                continue
            try:
                postings.append(entry_to_posting(entry, profile, self))
            except (ValueError, OverflowError, OSError) as e:
                self.skip_entry(e)
        return postings
