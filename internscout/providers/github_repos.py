"""
Community internship repositories on GitHub.

Fetches README.md through the contents API (raw media type, no auth) and
reads every markdown table in it.
"""

from __future__ import annotations

import urllib.parse
from typing import List, Sequence, Tuple, TYPE_CHECKING

from internscout.extract.markdown import TableListing, parse_listing_rows
from internscout.models import CandidateProfile, RawPosting, parse_date
from internscout.providers.base import Provider

if TYPE_CHECKING:
    from internscout.fetchers.http import HttpFetcher


DEFAULT_REPOS: Tuple[Tuple[str, str], ...] = (
    ("pittcsc", "Summer2025-Internships"),
    ("SimplifyJobs", "New-Grad-Positions"),
    ("pittcsc", "Summer2024-Internships"),
)

CONTENTS_URL = "https://api.github.com/repos/{owner}/{repo}/contents/{path}"
RAW_MEDIA_TYPE = "application/vnd.github.raw"


def listing_to_posting(
    listing: TableListing,
    owner: str,
    repo: str,
    provider: Provider,
    profile: CandidateProfile,
) -> RawPosting:
    description = " | ".join(p for p in [listing.title, listing.location, listing.notes] if p)
    url = listing.url or (
        f"https://github.com/{owner}/{repo}#{urllib.parse.quote(listing.company)}"
    )
    return RawPosting(
        title=listing.title,
        company=listing.company,
        location=listing.location or None,
        url=url,
        url_is_fallback=not listing.url,
        posted_at=parse_date(listing.date) if listing.date else None,
        description=description or None,
        skills=[],
        visa_flag=provider.flag_visa(description, profile),
    )


class GithubRepoProvider(Provider):
    """Provider for README tables of community internship repos."""

    name = "github_repo"

    def __init__(
        self,
        repos: Sequence[Tuple[str, str]] = DEFAULT_REPOS,
        path: str = "README.md",
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.repos = list(repos)
        self.path = path

    async def collect(
        self,
        fetcher: "HttpFetcher",
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []
        headers = {"Accept": RAW_MEDIA_TYPE}

        for owner, repo in self.repos:
            url = CONTENTS_URL.format(owner=owner, repo=repo, path=self.path)
            text = await self.request_text(fetcher, url, label=f"{owner}/{repo}", headers=headers)
            if text is None:
                continue
            postings.extend(self.parse_readme(text, owner, repo, profile))

        return postings

    def parse_readme(self, text: str, owner: str, repo: str, profile: CandidateProfile) -> List[RawPosting]:
        postings: List[RawPosting] = []
        for listing in parse_listing_rows(text):
            try:
                postings.append(listing_to_posting(listing, owner, repo, self, profile))
            except (ValueError, TypeError) as e:
                self.skip_entry(e)
        return postings
