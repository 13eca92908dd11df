"""
The Muse jobs provider.

Public API docs: https://www.themuse.com/developers/api/v2
No key required for basic queries; an X-Api-Key header is sent when
INTERNSCOUT_THEMUSE_API_KEY is configured.
"""

from __future__ import annotations

import urllib.parse
from typing import Any, List, Optional, Sequence, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError

from internscout.extract.html import strip_html
from internscout.models import CandidateProfile, RawPosting, normalize_text, parse_date
from internscout.providers.base import Provider

if TYPE_CHECKING:
    from internscout.fetchers.http import HttpFetcher


THEMUSE_API_URL = "https://www.themuse.com/api/public/jobs"
THEMUSE_JOBS_URL = "https://www.themuse.com/jobs"

DEFAULT_QUERIES: Tuple[Tuple[str, str], ...] = (
    ("Software Engineering", "Internship"),
    ("Data Science", "Internship"),
    ("Science and Research", "Internship"),
)


class MuseNamed(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class MuseRefs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    landing_page: Optional[str] = None


class MuseJob(BaseModel):
    """One result from /api/public/jobs."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    contents: Optional[str] = None
    company: Optional[MuseNamed] = None
    locations: List[MuseNamed] = []
    levels: List[MuseNamed] = []
    categories: List[MuseNamed] = []
    refs: Optional[MuseRefs] = None
    publication_date: Optional[str] = None


class TheMuseProvider(Provider):
    """Provider for The Muse API, internship level, one page per category."""

    name = "themuse"

    def __init__(self, queries: Sequence[Tuple[str, str]] = DEFAULT_QUERIES, pages: int = 1,
                 api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = (api_key or "").strip()
        self.queries = list(queries)
        self.pages = max(1, pages)

    async def collect(
        self,
        fetcher: "HttpFetcher",
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key

        postings: List[RawPosting] = []
        for category, level in self.queries:
            for page in range(1, self.pages + 1):
                params = {
                    "category": category,
                    "level": level,
                    "page": page,
                    "descending": "true",
                }
                url = f"{THEMUSE_API_URL}?{urllib.parse.urlencode(params)}"
                data = await self.request_json(fetcher, url, label=f"Muse {category}", headers=headers)
                if data is None:
                    break
                if not isinstance(data, dict) or not isinstance(data.get("results"), list):
                    self.log_error(f"Muse {category}: unexpected response format")
                    break

                results = data["results"]
                postings.extend(self.parse_results(results, profile))

                page_count = data.get("page_count") or 1
                if not results or page >= page_count:
                    break

        return postings

    def parse_results(self, results: List[Any], profile: CandidateProfile) -> List[RawPosting]:
        postings: List[RawPosting] = []
        for item in results:
            if not isinstance(item, dict):
                continue
            try:
                job = MuseJob.model_validate(item)
            except ValidationError as e:
                self.skip_entry(e)
                continue

            title = normalize_text(job.name or "")
            company = normalize_text(job.company.name if job.company else "")
            location = job.locations[0].name if job.locations else None
            landing_page = job.refs.landing_page if job.refs else None
            description = strip_html(job.contents or "")

            postings.append(RawPosting(
                title=title,
                company=company,
                location=location,
                url=landing_page or THEMUSE_JOBS_URL,
                url_is_fallback=not landing_page,
                posted_at=parse_date(job.publication_date or ""),
                description=description or None,
                skills=[],
                visa_flag=self.flag_visa(f"{title} {company} {description}", profile),
            ))
        return postings
