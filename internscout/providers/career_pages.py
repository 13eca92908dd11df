"""
Company career pages hosted on an applicant tracking system.

One board per target firm. The ATS is detected from the board URL:

- Greenhouse: https://boards.greenhouse.io/{token} (public JSON API
  https://boards-api.greenhouse.io/v1/boards/{token}/jobs)
- Lever: https://jobs.lever.co/{site} (public JSON API
  https://api.lever.co/v0/postings/{site}?mode=json)

Firms without a configured board are tried at jobs.lever.co/{slug}.
Other hosts (Workday and friends) are reported as unsupported.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from internscout.extract.html import strip_html
from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting, normalize_text, parse_date
from internscout.providers.base import Provider


GREENHOUSE_API = "https://boards-api.greenhouse.io/v1/boards/{token}/jobs?content=true"
LEVER_API = "https://api.lever.co/v0/postings/{site}?mode=json"

MAX_FIRMS = 10
MAX_JOBS_PER_BOARD = 100

DEFAULT_BOARDS: Dict[str, str] = {
    "Jane Street": "https://boards.greenhouse.io/janestreet",
}

_GREENHOUSE_RE = re.compile(
    r"(?:boards(?:-api)?\.greenhouse\.io/(?:v1/boards/)?|greenhouse\.io/boards/|job-boards\.greenhouse\.io/)([A-Za-z0-9_-]+)",
    re.IGNORECASE,
)
_LEVER_RE = re.compile(r"(?:jobs\.lever\.co|api\.lever\.co/v0/postings)/([A-Za-z0-9_.-]+)", re.IGNORECASE)


def firm_slug(firm: str) -> str:
    return re.sub(r"[^a-z0-9-]", "", re.sub(r"\s+", "-", firm.strip().lower()))


def detect_ats(url: str) -> Tuple[str, Optional[str]]:
    """("greenhouse" | "lever" | "unknown", board token or None)."""
    m = _GREENHOUSE_RE.search(url or "")
    if m:
        return "greenhouse", m.group(1)
    m = _LEVER_RE.search(url or "")
    if m:
        return "lever", m.group(1)
    return "unknown", None


class GreenhouseLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class GreenhouseJob(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str, None] = None
    title: Optional[str] = None
    absolute_url: Optional[str] = None
    location: Union[GreenhouseLocation, str, None] = None
    content: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def location_name(self) -> Optional[str]:
        if isinstance(self.location, GreenhouseLocation):
            return self.location.name
        return self.location


class LeverCategories(BaseModel):
    model_config = ConfigDict(extra="ignore")

    location: Optional[str] = None
    team: Optional[str] = None
    commitment: Optional[str] = None


class LeverPosting(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    text: Optional[str] = None
    hostedUrl: Optional[str] = None
    applyUrl: Optional[str] = None
    categories: Optional[LeverCategories] = None
    descriptionPlain: Optional[str] = None
    description: Optional[str] = None
    createdAt: Optional[int] = None


class CareerPageProvider(Provider):
    """Provider for Greenhouse / Lever boards of the candidate's target firms."""

    name = "career_page"

    def __init__(self, boards: Optional[Mapping[str, str]] = None, max_firms: int = MAX_FIRMS, **kwargs):
        super().__init__(**kwargs)
        self.boards = dict(DEFAULT_BOARDS)
        self.boards.update(boards or {})
        self.max_firms = max_firms

    def board_url(self, firm: str) -> str:
        return self.boards.get(firm) or f"https://jobs.lever.co/{firm_slug(firm)}"

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        postings: List[RawPosting] = []

        for firm in profile.target_firms[:self.max_firms]:
            url = self.board_url(firm)
            ats, token = detect_ats(url)
            if ats == "greenhouse":
                data = await self.request_json(fetcher, GREENHOUSE_API.format(token=token), label=f"Career page {firm}")
                if data is not None:
                    postings.extend(self.parse_greenhouse(data, firm, profile))
            elif ats == "lever":
                data = await self.request_json(fetcher, LEVER_API.format(site=token), label=f"Career page {firm}")
                if data is not None:
                    postings.extend(self.parse_lever(data, firm, profile))
            else:
                self.log_error(f"Career page {firm}: unsupported ATS or URL")

        return postings

    def parse_greenhouse(self, data: object, firm: str, profile: CandidateProfile) -> List[RawPosting]:
        if not isinstance(data, dict) or not isinstance(data.get("jobs"), list):
            self.log_error(f"Career page {firm}: unexpected Greenhouse response")
            return []

        postings: List[RawPosting] = []
        for raw in data["jobs"][:MAX_JOBS_PER_BOARD]:
            if not isinstance(raw, dict):
                continue
            try:
                job = GreenhouseJob.model_validate(raw)
            except ValidationError as e:
                self.skip_entry(e)
                continue

            title = normalize_text(job.title or "")
            # content arrives HTML-escaped
            description = strip_html(strip_html(job.content or ""))
            postings.append(RawPosting(
                title=title,
                company=firm,
                location=job.location_name,
                url=job.absolute_url or self.board_url(firm),
                url_is_fallback=not job.absolute_url,
                posted_at=parse_date(job.updated_at or ""),
                description=description or None,
                skills=[],
                visa_flag=self.flag_visa(f"{title} {description}", profile),
                raw_json=job.model_dump_json(exclude={"content"}),
            ))
        return postings

    def parse_lever(self, data: object, firm: str, profile: CandidateProfile) -> List[RawPosting]:
        if not isinstance(data, list):
            self.log_error(f"Career page {firm}: unexpected Lever response")
            return []

        postings: List[RawPosting] = []
        for raw in data[:MAX_JOBS_PER_BOARD]:
            if not isinstance(raw, dict):
                continue
            try:
                job = LeverPosting.model_validate(raw)
            except ValidationError as e:
                self.skip_entry(e)
                continue

            title = normalize_text(job.text or "")
            description = normalize_text(job.descriptionPlain or "") or strip_html(job.description or "")
            postings.append(RawPosting(
                title=title,
                company=firm,
                location=job.categories.location if job.categories else None,
                url=job.hostedUrl or job.applyUrl or self.board_url(firm),
                url_is_fallback=not (job.hostedUrl or job.applyUrl),
                posted_at=parse_date(str(job.createdAt)) if job.createdAt else None,
                description=description or None,
                skills=[],
                visa_flag=self.flag_visa(f"{title} {description}", profile),
                raw_json=job.model_dump_json(exclude={"description", "descriptionPlain"}),
            ))
        return postings
