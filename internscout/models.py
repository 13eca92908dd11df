"""
Core data models for InternScout.

Provides:
- RawPosting: what a provider extracts from one source entry
- ScoredPosting: a RawPosting tagged with source, relevance score and reason
- RunLog: one observability record per (run x provider)
- CandidateProfile: read-only snapshot the scorer matches against
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


DEFAULT_TITLE = "Intern"
DEFAULT_COMPANY = "Unknown"

DESCRIPTION_MAX_LEN = 5000
RAW_PAYLOAD_MAX_LEN = 10000


# ----------------------------- Utilities -----------------------------

def normalize_text(s: str) -> str:
    """Collapse whitespace and strip."""
    return re.sub(r"\s+", " ", (s or "")).strip()


def posting_key(company: str, title: str, url: str) -> str:
    """
    Dedup key for a posting: lower-cased, whitespace-normalized company and
    title combined with the exact URL.
    """
    return "|".join([
        normalize_text(company).lower(),
        normalize_text(title).lower(),
        (url or "").strip(),
    ])


def parse_date(date_str: str) -> Optional[datetime]:
    """
    Parse various date formats into a datetime object.
    Returns None if parsing fails.
    """
    if not date_str:
        return None
    date_str = normalize_text(date_str)

    formats = [
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d",
        "%m/%d/%Y",
        "%B %d, %Y",
        "%b %d, %Y",
        "%b %d %Y",
        "%d %B %Y",
        "%d %b %Y",
    ]
    for fmt in formats:
        try:
            dt = datetime.strptime(date_str, fmt)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
        except ValueError:
            continue

    # Unix timestamp (seconds or milliseconds)
    try:
        ts = float(date_str)
        if ts > 1e12:
            ts = ts / 1000
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        pass

    return None


def now_utc() -> datetime:
    """Current UTC datetime."""
    return datetime.now(timezone.utc)


def now_utc_iso() -> str:
    """Current UTC time as ISO string."""
    return now_utc().replace(microsecond=0).isoformat().replace("+00:00", "Z")


def truncate(value: Optional[str], max_len: int) -> Optional[str]:
    if value is None:
        return None
    return value[:max_len]


# ----------------------------- Postings -----------------------------

@dataclass
class RawPosting:
    """
    Canonical shape every provider produces.

    Title and company always end up non-empty (defaults applied in
    __post_init__); description and debug payloads are truncated.
    """

    title: str = DEFAULT_TITLE
    company: str = DEFAULT_COMPANY
    url: str = ""
    # url was synthesized (board or listing page), not supplied for this posting
    url_is_fallback: bool = False
    location: Optional[str] = None
    posted_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    description: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    visa_flag: bool = False
    raw_html: Optional[str] = None
    raw_json: Optional[str] = None

    def __post_init__(self):
        self.title = normalize_text(self.title) or DEFAULT_TITLE
        self.company = normalize_text(self.company) or DEFAULT_COMPANY
        self.url = (self.url or "").strip()
        self.location = normalize_text(self.location or "") or None
        if self.description is not None:
            self.description = truncate(self.description.strip(), DESCRIPTION_MAX_LEN) or None
        self.raw_html = truncate(self.raw_html, RAW_PAYLOAD_MAX_LEN)
        self.raw_json = truncate(self.raw_json, RAW_PAYLOAD_MAX_LEN)

    @property
    def key(self) -> str:
        return posting_key(self.company, self.title, self.url)


@dataclass
class ScoredPosting:
    """A RawPosting plus provenance and relevance. This is the unit persisted."""

    posting: RawPosting
    source: str
    relevance_score: int
    relevance_reason: str
    visa_flag: bool = False

    def __post_init__(self):
        self.relevance_score = max(0, min(100, int(self.relevance_score)))
        if not self.relevance_reason:
            self.relevance_reason = "No reason provided."
        self.visa_flag = bool(self.visa_flag or self.posting.visa_flag)

    @property
    def key(self) -> str:
        return self.posting.key

    def to_record(self) -> Dict[str, Any]:
        """Flatten for storage."""
        p = self.posting
        return {
            "posting_key": self.key,
            "title": p.title,
            "company": p.company,
            "location": p.location,
            "url": p.url,
            "url_is_fallback": 1 if p.url_is_fallback else 0,
            "source": self.source,
            "posted_at": p.posted_at.isoformat() if p.posted_at else None,
            "deadline": p.deadline.isoformat() if p.deadline else None,
            "description": p.description,
            "skills": json.dumps(p.skills),
            "visa_flag": 1 if self.visa_flag else 0,
            "relevance_score": self.relevance_score,
            "relevance_reason": self.relevance_reason,
            "raw_html": p.raw_html,
            "raw_json": p.raw_json,
        }


@dataclass(frozen=True)
class RunLog:
    """One record per (run x provider); append-only."""
    source: str
    found_count: int
    error_summary: Optional[str] = None
    created_at: str = field(default_factory=now_utc_iso)


# ----------------------------- Profile -----------------------------

DEFAULT_TARGET_ROLES = (
    "Software Engineering Intern",
    "Quantitative Research Intern",
    "Quantitative Trading Intern",
    "Machine Learning Intern",
    "Data Science Intern",
    "Robotics Intern",
)

DEFAULT_TARGET_FIRMS = (
    "Jane Street",
    "Citadel",
    "Two Sigma",
    "Hudson River Trading",
    "Jump Trading",
    "D. E. Shaw",
    "Commonwealth Fusion Systems",
    "Google",
)

DEFAULT_KEYWORDS = (
    "Python",
    "C++",
    "Rust",
    "machine learning",
    "statistics",
    "probability",
    "PyTorch",
    "SQL",
)

DEFAULT_BLACKLIST = (
    "US citizenship required",
    "U.S. citizenship is required",
    "must be a U.S. person",
    "active security clearance",
)


@dataclass(frozen=True)
class CandidateProfile:
    """Read-only candidate profile snapshot used by the scorer and providers."""

    target_roles: Tuple[str, ...] = DEFAULT_TARGET_ROLES
    target_firms: Tuple[str, ...] = DEFAULT_TARGET_FIRMS
    keywords: Tuple[str, ...] = DEFAULT_KEYWORDS
    blacklist: Tuple[str, ...] = DEFAULT_BLACKLIST

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidateProfile":
        """Build from a dict; missing or malformed keys keep their defaults."""
        kwargs: Dict[str, Tuple[str, ...]] = {}
        aliases = {
            "target_roles": ("target_roles", "targetRoles"),
            "target_firms": ("target_firms", "targetFirms"),
            "keywords": ("keywords",),
            "blacklist": ("blacklist",),
        }
        for attr, keys in aliases.items():
            for k in keys:
                value = data.get(k)
                if isinstance(value, list):
                    kwargs[attr] = tuple(normalize_text(str(v)) for v in value if normalize_text(str(v)))
                    break
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str) -> "CandidateProfile":
        """Load a profile from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Profile file {path} must contain a JSON object")
        return cls.from_dict(data)
