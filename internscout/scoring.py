"""
Deterministic (non-AI) relevance scoring.

Scores a posting 0-100 against a CandidateProfile using keyword signals and
flags likely visa/citizenship restrictions. Pure and synchronous: identical
inputs always give identical (score, reason, visa_flag).
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from internscout.models import CandidateProfile, RawPosting, normalize_text

logger = logging.getLogger(__name__)


INTERN_BONUS = 10
SENIOR_PENALTY = -20
SENIOR_DESCRIPTION_LEN = 300
FIRM_BONUS = 20
ROLE_COVERAGE_MAX = 25
TITLE_MATCH_BONUS = 15
KEYWORD_BONUS = 4
VISA_PENALTY = -25
NEUTRAL_SCORE = 50

REASON_KEYWORD_LIMIT = 5
NO_SIGNAL_REASON = "No strong signals for target roles, firms or skills."

_TOKEN_RE = re.compile(r"[a-z0-9+#]+")

_INTERN_RE = re.compile(
    r"\b(intern|interns|internship|internships|new[\s-]?grad(uate)?|trainee|traineeship|co-?op)\b",
    re.IGNORECASE,
)

_ROLE_SUFFIX_RE = re.compile(r"\s*\b(internship|intern)\s*$", re.IGNORECASE)

# Keep this small; role phrases are short.
_STOPWORDS = {"and", "the", "for", "with", "from", "into", "our", "you"}

VISA_RESTRICTION_PATTERNS = [
    re.compile(r"U\.?S\.?\s*citizen(ship)?\s*(is\s*)?required", re.IGNORECASE),
    re.compile(r"must\s*be\s*an?\s*U\.?S\.?\s*(citizen|person)", re.IGNORECASE),
    re.compile(r"security\s*clearance", re.IGNORECASE),
    re.compile(r"TS/SCI", re.IGNORECASE),
    re.compile(
        r"authorized\s*to\s*work\s*(in\s*the\s*U\.?S\.?A?\s*)?without\s*(visa\s*)?sponsorship",
        re.IGNORECASE,
    ),
    re.compile(r"must\s*be\s*authorized\s*to\s*work", re.IGNORECASE),
    re.compile(
        r"\b(no|not|unable\s*to|cannot|can\s*not|will\s*not|won't|does\s*not|do\s*not)\s+"
        r"(offer\s+|provide\s+)?(visa\s+)?sponsor(ship)?\b",
        re.IGNORECASE,
    ),
]


def detect_visa_restriction(text: str, blacklist: Iterable[str] = ()) -> bool:
    """True if text contains a blacklisted phrase or a restrictive legal phrase."""
    if not text:
        return False
    lower = text.lower()
    for phrase in blacklist:
        if phrase and phrase.lower() in lower:
            return True
    return any(p.search(text) for p in VISA_RESTRICTION_PATTERNS)


def has_intern_signal(text: str) -> bool:
    return bool(_INTERN_RE.search(text or ""))


def _tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


def role_tokens(role: str) -> List[str]:
    """Significant words of a role phrase (length > 2, stop words removed)."""
    return [t for t in _tokenize(role) if len(t) > 2 and t not in _STOPWORDS]


def role_core(role: str) -> str:
    """Role phrase with a trailing 'intern'/'internship' removed, lower-cased."""
    return normalize_text(_ROLE_SUFFIX_RE.sub("", role or "")).lower()


def _contains_term(text_lower: str, term: str) -> bool:
    """Whole-term match that also works for terms like 'C++' or 'C#'."""
    t = term.lower().strip()
    if not t:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(t)}(?![a-z0-9])", text_lower) is not None


@dataclass(frozen=True)
class ScoreResult:
    score: int
    reason: str
    visa_flag: bool


class Scorer(Protocol):
    """Anything that can score a posting; the keyword scorer is the default."""

    def score(self, title: str, company: str, description: str, profile: CandidateProfile) -> ScoreResult:
        ...


def score_posting(
    title: str,
    company: str,
    description: str,
    profile: CandidateProfile,
) -> ScoreResult:
    """
    Compute the keyword relevance score for one posting.

    Contributions are summed in a fixed order and clamped to [0, 100]; the
    reason lists every contribution that fired, in the same order.
    """
    title = title or ""
    company = company or ""
    description = description or ""
    combined = " ".join([title, company, description])
    combined_lower = combined.lower()
    combined_tokens: Set[str] = set(_tokenize(combined))

    total = 0
    reasons: List[str] = []

    # Intern signal (+10) or senior/full-time penalty (-20)
    if has_intern_signal(combined):
        total += INTERN_BONUS
        reasons.append("internship/new-grad role")
    elif len(description) > SENIOR_DESCRIPTION_LEN:
        total += SENIOR_PENALTY
        reasons.append("likely senior/full-time role")

    # Target firm (+20), first hit only
    for firm in profile.target_firms:
        if firm and firm.lower() in combined_lower:
            total += FIRM_BONUS
            reasons.append(f"target firm: {firm}")
            break

    # Best role coverage (0-25)
    best_role: Optional[str] = None
    best_coverage = 0.0
    for role in profile.target_roles:
        tokens = role_tokens(role)
        if not tokens:
            continue
        hits = sum(1 for t in tokens if t in combined_tokens)
        coverage = hits / len(tokens)
        if coverage > best_coverage:
            best_coverage = coverage
            best_role = role
    coverage_points = math.floor(ROLE_COVERAGE_MAX * best_coverage)
    if coverage_points > 0 and best_role:
        total += coverage_points
        reasons.append(f"role match: {best_role} ({round(best_coverage * 100)}%)")

    # Title contains a target role core (+15)
    title_lower = normalize_text(title).lower()
    for role in profile.target_roles:
        core = role_core(role)
        if core and core in title_lower:
            total += TITLE_MATCH_BONUS
            reasons.append(f"title matches {core}")
            break

    # Keywords (+4 each)
    matched = [kw for kw in profile.keywords if _contains_term(combined_lower, kw)]
    if matched:
        total += KEYWORD_BONUS * len(matched)
        reasons.append("skills: " + ", ".join(matched[:REASON_KEYWORD_LIMIT]))

    # Visa restriction (-25)
    visa_flag = detect_visa_restriction(combined, profile.blacklist)
    if visa_flag:
        total += VISA_PENALTY
        reasons.append("visa/citizenship restriction")

    score = max(0, min(100, total))
    reason = ("; ".join(reasons) + ".") if reasons else NO_SIGNAL_REASON
    return ScoreResult(score=score, reason=reason, visa_flag=visa_flag)


class KeywordScorer:
    """Scorer backed by score_posting."""

    def score(self, title: str, company: str, description: str, profile: CandidateProfile) -> ScoreResult:
        return score_posting(title, company, description, profile)


def score_safely(scorer: Scorer, posting: RawPosting, profile: CandidateProfile) -> ScoreResult:
    """
    Score with any Scorer, failing closed to a neutral score.

    The keyword scorer cannot fail; alternates (e.g. LLM-backed) may, and a
    failure there must not abort the run.
    """
    try:
        result = scorer.score(posting.title, posting.company, posting.description or "", profile)
    except Exception as e:
        logger.warning("Scorer failed for %s: %s", posting.url or posting.title, e)
        visa_flag = detect_visa_restriction(
            " ".join([posting.title, posting.company, posting.description or ""]),
            profile.blacklist,
        )
        return ScoreResult(
            score=NEUTRAL_SCORE,
            reason=f"Scoring failed ({type(e).__name__}); using neutral score.",
            visa_flag=visa_flag,
        )
    return ScoreResult(
        score=max(0, min(100, int(result.score))),
        reason=result.reason or NO_SIGNAL_REASON,
        visa_flag=bool(result.visa_flag),
    )


def score_postings(
    tagged: Sequence[Tuple[str, RawPosting]],
    profile: CandidateProfile,
    scorer: Optional[Scorer] = None,
) -> List[Tuple[str, RawPosting, ScoreResult]]:
    """Score (source, posting) pairs in order."""
    scorer = scorer or KeywordScorer()
    return [(source, p, score_safely(scorer, p, profile)) for source, p in tagged]
