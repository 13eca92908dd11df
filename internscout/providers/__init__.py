"""
Posting source providers for InternScout.

Each provider implements a consistent interface for collecting postings
from one source (JSON feeds, public APIs, README tables, ATS boards,
job-board HTML) and maps them to RawPosting.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from internscout.config import Settings
from internscout.providers.base import Provider, ProviderResult, ProviderStats
from internscout.providers.simplify_list import SimplifyListProvider
from internscout.providers.themuse import TheMuseProvider
from internscout.providers.github_repos import GithubRepoProvider
from internscout.providers.indeed import IndeedProvider
from internscout.providers.simplify import SimplifyProvider
from internscout.providers.levels_fyi import LevelsFyiProvider
from internscout.providers.career_pages import CareerPageProvider
from internscout.providers.session_gated import HandshakeProvider, LinkedInProvider
from internscout.providers.search_fallback import SearchFallbackProvider
from internscout.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

PROVIDER_NAMES = (
    "simplify_list",
    "themuse",
    "github_repo",
    "indeed",
    "simplify",
    "levels_fyi",
    "career_page",
    "handshake",
    "linkedin",
    "search_fallback",
)

# Sources that answer with one diagnostic or one short search per firm
DEFAULT_TIMEOUTS = {
    "handshake": 5.0,
    "linkedin": 5.0,
    "search_fallback": 30.0,
}


def provider_timeout(settings: Settings, name: str) -> float:
    """Soft timeout for one provider: explicit override, else its default capped by the global one."""
    if name in settings.provider_timeouts:
        return settings.provider_timeouts[name]
    return min(DEFAULT_TIMEOUTS.get(name, settings.provider_timeout_s), settings.provider_timeout_s)


def build_providers(settings: Settings, names: Optional[Sequence[str]] = None) -> List[Provider]:
    """
    Construct the provider list for one run.

    `names` (or settings.enabled_providers) restricts the list; unknown
    names are logged and ignored. Every provider gets its own RateLimiter
    and its own soft timeout (see provider_timeout).
    """

    def common(name: str) -> Dict[str, Any]:
        return {"limiter": RateLimiter.from_settings(settings), "timeout_s": provider_timeout(settings, name)}

    all_providers: List[Provider] = [
        SimplifyListProvider(**common("simplify_list")),
        TheMuseProvider(api_key=settings.themuse_api_key, **common("themuse")),
        GithubRepoProvider(**common("github_repo")),
        IndeedProvider(**common("indeed")),
        SimplifyProvider(**common("simplify")),
        LevelsFyiProvider(**common("levels_fyi")),
        CareerPageProvider(boards=settings.career_boards, **common("career_page")),
        HandshakeProvider(cookie=settings.handshake_cookie, **common("handshake")),
        LinkedInProvider(cookie=settings.linkedin_cookie, **common("linkedin")),
        SearchFallbackProvider(**common("search_fallback")),
    ]

    wanted = [n.strip().lower() for n in (names if names is not None else settings.enabled_providers) or []]
    if not wanted:
        return all_providers

    unknown = sorted(set(wanted) - set(PROVIDER_NAMES))
    if unknown:
        logger.warning("Ignoring unknown providers: %s", ", ".join(unknown))
    return [p for p in all_providers if p.name in wanted]


__all__ = [
    "PROVIDER_NAMES",
    "Provider",
    "ProviderResult",
    "ProviderStats",
    "SimplifyListProvider",
    "TheMuseProvider",
    "GithubRepoProvider",
    "IndeedProvider",
    "SimplifyProvider",
    "LevelsFyiProvider",
    "CareerPageProvider",
    "HandshakeProvider",
    "LinkedInProvider",
    "SearchFallbackProvider",
    "build_providers",
    "provider_timeout",
]
