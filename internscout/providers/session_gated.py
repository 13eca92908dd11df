"""
Session-gated sources (Handshake, LinkedIn).

Both require an authenticated browser session. Browser automation is not
part of this tool, so these providers never return postings; they report a
diagnostic telling the user what is missing. They stay in the provider
list so the gap shows up in every run log.
"""

from __future__ import annotations

from typing import List, Optional

from internscout.fetchers.http import HttpFetcher
from internscout.models import CandidateProfile, RawPosting
from internscout.providers.base import Provider


class SessionGatedProvider(Provider):
    """A source that needs a logged-in session cookie."""

    label = "Session"
    missing_cookie_message = "set a session cookie to enable scraping"
    with_cookie_message = "no public API; browser automation with the session cookie is required"

    def __init__(self, cookie: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.cookie = (cookie or "").strip() or None

    async def collect(
        self,
        fetcher: HttpFetcher,
        profile: CandidateProfile,
    ) -> List[RawPosting]:
        if self.cookie is None:
            self.log_error(f"{self.label}: {self.missing_cookie_message}")
        else:
            self.log_error(f"{self.label}: {self.with_cookie_message}")
        return []


class HandshakeProvider(SessionGatedProvider):
    name = "handshake"
    label = "Handshake"
    missing_cookie_message = "set INTERNSCOUT_HANDSHAKE_COOKIE to enable scraping"


class LinkedInProvider(SessionGatedProvider):
    name = "linkedin"
    label = "LinkedIn"
    missing_cookie_message = "set INTERNSCOUT_LINKEDIN_COOKIE for a full scrape"
