"""
Shared parsing helpers for HTML job-board providers.

Board markup changes often, so each field is read from an ordered list of
CSS selectors and the first non-empty match wins. Providers only supply
the selectors and base URL.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, TYPE_CHECKING

from internscout.extract.html import absolute_url, first_href, first_text, parse_html
from internscout.models import CandidateProfile, RawPosting, normalize_text

if TYPE_CHECKING:
    from internscout.providers.base import Provider


@dataclass(frozen=True)
class CardSelectors:
    """CSS selectors describing one board's job cards."""
    cards: Sequence[str]
    title: Sequence[str]
    company: Sequence[str] = ()
    location: Sequence[str] = ()
    link: Sequence[str] = ("a[href]",)
    max_cards: int = 100


def select_cards(html: str, selectors: CardSelectors) -> list:
    """Cards for the first card selector that matches anything."""
    soup = parse_html(html)
    for sel in selectors.cards:
        cards = soup.select(sel)
        if cards:
            return cards[:selectors.max_cards]
    return []


def parse_cards(
    html: str,
    base_url: str,
    selectors: CardSelectors,
    provider: "Provider",
    profile: CandidateProfile,
    keep_raw_html: bool = True,
) -> List[RawPosting]:
    """Map every job card on a board page to a RawPosting."""
    postings: List[RawPosting] = []
    for card in select_cards(html, selectors):
        try:
            posting = card_to_posting(card, base_url, selectors, provider, profile, keep_raw_html)
        except (AttributeError, TypeError, ValueError) as e:
            provider.skip_entry(e)
            continue
        if posting is not None:
            postings.append(posting)
    return postings


def card_to_posting(
    card,
    base_url: str,
    selectors: CardSelectors,
    provider: "Provider",
    profile: CandidateProfile,
    keep_raw_html: bool = True,
) -> Optional[RawPosting]:
    title = first_text(card, selectors.title)
    company = first_text(card, selectors.company)
    if not title and not company:
        return None

    location = first_text(card, selectors.location)
    link = absolute_url(first_href(card, selectors.link), base_url)
    text = normalize_text(card.get_text(" ", strip=True))

    return RawPosting(
        title=title,
        company=company,
        location=location or None,
        url=link or base_url,
        url_is_fallback=not link,
        description=text or None,
        skills=[],
        visa_flag=provider.flag_visa(text, profile),
        raw_html=str(card) if keep_raw_html else None,
    )
