"""
HTML content extraction utilities.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


def strip_html(html: str, max_len: int = 5000) -> str:
    """
    Convert HTML to plain text, stripping tags.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    # Remove script, style, and other non-content tags
    for tag in soup(["script", "style", "noscript", "iframe", "svg", "canvas"]):
        tag.decompose()

    text = soup.get_text(" ", strip=True)
    text = re.sub(r"\s+", " ", text).strip()

    return text[:max_len]


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def first_text(el: Tag, selectors: Iterable[str]) -> str:
    """Text of the first element matching any CSS selector, in order."""
    for sel in selectors:
        found = el.select_one(sel)
        if found is not None:
            text = re.sub(r"\s+", " ", found.get_text(" ", strip=True)).strip()
            if text:
                return text
    return ""


def first_href(el: Tag, selectors: Iterable[str]) -> Optional[str]:
    """href of the element itself (for anchors) or of the first matching descendant."""
    if el.name == "a" and el.get("href"):
        return str(el.get("href"))
    for sel in selectors:
        found = el.select_one(sel)
        if found is not None and found.get("href"):
            return str(found.get("href"))
    return None


def absolute_url(href: Optional[str], base: str) -> str:
    """Resolve a possibly relative link against the page's base URL."""
    if not href:
        return ""
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base, href)
