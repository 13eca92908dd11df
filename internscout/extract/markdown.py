"""
Markdown table extraction for community internship repositories.

Grammar:
- a table line starts and ends with "|"
- a header row has a cell whose normalized name is "company" or "name"
- rows after a header are data until a non-table line
- separator rows (cells made only of dashes/colons) are skipped
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional


_SEPARATOR_CELL_RE = re.compile(r"[-:]+")
HEADER_NAMES = ("company", "name", "company name")
_MD_LINK_RE = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")
_HTML_HREF_RE = re.compile(r"""href=["']([^"']+)["']""", re.IGNORECASE)
_BARE_URL_RE = re.compile(r"https?://[^\s)\"'<>]+")
_HTML_TAG_RE = re.compile(r"<[^>]+>")

# Community repos mark "same company as the row above" with an arrow
CONTINUATION_MARKERS = ("↳", "&#8627;")


@dataclass
class TableRow:
    headers: List[str]
    cells: List[str]
    line_no: int = 0

    def get(self, *names: str) -> str:
        """First cell whose header contains any of `names`."""
        for idx, h in enumerate(self.headers):
            if idx >= len(self.cells):
                break
            if any(n in h for n in names):
                return self.cells[idx]
        return ""

    def cell(self, idx: int) -> str:
        return self.cells[idx] if 0 <= idx < len(self.cells) else ""


def normalize_header(cell: str) -> str:
    return re.sub(r"\s+", " ", strip_markup(cell)).strip().lower()


def split_row(line: str) -> Optional[List[str]]:
    """Cells of a table line, or None if the line is not a table line."""
    trimmed = line.strip()
    if len(trimmed) < 2 or not (trimmed.startswith("|") and trimmed.endswith("|")):
        return None
    return [re.sub(r"\s+", " ", c).strip() for c in trimmed[1:-1].split("|")]


def is_separator(cells: List[str]) -> bool:
    return bool(cells) and all(_SEPARATOR_CELL_RE.fullmatch(c) for c in cells)


def is_header(cells: List[str]) -> bool:
    return any(h in HEADER_NAMES for h in map(normalize_header, cells))


def strip_markup(cell: str) -> str:
    """Drop link markup and HTML tags, keeping the visible text."""
    text = _MD_LINK_RE.sub(lambda m: m.group(1), cell or "")
    text = _HTML_TAG_RE.sub(" ", text)
    text = text.replace("**", "").replace("__", "")
    return re.sub(r"\s+", " ", text).strip()


def extract_links(cell: str) -> List[str]:
    """All http(s) links in a cell: markdown links, HTML hrefs, bare URLs."""
    links: List[str] = []
    for m in _MD_LINK_RE.finditer(cell or ""):
        if m.group(2).startswith(("http://", "https://")):
            links.append(m.group(2))
    links.extend(h for h in _HTML_HREF_RE.findall(cell or "") if h.startswith(("http://", "https://")))
    if not links:
        links.extend(_BARE_URL_RE.findall(cell or ""))
    seen: Dict[str, None] = {}
    for link in links:
        seen.setdefault(link, None)
    return list(seen)


def iter_table_rows(text: str) -> Iterator[TableRow]:
    """Yield data rows of every table in a markdown document."""
    headers: List[str] = []
    in_table = False

    for line_no, line in enumerate((text or "").splitlines(), start=1):
        cells = split_row(line)
        if cells is None:
            in_table = False
            headers = []
            continue

        if is_header(cells):
            headers = [normalize_header(c) for c in cells]
            in_table = True
            continue

        if not in_table or not headers:
            continue
        if is_separator(cells):
            continue

        yield TableRow(headers=headers, cells=cells, line_no=line_no)


@dataclass
class TableListing:
    """Fields extracted from one data row."""
    company: str
    title: str
    location: str = ""
    url: str = ""
    date: str = ""
    notes: str = ""
    links: List[str] = field(default_factory=list)


def parse_listing_rows(text: str) -> List[TableListing]:
    """
    Map table rows to listings. The company column has its link markup
    stripped; continuation rows inherit the previous company.
    """
    listings: List[TableListing] = []
    last_company = ""

    for row in iter_table_rows(text):
        company_cell = row.get("company", "name") or row.cell(0)
        company = strip_markup(company_cell)
        if company in CONTINUATION_MARKERS or company.startswith(CONTINUATION_MARKERS):
            company = last_company
        if not company or company.lower() in ("company", "name"):
            continue
        last_company = company

        title = strip_markup(row.get("role", "title", "position") or row.cell(1))
        location = strip_markup(row.get("location") or row.cell(2))
        date = strip_markup(row.get("date", "posted", "age"))
        notes = strip_markup(row.get("notes"))

        links: List[str] = []
        for c in row.cells:
            links.extend(extract_links(c))
        # Prefer a non-company link (apply button) when the company cell links to a homepage
        company_links = set(extract_links(company_cell))
        apply_links = [l for l in links if l not in company_links]
        url = (apply_links or links or [""])[0]

        listings.append(TableListing(
            company=company,
            title=title,
            location=location,
            url=url,
            date=date,
            notes=notes,
            links=links,
        ))

    return listings
