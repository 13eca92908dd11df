"""
Extraction helpers for InternScout providers.

- html: tag stripping and CSS-selector field extraction (BeautifulSoup)
- markdown: table parsing for community README listings
"""

from internscout.extract.html import strip_html, parse_html
from internscout.extract.markdown import parse_listing_rows, iter_table_rows, TableListing

__all__ = [
    "strip_html",
    "parse_html",
    "parse_listing_rows",
    "iter_table_rows",
    "TableListing",
]
