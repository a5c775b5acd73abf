"""
HTML parser for Morningstar fund report (print) pages.

This module assembles one fund document from a single report page:

1. `preprocess_html` swaps star-rating images for their digit and ``<br />``
   for a space, so ratings and wrapped labels survive as cell text.
2. The page is parsed with BeautifulSoup; the "non-existent fund" marker
   (any element with class ``red``) raises `NotFound`.
3. Every ``YMWTableSmall`` section that is not ignored is extracted with
   `extract_table` and stored under its name.

Helpers are factored out for granular testing.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from fundkraken.common.errors import NotFound, ParseError
from fundkraken.sources.morningstar.common.models import FundDocument
from fundkraken.sources.morningstar.reports.tables import (
    HEADING_TABLES,
    column_headings,
    extract_table,
    format_key,
    table_name,
)

logger = logging.getLogger(__name__)

__all__ = [
    "IGNORED_TABLES",
    "SECTION_CLASS",
    "NAME_CLASS",
    "NOT_FOUND_CLASS",
    "preprocess_html",
    "extract_fund_name",
    "is_missing_fund",
    "iter_sections",
    "parse_report",
]

# Sections with nothing worth keeping. "Current Investment Style" has a fixer
# but is still skipped here; see DESIGN.md.
IGNORED_TABLES: frozenset[str] = frozenset(
    {
        "Performance",
        "Morningstar Sustainability Rating",
        "Current Investment Style",
    }
)

SECTION_CLASS = "YMWTableSmall"
NAME_CLASS = "YMWCoyFull"
NOT_FOUND_CLASS = "red"

_STAR_IMG_RE = re.compile(r'<img src="/Content/images/([1-5])starscropped\.gif" alt="\1" />')
_BR = "<br />"


def preprocess_html(html: str) -> str:
    """Replace star-rating images with their digit and ``<br />`` with a space."""
    html = _STAR_IMG_RE.sub(r"\1", html)
    return html.replace(_BR, " ")


def _soup(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "html.parser")
    except ParserRejectedMarkup as exc:
        raise ParseError(f"Report markup rejected by parser: {exc}") from exc


def is_missing_fund(soup: BeautifulSoup) -> bool:
    """The report page flags unknown funds with a ``.red`` message."""
    return soup.select_one(f".{NOT_FOUND_CLASS}") is not None


def extract_fund_name(soup: BeautifulSoup) -> str:
    """Fund name from the report header, as rendered (empty string if absent)."""
    return "".join(el.get_text() for el in soup.select(f".{NAME_CLASS}"))


def iter_sections(soup: BeautifulSoup) -> list[Tag]:
    """All table sections on the page, in document order."""
    return list(soup.select(f".{SECTION_CLASS}"))


def parse_report(html: str, symbol: str, url: str) -> FundDocument:
    """
    Parse a fund report page into a fund document.

    Args:
        html: Raw HTML of the report page.
        symbol: Morningstar symbol the page was fetched for.
        url: Report URL (for provenance).

    Returns:
        The fund document: identity fields plus one dict per extracted section.

    Raises:
        NotFound: if the page reports a non-existent fund.
        ParseError: if the markup cannot be parsed.
    """
    if not isinstance(html, str):
        raise ParseError(f"Report markup must be text, got {type(html).__name__}")
    html = preprocess_html(html)
    logger.debug("Raw html for %s:\n%s", symbol, html)

    soup = _soup(html)
    if is_missing_fund(soup):
        raise NotFound(symbol, "non-existent fund")

    fund: FundDocument = {
        "_id": symbol,
        "Symbol": symbol,
        "URL": url,
        "Name": extract_fund_name(soup),
    }

    for section in iter_sections(soup):
        name = format_key(table_name(section))
        if name in IGNORED_TABLES:
            logger.debug("^^^ %s: ignored", name)
            continue
        logger.debug("^^^ %s: processing", name)

        headings = column_headings(section) if name in HEADING_TABLES else None
        fund[name] = extract_table(section, headings)

    logger.debug("Fund %s: %s", symbol, fund)
    return fund
