"""
Cell value normalisation for Morningstar report tables.

A cell's display text is cleaned in a fixed order and then typed:

    "12.5%"        -> 12.5
    "1,234"        -> 1234
    "Foo (bar)"    -> "Foo"
    "--"           -> None
    ""             -> ""      (never 0)
"""

from __future__ import annotations

import re

from bs4 import Tag

from fundkraken.common.types import CellValue

_PARENTHETICAL_RE = re.compile(r" *\([^)]*\)")
_NUMERIC_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*$")
_INTEGER_RE = re.compile(r"^\s*[+-]?\d+\s*$")

NULL_TOKEN = "null"

__all__ = [
    "NULL_TOKEN",
    "cell_text",
    "clean_text",
    "is_numeric_literal",
    "to_number",
    "normalize_cell",
]


def cell_text(cell: Tag) -> str:
    """Text content of a cell, as rendered (markup stripped, whitespace kept)."""
    return cell.get_text()


def clean_text(text: str) -> str:
    """Trim, drop parentheticals, '%' and ',' and turn '--' into the null token."""
    result = text.strip()
    result = _PARENTHETICAL_RE.sub("", result)
    result = result.replace("%", "").replace(",", "")
    return result.replace("--", NULL_TOKEN)


def is_numeric_literal(text: str) -> bool:
    """True only for a well-formed decimal literal; empty or blank text is not numeric."""
    return bool(_NUMERIC_RE.match(text))


def to_number(text: str) -> int | float | None:
    """Parse `text` as a number, or return None when it is not a numeric literal."""
    if not is_numeric_literal(text):
        return None
    if _INTEGER_RE.match(text):
        return int(text)
    return float(text)


def normalize_cell(text: str, *, is_heading: bool = False) -> CellValue:
    """
    Convert a cell's raw text into a number, a string or None.

    `is_heading` marks heading-row cells; they go through the same rules.
    """
    _ = is_heading
    result = clean_text(text)
    if result == NULL_TOKEN:
        return None
    number = to_number(result)
    if number is not None:
        return number
    return result
