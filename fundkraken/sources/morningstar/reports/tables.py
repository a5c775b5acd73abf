"""
Table section extraction for Morningstar fund reports.

A table section is any element marked ``YMWTableSmall``. Its first row holds the
section name; some sections carry column headings in their second row. Every
remaining non-empty row becomes one record:

    no headings:   ["Category", "Equity"]       -> {"Category": "Equity"}
    headings A, B: ["Fund X", 1, 2]              -> {"Fund X A": 1, "Fund X B": 2}

Records then go through the per-table fixer (see `fixers`) and are flattened
into the single dict stored under the section name.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from bs4 import Tag

from fundkraken.common.types import CellValue, Record
from fundkraken.sources.morningstar.reports.cells import (
    NULL_TOKEN,
    cell_text,
    clean_text,
    normalize_cell,
)
from fundkraken.sources.morningstar.reports.fixers import apply_fixer

logger = logging.getLogger(__name__)

__all__ = [
    "HEADING_TABLES",
    "format_key",
    "table_name",
    "column_headings",
    "direct_rows",
    "is_empty_row",
    "extract_rows",
    "rows_to_records",
    "flatten_records",
    "extract_table",
]

# Sections whose second row holds column headings
HEADING_TABLES: frozenset[str] = frozenset(
    {
        "Financial Year Returns",
        "Trailing Year Returns",
        "Risk Analysis",
    }
)

_CELL_TAGS = ("td", "th")


class _Unset:
    """Marker for a row buffer slot nothing has been written to yet."""

    def __repr__(self) -> str:
        return "<unset>"


_UNSET = _Unset()


def _child_tags(el: Tag, names: Iterable[str] | None = None) -> list[Tag]:
    wanted = tuple(names) if names is not None else None
    return [
        c
        for c in el.children
        if isinstance(c, Tag) and (wanted is None or c.name in wanted)
    ]


def _rowspan(cell: Tag) -> int:
    raw = cell.get("rowspan")
    try:
        return max(int(str(raw)), 1) if raw is not None else 1
    except ValueError:
        return 1


def format_key(value: CellValue) -> str:
    """Render a cell value as a record key (integral floats lose their '.0')."""
    if value is None:
        return NULL_TOKEN
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def table_name(section: Tag) -> CellValue:
    """Name of a table section: the value of the first cell in its first row."""
    first_row = section.find("tr")
    if not isinstance(first_row, Tag):
        return ""
    first_cell = first_row.find("td")
    if not isinstance(first_cell, Tag):
        return ""
    return normalize_cell(cell_text(first_cell), is_heading=False)


def column_headings(section: Tag) -> list[CellValue]:
    """Column headings from the section's second row, first column excluded."""
    first_row = section.find("tr")
    if not isinstance(first_row, Tag):
        return []
    heading_row = first_row.find_next_sibling("tr")
    if not isinstance(heading_row, Tag):
        return []
    cells = _child_tags(heading_row, _CELL_TAGS)
    return [normalize_cell(cell_text(c), is_heading=True) for c in cells[1:]]


def direct_rows(section: Tag) -> list[Tag]:
    """
    Rows belonging to the section itself (not to nested tables).

    Rows are either direct children of the section or direct children of one
    of its direct children (``<tbody>``, ``<thead>``, ...).
    """
    rows: list[Tag] = []
    for child in _child_tags(section):
        if child.name == "tr":
            rows.append(child)
        else:
            rows.extend(_child_tags(child, ("tr",)))
    return rows


def is_empty_row(row: Tag) -> bool:
    """A row is empty when every ``<td>`` in it cleans to no text."""
    return all(clean_text(cell_text(c)) == "" for c in row.find_all("td"))


def extract_rows(section: Tag, headings: Sequence[CellValue] | None) -> list[list[CellValue]]:
    """
    Walk the section's data rows into a grid of cell values.

    The title row is skipped, and the heading row too when `headings` is given.
    Cells fill the next free slot of their row buffer; slots already taken by a
    cell spanning down from an earlier row (``rowspan``) are skipped forward.
    """
    offset = 1 if headings is None else 2
    buffers: dict[int, list[CellValue | _Unset]] = {}
    kept: list[int] = []

    rows = direct_rows(section)
    for row_index, row in enumerate(rows):
        if row_index < offset:
            continue
        if is_empty_row(row):
            buffers.pop(row_index, None)
            continue
        logger.debug("Row: %s", row)

        buffer = buffers.setdefault(row_index, [])
        cursor = 0
        for cell in _child_tags(row):
            # skip slots already filled
            while cursor < len(buffer) and buffer[cursor] is not _UNSET:
                cursor += 1
            value = normalize_cell(cell_text(cell))
            if cursor == len(buffer):
                buffer.append(value)
            else:
                buffer[cursor] = value

            for below in range(row_index + 1, min(row_index + _rowspan(cell), len(rows))):
                spanned = buffers.setdefault(below, [])
                while len(spanned) <= cursor:
                    spanned.append(_UNSET)
                spanned[cursor] = value
            cursor += 1
        kept.append(row_index)

    grid: list[list[CellValue]] = []
    for row_index in kept:
        grid.append([None if v is _UNSET else v for v in buffers[row_index]])  # type: ignore[misc]
    return grid


def rows_to_records(
    rows: Iterable[Sequence[CellValue]], headings: Sequence[CellValue] | None
) -> list[Record]:
    """Turn grid rows into records keyed by the row label (and heading, if any)."""
    records: list[Record] = []
    for row in rows:
        if not row:
            continue
        key = format_key(row[0])
        record: Record = {}
        if headings is None:
            record[key] = row[1] if len(row) > 1 else None
        else:
            for h_index, value in enumerate(row[1 : len(headings) + 1]):
                record[f"{key} {format_key(headings[h_index])}"] = value
        records.append(record)
    return records


def flatten_records(records: Iterable[Record]) -> Record:
    """Merge records in order; later duplicate keys win."""
    flat: Record = {}
    for record in records:
        flat.update(record)
    return flat


def extract_table(section: Tag, headings: Sequence[CellValue] | None) -> Record:
    """Extract, fix and flatten one table section."""
    grid = extract_rows(section, headings)
    records = rows_to_records(grid, headings)
    name = table_name(section)
    fixed = apply_fixer(format_key(name), records)
    result = flatten_records(fixed)
    logger.debug("extractTable %r: %s", name, result)
    return result
