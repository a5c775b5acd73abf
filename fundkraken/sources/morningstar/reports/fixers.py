"""
Per-table shape fixes for Morningstar report sections.

Some sections do not extract into clean label/value records because of how the
page lays them out (date stamps in the first row, label and value packed into
one cell, rank strings such as "12 / 340"). Each fixer repairs one section and
is a pure function ``list[Record] -> list[Record]``; input records are never
mutated.

`TABLE_FIXERS` maps section names to fixers; `apply_fixer` falls back to the
identity for every other section.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Sequence

from fundkraken.common.types import CellValue, Record
from fundkraken.sources.morningstar.reports.cells import to_number

logger = logging.getLogger(__name__)

Fixer = Callable[[Sequence[Record]], list[Record]]

AS_AT = "As at"
AS_AT_PREFIX_LEN = len("as at")
STYLE_PREFIX_LEN = 7
STYLE_SEPARATOR = "  "
QUICK_STATS_SEPARATOR = "\n" + " " * 24
RANK_SEPARATOR = " / "
DROPPED_FEE_ROWS = frozenset({"One-Time", "Annual"})

__all__ = [
    "Fixer",
    "TABLE_FIXERS",
    "apply_fixer",
    "fix_current_investment_style",
    "fix_quick_stats",
    "fix_asset_allocation",
    "fix_fees_and_expenses",
    "fix_trailing_year_returns",
]


def _first_key(record: Record) -> str:
    return next(iter(record), "")


def _as_at(record: Record) -> Record:
    """{"as at 31 Jan 2024": ...} -> {"As at": "31 Jan 2024"}"""
    label = _first_key(record).strip()
    return {AS_AT: label[AS_AT_PREFIX_LEN:].strip()}


def fix_current_investment_style(table: Sequence[Record]) -> list[Record]:
    """
    Row 0 is the "as at" date, row 1 is the style box (dropped) and row 2 packs
    market cap and investment style into one cell. Later rows are ignored.
    """
    result: list[Record] = []
    for i, record in enumerate(table[:3]):
        if i == 0:
            result.append(_as_at(record))
        elif i == 2:
            parts = _first_key(record).replace("\u00a0", " ").split(STYLE_SEPARATOR)
            market_cap = parts[0]
            style = parts[1] if len(parts) > 1 else ""
            result.append({"Market Cap": market_cap[STYLE_PREFIX_LEN:]})
            result.append({"Investment Style": style[STYLE_PREFIX_LEN:]})
    return result


def fix_quick_stats(table: Sequence[Record]) -> list[Record]:
    """Row 0 is the "as at" date; every other cell holds "label<newline>value"."""
    result: list[Record] = []
    for i, record in enumerate(table):
        if i == 0:
            result.append(_as_at(record))
            continue
        parts = _first_key(record).split(QUICK_STATS_SEPARATOR)
        value: CellValue = parts[1] if len(parts) > 1 else None
        result.append({parts[0]: value})
    return result


def fix_asset_allocation(table: Sequence[Record]) -> list[Record]:
    """Row 0 is the "as at" date; the allocation rows are already fine."""
    result: list[Record] = []
    for i, record in enumerate(table):
        result.append(_as_at(record) if i == 0 else dict(record))
    return result


def fix_fees_and_expenses(table: Sequence[Record]) -> list[Record]:
    """Drop the "One-Time" and "Annual" sub-heading rows."""
    return [
        dict(record)
        for record in table
        if _first_key(record).strip() not in DROPPED_FEE_ROWS
    ]


def fix_trailing_year_returns(table: Sequence[Record]) -> list[Record]:
    """
    Split "position / total" rank values.

    When a row's fourth entry is a rank (key contains "Rank", value "12 / 340"),
    "<key> Position" and "<key> Total" are added next to it as numbers. Parts
    that are not numeric become None.
    """
    result: list[Record] = []
    for record in table:
        fixed = dict(record)
        items = list(record.items())
        if len(items) > 3 and items[3][1] is not None:
            key = items[3][0].strip()
            if "Rank" in key:
                parts = str(items[3][1]).strip().split(RANK_SEPARATOR)
                fixed[f"{key} Position"] = to_number(parts[0].strip())
                fixed[f"{key} Total"] = (
                    to_number(parts[1].strip()) if len(parts) > 1 else None
                )
        result.append(fixed)
    return result


TABLE_FIXERS: Mapping[str, Fixer] = {
    "Current Investment Style": fix_current_investment_style,
    "Quick Stats": fix_quick_stats,
    "Asset Allocation": fix_asset_allocation,
    "Fees & Expenses": fix_fees_and_expenses,
    "Trailing Year Returns": fix_trailing_year_returns,
}


def apply_fixer(name: str, table: Sequence[Record]) -> list[Record]:
    """Apply the fixer registered for `name`, or return a copy of `table`."""
    fixer = TABLE_FIXERS.get(name)
    if fixer is None:
        return [dict(record) for record in table]
    logger.debug("Applying %s to %r", fixer.__name__, name)
    return fixer(table)
