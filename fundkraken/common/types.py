"""
Shared typing utilities for fund-kraken.

- `JSONScalar` covers primitive JSON values.
- `JSONLike` allows nested lists and dicts with string keys and JSON-like values.
- `CellValue` is what a single report table cell normalises to.
- `Record` is one row of a report table after key composition.

Examples
--------
Valid records:
    {"Category": "Equity"}
    {"Fund X 1 Yr": 12.3, "Fund X 3 Yr": None}
"""

from __future__ import annotations

from typing import TypeAlias

JSONScalar: TypeAlias = str | int | float | bool | None
JSONLike: TypeAlias = JSONScalar | list["JSONLike"] | dict[str, "JSONLike"]

CellValue: TypeAlias = str | int | float | None
Record: TypeAlias = dict[str, CellValue]

__all__ = ["JSONScalar", "JSONLike", "CellValue", "Record"]
