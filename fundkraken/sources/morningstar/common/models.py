"""
Morningstar source models (source-shaped, JSON-friendly).

A fund document is the identity block below plus one entry per extracted
report section, keyed by the section name as displayed on the page, e.g.:

    {
        "_id": "F00000XYZ1",
        "Symbol": "F00000XYZ1",
        "URL": "http://www.morningstar.com.au/Fund/FundReportPrint/F00000XYZ1",
        "Name": "Example Growth Fund",
        "Asset Allocation": {"As at": "31 Jan 2024", "Equity": 60, "Bonds": 40},
    }

Section values are flat dicts of cell values; no further normalisation happens.
"""

from typing import Any, TypeAlias, TypedDict


class FundIdentity(TypedDict):
    """Fields present on every fund document."""

    _id: str  # Document key in the store (same as Symbol)
    Symbol: str  # Morningstar internal symbol
    URL: str  # Report page the document was extracted from
    Name: str  # Fund name from the report header


FundDocument: TypeAlias = dict[str, Any]

__all__ = ["FundIdentity", "FundDocument"]
