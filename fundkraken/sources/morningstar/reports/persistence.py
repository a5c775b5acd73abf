"""
Local JSON persistence for fund documents.

The document store is the system of record; these snapshots are for dry runs
and for keeping a copy of what a run produced.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Sequence

from fundkraken.common.file_io import write_json
from fundkraken.sources.morningstar.common.models import FundDocument

__all__ = ["save_fund", "save_funds_snapshot"]


def save_fund(document: FundDocument, out_dir: Path) -> Path:
    """Persist a single fund document as ``<out_dir>/<_id>.json``."""
    doc_id = document.get("_id")
    if not isinstance(doc_id, str) or not doc_id:
        raise ValueError("fund document missing _id")
    return write_json(out_dir / f"{doc_id}.json", document)


def save_funds_snapshot(
    documents: Sequence[FundDocument],
    out_dir: Path,
    as_of: date | None = None,
    write_latest: bool = True,
) -> Path:
    """
    Save all fund documents of a run.

    Creates:
        - A dated file: funds_YYYY-MM-DD.json
        - Optionally, latest.json

    Args:
        documents: Fund documents in processing order.
        out_dir: Directory for snapshot files.
        as_of: Date of snapshot (defaults to today).
        write_latest: Whether to also update latest.json.

    Returns:
        Path to the dated snapshot file.
    """
    snapshot_date: date = as_of or date.today()
    out_dir.mkdir(parents=True, exist_ok=True)

    filepath: Path = out_dir / f"funds_{snapshot_date.isoformat()}.json"
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(list(documents), f, ensure_ascii=False, indent=2)

    if write_latest:
        latest_path: Path = out_dir / "latest.json"
        with latest_path.open("w", encoding="utf-8") as f:
            json.dump(list(documents), f, ensure_ascii=False, indent=2)

    return filepath
