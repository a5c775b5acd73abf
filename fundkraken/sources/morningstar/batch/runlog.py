"""
Run logging utilities for fund batch runs.

Layout (under `runs_dir`):
    <run_id>/
      progress.jsonl          # one JSON object per line
      ok/
        <identifier>.ok       # empty marker file
      err/
        <identifier>.json     # structured error payload

Notes:
- `RunLog` is append-only: re-logging the same event just appends another line.
- Timestamps are recorded in UTC ISO-8601 with 'Z' suffix.
- `run_id` defaults to a UTC timestamp if not provided.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Literal, Optional

Status = Literal["ok", "err"]


def _utc_now_iso() -> str:
    """Return current UTC time in ISO-8601, suffixed with 'Z' (no microseconds)."""
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


def default_run_id() -> str:
    """Filesystem-safe default run id (UTC), e.g. 2025-10-30T07-59-12."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


def _safe_name(identifier: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in identifier) or "_"


class RunLog:
    """
    Lightweight run logger for batch jobs.

    Usage:
        log = RunLog(runs_dir, run_id=None)
        log.log(fund="ABC0001AU", status="ok", symbol="F00000XYZ1")
        log.mark_ok("ABC0001AU")
        log.mark_err("ABC0001AU", {"fund": "ABC0001AU", "error": "boom"})
    """

    def __init__(self, runs_dir: Path, run_id: Optional[str] = None) -> None:
        self._runs_dir = runs_dir
        self._run_id = run_id or default_run_id()

        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.ok_dir.mkdir(parents=True, exist_ok=True)
        self.err_dir.mkdir(parents=True, exist_ok=True)

        # Touch progress file to ensure it exists (useful for quick tail -f)
        self.progress_path.touch(exist_ok=True)

    # ---------- Public API ----------

    @property
    def run_id(self) -> str:
        """The identifier of this run (directory name under the runs dir)."""
        return self._run_id

    def log(
        self,
        *,
        fund: str,
        status: Status,
        symbol: Optional[str] = None,
        stage: Optional[str] = None,
        error: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Append a line to progress.jsonl.

        Args:
            fund: Fund identifier being processed.
            status: "ok" or "err".
            symbol: Resolved Morningstar symbol (if known).
            stage: Failing stage for errors ("lookup", "fetch", "parse", "persist").
            error: Optional error message (for err).
            extra: Optional dict to include custom fields.
        """
        rec: Dict[str, Any] = {
            "time": _utc_now_iso(),
            "fund": fund,
            "status": status,
        }
        if symbol is not None:
            rec["symbol"] = symbol
        if stage is not None:
            rec["stage"] = stage
        if error is not None:
            rec["error"] = error
        if extra:
            # do not override standard fields
            for k, v in extra.items():
                if k not in rec:
                    rec[k] = v

        with self.progress_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def mark_ok(self, fund: str) -> None:
        """Create an empty OK marker file for this fund."""
        (self.ok_dir / f"{_safe_name(fund)}.ok").touch()

    def mark_err(self, fund: str, error_json: Dict[str, Any]) -> None:
        """Write a structured error payload for this fund."""
        path = self.err_dir / f"{_safe_name(fund)}.json"
        path.write_text(
            json.dumps(error_json, ensure_ascii=False, indent=2), encoding="utf-8"
        )

    # ---------- Paths (properties) ----------

    @property
    def runs_dir(self) -> Path:
        return self._runs_dir

    @property
    def run_dir(self) -> Path:
        return self._runs_dir / self._run_id

    @property
    def progress_path(self) -> Path:
        return self.run_dir / "progress.jsonl"

    @property
    def ok_dir(self) -> Path:
        return self.run_dir / "ok"

    @property
    def err_dir(self) -> Path:
        return self.run_dir / "err"
