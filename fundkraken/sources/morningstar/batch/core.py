"""
Core helpers for the fund batch.

This module keeps the orchestration (`run.py`) thin by factoring out:
- result typing (`FundFailure`, `BatchStats`)
- a single-fund processing unit (`process_one_fund`)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional, Tuple

from fundkraken.common.errors import FundKrakenError, PersistenceError
from fundkraken.sources.morningstar.common.models import FundDocument

logger = logging.getLogger(__name__)

Status = Literal["ok", "err"]
Stage = Literal["lookup", "fetch", "parse", "persist"]
Outcome = Tuple[Status, Optional[FundDocument], Optional[Stage], Optional[str]]

# ---------- Result typing ----------


@dataclass(frozen=True)
class FundFailure:
    fund: str
    stage: Stage
    error: str


@dataclass(frozen=True)
class BatchStats:
    run_id: str
    ok: int
    err: int
    failures: Tuple[FundFailure, ...] = field(default_factory=tuple)

    @property
    def persistence_failures(self) -> int:
        return sum(1 for f in self.failures if f.stage == "persist")

    @property
    def fetch_failures(self) -> int:
        return sum(1 for f in self.failures if f.stage != "persist")


# ---------- Single-fund processing unit ----------


def process_one_fund(
    *,
    fund: str,
    resolve: Callable[[str], str],
    download: Callable[[str], Tuple[str, str]],
    parse: Callable[[str, str, str], FundDocument],
    save: Optional[Callable[[FundDocument], object]],
) -> Outcome:
    """
    Process a single fund identifier:
      - resolve the identifier to a symbol
      - download the report page
      - parse it into a fund document
      - persist via save() (skipped when save is None)
    Returns:
      (status, document_or_None, failing_stage_or_None, error_msg_or_None)
    Every exception is turned into "err" so the batch can move on; errors that
    are not fund-kraken errors are logged with their traceback.
    """
    stage: Stage = "lookup"
    try:
        symbol = resolve(fund)
        stage = "fetch"
        html, url = download(symbol)
        stage = "parse"
        document = parse(html, symbol, url)
        stage = "persist"
        if save is not None:
            save(document)
        return ("ok", document, None, None)
    except FundKrakenError as exc:
        if isinstance(exc, PersistenceError):
            stage = "persist"
        logger.debug("%s failed at %s", fund, stage, exc_info=True)
        return ("err", None, stage, str(exc))
    except Exception as exc:
        logger.exception("%s failed unexpectedly at %s", fund, stage)
        return ("err", None, stage, f"{type(exc).__name__}: {exc}")
