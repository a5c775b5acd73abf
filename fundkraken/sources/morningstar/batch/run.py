from __future__ import annotations

import logging
import time
from functools import partial
from pathlib import Path
from typing import Optional, Protocol, Sequence

from omegaconf import DictConfig

from fundkraken.common.http_adapter import HttpRequestsAdapter
from fundkraken.config.config import batch_view, morningstar_view
from fundkraken.sources.morningstar.batch.core import (
    BatchStats,
    FundFailure,
    process_one_fund,
)
from fundkraken.sources.morningstar.batch.runlog import RunLog
from fundkraken.sources.morningstar.common.models import FundDocument
from fundkraken.sources.morningstar.reports.downloader import download_report_html
from fundkraken.sources.morningstar.reports.parser import parse_report
from fundkraken.sources.morningstar.reports.persistence import save_funds_snapshot
from fundkraken.sources.morningstar.symbols.lookup import resolve_symbol

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    def insert(self, document: FundDocument) -> object: ...


def run_batch(
    cfg: DictConfig,
    funds: Sequence[str],
    *,
    http: HttpRequestsAdapter,
    store: Optional[DocumentSink],
    runs_dir: Optional[Path] = None,
    delay_seconds: Optional[float] = None,
    run_id: Optional[str] = None,
    snapshot_dir: Optional[Path] = None,
) -> BatchStats:
    """
    Thin orchestrator:
      1) init run log
      2) loop funds: pace → process_one_fund → log
      3) optionally write a JSON snapshot of the documents
      4) return stats

    `funds` is read-only here; a failing fund is logged and the loop moves on.
    With `store=None` nothing is inserted (dry run).
    """
    ms = morningstar_view(cfg)
    bv = batch_view(cfg)
    delay = float(bv.delay_seconds) if delay_seconds is None else float(delay_seconds)

    log = RunLog(runs_dir or Path(str(bv.runs_dir)), run_id=run_id)
    logger.info("Run %s: %d funds, %.3fs between requests", log.run_id, len(funds), delay)

    resolve = partial(
        resolve_symbol,
        http,
        lookup_url=str(ms.lookup_url),
        security_type_filter=str(ms.security_type_filter),
        sort=str(ms.sort),
    )
    download = partial(download_report_html, http, base_url=str(ms.report_base_url))
    save = store.insert if store is not None else None

    ok = err = 0
    failures: list[FundFailure] = []
    documents: list[FundDocument] = []

    for i, fund in enumerate(funds):
        if i > 0 and delay > 0:
            time.sleep(delay)

        logger.info("Requesting fund details for fund: %s", fund)
        status, document, stage, error = process_one_fund(
            fund=fund,
            resolve=resolve,
            download=download,
            parse=parse_report,
            save=save,
        )

        if status == "ok" and document is not None:
            symbol = str(document.get("Symbol", ""))
            log.log(fund=fund, status="ok", symbol=symbol)
            log.mark_ok(fund)
            documents.append(document)
            ok += 1
        else:
            failure = FundFailure(fund=fund, stage=stage or "lookup", error=error or "")
            logger.error("%s failed at %s: %s", fund, failure.stage, failure.error)
            log.log(fund=fund, status="err", stage=failure.stage, error=failure.error)
            log.mark_err(
                fund, {"fund": fund, "stage": failure.stage, "error": failure.error}
            )
            failures.append(failure)
            err += 1

    if snapshot_dir is not None:
        path = save_funds_snapshot(documents, snapshot_dir)
        logger.info("Snapshot saved to %s", path)

    return BatchStats(run_id=log.run_id, ok=ok, err=err, failures=tuple(failures))
