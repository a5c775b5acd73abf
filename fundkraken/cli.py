"""
fundkraken command line entry point.

Reads the funds file, resolves and downloads every fund's Morningstar report,
extracts it and inserts the documents into the configured CouchDB/Cloudant
database, pacing requests by a fixed delay.

Usage:
    fundkraken --funds-file funds.txt -v
    fundkraken --dry-run --snapshot-dir out/

Exit codes:
    0  all funds processed
    1  unexpected error
    2  configuration error (settings, funds file)
    3  one or more funds failed at lookup / fetch / parse
    4  one or more funds failed at persistence (or the database is unusable)
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fundkraken.common.couchdb import CouchDocumentStore
from fundkraken.common.errors import PersistenceError
from fundkraken.common.file_io import read_identifiers
from fundkraken.common.http_adapter import HttpRequestsAdapter
from fundkraken.common.log_setup import configure_logging
from fundkraken.config.config import (
    ConfigError,
    batch_view,
    couchdb_view,
    ensure_config,
    http_view,
    load_config,
)
from fundkraken.sources.morningstar.batch.core import BatchStats
from fundkraken.sources.morningstar.batch.run import run_batch

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIG = 2
EXIT_FETCH = 3
EXIT_PERSISTENCE = 4

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fundkraken",
        description="Extract Morningstar fund reports and store them in CouchDB/Cloudant.",
    )
    parser.add_argument(
        "--funds-file",
        type=Path,
        default=None,
        help="Newline-delimited fund identifiers (default: batch.funds_file).",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait between funds (default: batch.delay_seconds).",
    )
    parser.add_argument(
        "--database", default=None, help="Target database name (default: couchdb.database)."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Extract only; do not write to the database.",
    )
    parser.add_argument(
        "--snapshot-dir",
        type=Path,
        default=None,
        help="Also write the run's documents to a dated JSON snapshot here.",
    )
    parser.add_argument("--run-id", default=None, help="Run log id (default: UTC timestamp).")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="-v for progress, -vv for debug output (raw HTML, tables, rows).",
    )
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if args.funds_file is not None:
        out.setdefault("batch", {})["funds_file"] = str(args.funds_file)
    if args.delay is not None:
        out.setdefault("batch", {})["delay_seconds"] = float(args.delay)
    if args.database is not None:
        out.setdefault("couchdb", {})["database"] = str(args.database)
    return out


def exit_code_for(stats: BatchStats) -> int:
    if stats.persistence_failures:
        return EXIT_PERSISTENCE
    if stats.fetch_failures:
        return EXIT_FETCH
    return EXIT_OK


def print_summary(stats: BatchStats) -> None:
    table = Table(title=f"Run {stats.run_id}")
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("ok", str(stats.ok))
    table.add_row("err", str(stats.err))
    console.print(table)

    if stats.failures:
        errors = Table(title="Failures")
        errors.add_column("Fund")
        errors.add_column("Stage")
        errors.add_column("Error", overflow="fold")
        for f in stats.failures:
            errors.add_row(escape(f.fund), f.stage, escape(f.error))
        console.print(errors)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        cfg = load_config(_overrides(args))
        ensure_config(cfg, require_database=not args.dry_run)
        funds_file = Path(str(batch_view(cfg).funds_file))
        funds = read_identifiers(funds_file)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        return EXIT_CONFIG
    except OSError as exc:
        console.print(f"[red]Cannot read funds file:[/red] {escape(str(exc))}")
        return EXIT_CONFIG

    hv = http_view(cfg)
    http = HttpRequestsAdapter(
        user_agent=str(hv.user_agent),
        default_timeout=float(hv.timeout),
        retry_attempts=int(float(hv.retry_attempts)),
    )
    try:
        store: Optional[CouchDocumentStore] = None
        if not args.dry_run:
            db = couchdb_view(cfg)
            store = CouchDocumentStore(str(db.url), str(db.database), http)
            store.use_database(create_missing=bool(db.create_missing))

        stats = run_batch(
            cfg,
            funds,
            http=http,
            store=store,
            run_id=args.run_id,
            snapshot_dir=args.snapshot_dir,
        )
    except PersistenceError as exc:
        console.print(f"[red]Database error:[/red] {escape(str(exc))}")
        return EXIT_PERSISTENCE
    except Exception:
        logger.exception("Batch aborted")
        return EXIT_UNEXPECTED
    finally:
        http.close()

    print_summary(stats)
    return exit_code_for(stats)


if __name__ == "__main__":
    raise SystemExit(main())
