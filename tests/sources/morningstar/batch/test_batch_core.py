from __future__ import annotations

from typing import List, Tuple

from fundkraken.common.errors import HttpError, NotFound, ParseError, PersistenceError
from fundkraken.sources.morningstar.batch.core import (
    BatchStats,
    FundFailure,
    process_one_fund,
)
from fundkraken.sources.morningstar.common.models import FundDocument


def _resolve(fund: str) -> str:
    return "SYM-" + fund


def _download(symbol: str) -> Tuple[str, str]:
    return f"<html>{symbol}</html>", f"http://report/{symbol}"


def _parse(html: str, symbol: str, url: str) -> FundDocument:
    return {"_id": symbol, "Symbol": symbol, "URL": url, "Name": html}


def test_happy_path_saves_document() -> None:
    saved: List[FundDocument] = []
    status, doc, stage, error = process_one_fund(
        fund="ABC", resolve=_resolve, download=_download, parse=_parse, save=saved.append
    )
    assert status == "ok"
    assert stage is None and error is None
    assert doc == {"_id": "SYM-ABC", "Symbol": "SYM-ABC", "URL": "http://report/SYM-ABC", "Name": "<html>SYM-ABC</html>"}
    assert saved == [doc]


def test_dry_run_skips_save() -> None:
    status, doc, _, _ = process_one_fund(
        fund="ABC", resolve=_resolve, download=_download, parse=_parse, save=None
    )
    assert status == "ok"
    assert doc is not None


def test_lookup_failure_stops_early() -> None:
    def resolve(fund: str) -> str:
        raise NotFound(fund, "no fund symbol found")

    def download(symbol: str) -> Tuple[str, str]:  # pragma: no cover - must not run
        raise AssertionError("download called")

    status, doc, stage, error = process_one_fund(
        fund="NOPE", resolve=resolve, download=download, parse=_parse, save=None
    )
    assert (status, doc, stage) == ("err", None, "lookup")
    assert error == "Fund not found: NOPE (no fund symbol found)"


def test_fetch_failure_stage() -> None:
    def download(symbol: str) -> Tuple[str, str]:
        raise HttpError("http://report/" + symbol, 404)

    _, _, stage, error = process_one_fund(
        fund="ABC", resolve=_resolve, download=download, parse=_parse, save=None
    )
    assert stage == "fetch"
    assert error is not None and error.startswith("statusCode: 404")


def test_parse_failure_stage() -> None:
    def parse(html: str, symbol: str, url: str) -> FundDocument:
        raise NotFound(symbol, "non-existent fund")

    _, _, stage, _ = process_one_fund(
        fund="ABC", resolve=_resolve, download=_download, parse=parse, save=None
    )
    assert stage == "parse"


def test_persist_failure_stage() -> None:
    def save(doc: FundDocument) -> None:
        raise PersistenceError(str(doc["_id"]), "409 conflict: Document update conflict.")

    status, doc, stage, error = process_one_fund(
        fund="ABC", resolve=_resolve, download=_download, parse=_parse, save=save
    )
    assert (status, doc, stage) == ("err", None, "persist")
    assert error == "[insert:SYM-ABC] 409 conflict: Document update conflict."


def test_persistence_error_is_persist_stage_wherever_raised() -> None:
    def resolve(fund: str) -> str:
        raise PersistenceError(None, "database gone")

    _, _, stage, _ = process_one_fund(
        fund="ABC", resolve=resolve, download=_download, parse=_parse, save=None
    )
    assert stage == "persist"


def test_unexpected_errors_are_contained() -> None:
    def parse(html: str, symbol: str, url: str) -> FundDocument:
        raise KeyError("bug")

    status, doc, stage, error = process_one_fund(
        fund="ABC", resolve=_resolve, download=_download, parse=parse, save=None
    )
    assert (status, doc, stage) == ("err", None, "parse")
    assert error == "KeyError: 'bug'"


def test_batch_stats_failure_counts() -> None:
    stats = BatchStats(
        run_id="r",
        ok=1,
        err=3,
        failures=(
            FundFailure("A", "lookup", "x"),
            FundFailure("B", "parse", ParseError("y").args[0]),
            FundFailure("C", "persist", "z"),
        ),
    )
    assert stats.fetch_failures == 2
    assert stats.persistence_failures == 1
