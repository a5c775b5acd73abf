from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest

# Target the orchestrator module for monkeypatches
import fundkraken.sources.morningstar.batch.run as run_mod
from fundkraken.common.errors import PersistenceError
from fundkraken.common.http_adapter import HttpRequestsAdapter
from fundkraken.config.config import load_config
from fundkraken.sources.morningstar.common.models import FundDocument


def _read_jsonl(path: Path) -> List[Dict[str, Any]]:
    txt = path.read_text(encoding="utf-8").strip()
    return [json.loads(line) for line in txt.splitlines()] if txt else []


class _MemoryStore:
    def __init__(self, fail_ids: Tuple[str, ...] = ()) -> None:
        self.docs: List[FundDocument] = []
        self.fail_ids = fail_ids

    def insert(self, document: FundDocument) -> object:
        if document["_id"] in self.fail_ids:
            raise PersistenceError(str(document["_id"]), "409 conflict: Document update conflict.")
        self.docs.append(document)
        return {"ok": True}


def test_all_funds_inserted_in_order(
    clean_env: Path, http: HttpRequestsAdapter, fake_morningstar: Dict[str, List[Any]]
) -> None:
    store = _MemoryStore()
    stats = run_mod.run_batch(
        load_config(),
        ["A1", "B2", "C3"],
        http=http,
        store=store,
        runs_dir=clean_env / "runs",
        delay_seconds=0.25,
        run_id="r1",
    )

    assert (stats.run_id, stats.ok, stats.err) == ("r1", 3, 0)
    assert [d["_id"] for d in store.docs] == ["SYM-A1", "SYM-B2", "SYM-C3"]
    assert store.docs[0]["Name"] == "SYM-A1 Fund"
    assert store.docs[0]["URL"].endswith("/FundReportPrint/SYM-A1")
    # pacing between funds, not after the last one
    assert fake_morningstar["sleep"] == [0.25, 0.25]

    lines = _read_jsonl(clean_env / "runs" / "r1" / "progress.jsonl")
    assert [(x["fund"], x["status"]) for x in lines] == [("A1", "ok"), ("B2", "ok"), ("C3", "ok")]
    assert (clean_env / "runs" / "r1" / "ok" / "B2.ok").exists()


def test_failed_fund_does_not_stop_the_batch(
    clean_env: Path, http: HttpRequestsAdapter, fake_morningstar: Dict[str, List[Any]]
) -> None:
    store = _MemoryStore()
    stats = run_mod.run_batch(
        load_config(),
        ["A1", "BAD9", "C3"],
        http=http,
        store=store,
        runs_dir=clean_env / "runs",
        delay_seconds=0,
        run_id="r2",
    )

    assert (stats.ok, stats.err) == (2, 1)
    (failure,) = stats.failures
    assert (failure.fund, failure.stage) == ("BAD9", "lookup")
    assert stats.fetch_failures == 1
    assert [d["_id"] for d in store.docs] == ["SYM-A1", "SYM-C3"]
    assert fake_morningstar["download"] == ["SYM-A1", "SYM-C3"]
    assert fake_morningstar["sleep"] == []

    err = json.loads((clean_env / "runs" / "r2" / "err" / "BAD9.json").read_text(encoding="utf-8"))
    assert err["stage"] == "lookup"


def test_insert_failure_is_reported_as_persist(
    clean_env: Path, http: HttpRequestsAdapter, fake_morningstar: Dict[str, List[Any]]
) -> None:
    store = _MemoryStore(fail_ids=("SYM-A1",))
    stats = run_mod.run_batch(
        load_config(),
        ["A1", "B2"],
        http=http,
        store=store,
        runs_dir=clean_env / "runs",
        delay_seconds=0,
    )
    assert stats.persistence_failures == 1
    assert stats.failures[0].error == "[insert:SYM-A1] 409 conflict: Document update conflict."
    assert [d["_id"] for d in store.docs] == ["SYM-B2"]


def test_dry_run_writes_snapshot(
    clean_env: Path, http: HttpRequestsAdapter, fake_morningstar: Dict[str, List[Any]]
) -> None:
    stats = run_mod.run_batch(
        load_config(),
        ["A1"],
        http=http,
        store=None,
        runs_dir=clean_env / "runs",
        snapshot_dir=clean_env / "snap",
    )
    assert stats.ok == 1
    latest = json.loads((clean_env / "snap" / "latest.json").read_text(encoding="utf-8"))
    assert [d["_id"] for d in latest] == ["SYM-A1"]


def test_delay_defaults_to_config(
    clean_env: Path,
    http: HttpRequestsAdapter,
    fake_morningstar: Dict[str, List[Any]],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("FUNDKRAKEN_DELAY_SECONDS", "1.5")
    run_mod.run_batch(
        load_config(), ["A1", "B2"], http=http, store=None, runs_dir=clean_env / "runs"
    )
    assert fake_morningstar["sleep"] == [1.5]


def test_empty_fund_list(clean_env: Path, http: HttpRequestsAdapter, fake_morningstar: Dict[str, List[Any]]) -> None:
    stats = run_mod.run_batch(load_config(), [], http=http, store=None, runs_dir=clean_env / "runs")
    assert (stats.ok, stats.err, stats.failures) == (0, 0, ())


def test_unexpected_parser_error_does_not_stop_the_batch(
    clean_env: Path,
    http: HttpRequestsAdapter,
    fake_morningstar: Dict[str, List[Any]],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    real_parse = run_mod.parse_report

    def flaky_parse(html: str, symbol: str, url: str) -> FundDocument:
        if symbol == "SYM-A1":
            raise KeyError("boom")
        return real_parse(html, symbol, url)

    monkeypatch.setattr(run_mod, "parse_report", flaky_parse)
    store = _MemoryStore()
    stats = run_mod.run_batch(
        load_config(),
        ["A1", "B2"],
        http=http,
        store=store,
        runs_dir=clean_env / "runs",
        delay_seconds=0,
        run_id="r3",
    )

    assert (stats.ok, stats.err) == (1, 1)
    (failure,) = stats.failures
    assert (failure.fund, failure.stage) == ("A1", "parse")
    assert failure.error == "KeyError: 'boom'"
    assert [d["_id"] for d in store.docs] == ["SYM-B2"]
    assert (clean_env / "runs" / "r3" / "err" / "A1.json").exists()
