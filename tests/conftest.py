from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

import pytest

from fundkraken.common.errors import NotFound
from fundkraken.common.http_adapter import HttpRequestsAdapter

DATA_DIR = Path(__file__).parent / "sources" / "morningstar" / "data"

ENV_VARS = (
    "CLOUDANT_URL",
    "FUNDKRAKEN_DATABASE",
    "FUNDKRAKEN_RETRY_ATTEMPTS",
    "FUNDKRAKEN_HTTP_TIMEOUT",
    "FUNDKRAKEN_DELAY_SECONDS",
    "FUNDKRAKEN_FUNDS_FILE",
    "FUNDKRAKEN_RUNS_DIR",
)


@pytest.fixture
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Run in an empty working directory (no stray .env) with none of the
    fund-kraken environment variables set. Returns the working directory.
    """
    for name in ENV_VARS:
        # setenv first so teardown also removes values a .env file adds
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def http() -> Iterator[HttpRequestsAdapter]:
    adapter = HttpRequestsAdapter(default_timeout=5.0)
    yield adapter
    adapter.close()


@pytest.fixture
def sample_report_html() -> str:
    return (DATA_DIR / "sample_report.html").read_text(encoding="utf-8")


@pytest.fixture
def missing_fund_html() -> str:
    return (DATA_DIR / "missing_fund.html").read_text(encoding="utf-8")


@pytest.fixture
def fake_morningstar(monkeypatch: pytest.MonkeyPatch) -> Dict[str, List[Any]]:
    """
    Replace symbol lookup, report download and pacing sleeps in the batch
    runner with in-memory fakes. Identifiers starting with "BAD" are unknown.
    Returns the recorded calls per fake.
    """
    import fundkraken.sources.morningstar.batch.run as run_mod

    seen: Dict[str, List[Any]] = {"resolve": [], "download": [], "sleep": []}

    def fake_resolve(http: HttpRequestsAdapter, code: str, **kwargs: Any) -> str:
        seen["resolve"].append((code, kwargs["lookup_url"]))
        if code.startswith("BAD"):
            raise NotFound(code, "no fund symbol found")
        return "SYM-" + code

    def fake_download(
        http: HttpRequestsAdapter, symbol: str, *, base_url: str
    ) -> Tuple[str, str]:
        seen["download"].append(symbol)
        return (
            f'<div class="YMWCoyFull">{symbol} Fund</div>',
            base_url.rstrip("/") + "/" + symbol,
        )

    monkeypatch.setattr(run_mod, "resolve_symbol", fake_resolve)
    monkeypatch.setattr(run_mod, "download_report_html", fake_download)
    monkeypatch.setattr(run_mod.time, "sleep", lambda s: seen["sleep"].append(s))
    return seen
