"""
Downloader for Morningstar fund report pages.

Public API
----------
- report_url(base_url, symbol) -> str
- download_report_html(http, symbol, base_url=...) -> tuple[str, str]
    Returns the decoded HTML and the URL it was fetched from.
"""

from __future__ import annotations

import logging
from typing import Mapping

from fundkraken.common.http_adapter import HttpRequestsAdapter

logger = logging.getLogger(__name__)

REPORT_HEADERS: Mapping[str, str] = {"Accept": "text/html"}

__all__ = ["report_url", "download_report_html"]


def report_url(base_url: str, symbol: str) -> str:
    """Report print URL for `symbol` (``<base_url>/<symbol>``)."""
    return base_url.rstrip("/") + "/" + symbol


def download_report_html(
    http: HttpRequestsAdapter,
    symbol: str,
    *,
    base_url: str,
) -> tuple[str, str]:
    """
    Fetch the report page for `symbol` and return ``(html, url)``.

    Raises
    ------
    ValueError
        If `symbol` is empty.
    HttpError
        If the server answers with anything but 200.
    TransportError
        If no response could be obtained.
    """
    if not symbol:
        raise ValueError("No fundSymbol parameter")
    url = report_url(base_url, symbol)
    logger.debug("Requesting %s", url)
    html = http.get_text(url, headers=REPORT_HEADERS)
    return html, url
