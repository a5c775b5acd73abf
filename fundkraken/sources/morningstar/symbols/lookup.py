"""
Symbol lookup against the Morningstar security search endpoint.

A fund identifier (APIR code) is resolved to the internal Morningstar symbol
used in report URLs:

    resolve_symbol(http, "ABC0001AU", lookup_url=...) -> "F00000XYZ1"
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from fundkraken.common.errors import NotFound, ParseError
from fundkraken.common.http_adapter import HttpRequestsAdapter

logger = logging.getLogger(__name__)

LOOKUP_HEADERS: Mapping[str, str] = {"Accept": "application/json, text/javascript, */*"}
DEFAULT_SECURITY_TYPE_FILTER = "SecurityTypeId:(1 OR 2 OR 3 OR 4 OR 5)"
DEFAULT_SORT = "UniverseSort asc"

__all__ = ["lookup_params", "resolve_symbol"]


def lookup_params(
    code: str,
    *,
    security_type_filter: str = DEFAULT_SECURITY_TYPE_FILTER,
    sort: str = DEFAULT_SORT,
) -> dict[str, Any]:
    """Query parameters for a single best-match lookup of `code`."""
    return {
        "q": "*" + code,
        "rows": 1,
        "fq": security_type_filter,
        "sort": sort,
    }


def resolve_symbol(
    http: HttpRequestsAdapter,
    code: str,
    *,
    lookup_url: str,
    security_type_filter: str = DEFAULT_SECURITY_TYPE_FILTER,
    sort: str = DEFAULT_SORT,
) -> str:
    """
    Return the Morningstar symbol for fund identifier `code`.

    Raises:
        NotFound: if the search has no match.
        ParseError: if the response is not the expected search payload.
        HttpError / TransportError: propagated from the HTTP adapter.
    """
    payload = http.get_json(
        lookup_url,
        params=lookup_params(code, security_type_filter=security_type_filter, sort=sort),
        headers=LOOKUP_HEADERS,
    )
    response = payload.get("response") if isinstance(payload, Mapping) else None
    if not isinstance(response, Mapping):
        raise ParseError(f"Symbol lookup for {code}: no 'response' object in payload")
    logger.debug("Lookup %s: %s", code, response)

    try:
        found = int(response.get("numFound", 0))
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Symbol lookup for {code}: bad numFound") from exc
    if found < 1:
        raise NotFound(code, "no fund symbol found")

    docs = response.get("docs")
    if not isinstance(docs, list) or not docs or not isinstance(docs[0], Mapping):
        raise ParseError(f"Symbol lookup for {code}: numFound={found} but no docs")
    symbol = docs[0].get("Symbol")
    if not isinstance(symbol, str) or not symbol:
        raise ParseError(f"Symbol lookup for {code}: first doc has no Symbol")

    logger.debug("Lookup %s: %s", code, docs[0])
    return symbol
