"""
Error types raised across fund-kraken.

Every failure that should abort a single fund (but not the batch) derives from
`FundKrakenError`, so the batch driver can catch exactly these and let anything
unexpected propagate.
"""

from __future__ import annotations

__all__ = [
    "FundKrakenError",
    "NotFound",
    "TransportError",
    "HttpError",
    "ParseError",
    "PersistenceError",
]


class FundKrakenError(Exception):
    """Base class for per-fund failures."""


class NotFound(FundKrakenError):
    """No symbol exists for an identifier, or the report page says the fund is unknown."""

    def __init__(self, identifier: str, detail: str | None = None) -> None:
        self.identifier = identifier
        self.detail = detail
        msg = f"Fund not found: {identifier}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class TransportError(FundKrakenError):
    """The request never produced an HTTP response (DNS, connect, timeout, ...)."""

    def __init__(self, url: str, cause: BaseException) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Transport failure for {url}: {cause}")


class HttpError(FundKrakenError):
    """The server answered with an unexpected status code."""

    def __init__(self, url: str, status: int) -> None:
        self.url = url
        self.status = status
        super().__init__(f"statusCode: {status} ({url})")


class ParseError(FundKrakenError):
    """A payload could not be turned into the expected structure."""


class PersistenceError(FundKrakenError):
    """A document could not be written to the store."""

    def __init__(self, doc_id: str | None, cause: BaseException | str) -> None:
        self.doc_id = doc_id
        self.cause = cause
        super().__init__(f"[insert:{doc_id}] {cause}")
