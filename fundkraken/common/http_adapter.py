"""
HTTP adapter for fund-kraken (requests-based).

This module provides a thin adapter around a ``requests.Session`` that every
network collaborator (symbol lookup, report download, document store) goes
through. It owns default headers, the timeout and the transport retry policy,
and converts client failures into fund-kraken errors at the boundary.

Design notes
------------
- Headers are stored and exposed as ``Mapping[str, str]`` (no ``bytes`` values).
- Default headers, timeout and retry attempts are injected at construction time.
- Transport retries (connection errors, 429 and 5xx) are a fixed attempt count
  with no backoff, for GET and HEAD only; honouring ``Retry-After`` is left
  to urllib3.
- ``requests`` exceptions never escape: they surface as ``TransportError``.
  Status handling is the caller's business (``request``) unless a helper that
  expects 200 is used (``get_text`` / ``get_json``), which raises ``HttpError``.

Thread-safety
-------------
This adapter does not guarantee thread safety. Use one instance per worker or
provide synchronization if you share an underlying ``requests.Session``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from types import MappingProxyType
from typing import Any, Mapping, Optional

import requests
from requests import RequestException, Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fundkraken.common.errors import HttpError, ParseError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "fund-kraken/0.1"
RETRY_STATUSES = (429, 500, 502, 503, 504)
# writes are never replayed
RETRY_METHODS = frozenset({"GET", "HEAD"})


def _elapsed_ms(resp: Response) -> Optional[int]:
    """Return the elapsed time in milliseconds for a ``requests.Response``.

    If the response has no timing information, returns ``None``.
    """
    elapsed: Optional[timedelta] = getattr(resp, "elapsed", None)
    if elapsed is None:
        return None
    return int(round(elapsed.total_seconds() * 1000.0))


def _headers_dict(headers: Mapping[str, Any]) -> dict[str, str]:
    """Convert a headers mapping to ``dict[str, str]`` with string values only."""
    return {str(k): str(v) for k, v in headers.items()}


def _retry_policy(attempts: int) -> Retry:
    """Build a urllib3 retry policy allowing ``attempts`` tries in total."""
    retries = max(int(attempts) - 1, 0)
    return Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=RETRY_METHODS,
        raise_on_status=False,
        respect_retry_after_header=True,
    )


class HttpRequestsAdapter:
    """Requests-based HTTP adapter shared by the network collaborators.

    Parameters
    ----------
    user_agent:
        String for the ``User-Agent`` header. Will be inserted into default
        headers if not already present.
    default_timeout:
        Timeout in seconds applied when a per-request timeout is not supplied.
    default_headers:
        Mapping of default headers applied to all requests.
    retry_attempts:
        Total number of attempts (first try included) for transport-level
        failures and retryable statuses.
    """

    default_headers: Mapping[str, str]

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        default_timeout: float = 30.0,
        default_headers: Optional[Mapping[str, str]] = None,
        retry_attempts: int = 1,
    ) -> None:
        self._session: Session = requests.Session()

        base: dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": "*/*",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
        if default_headers:
            base.update(default_headers)
        self._session.headers.update(base)

        adapter = HTTPAdapter(max_retries=_retry_policy(retry_attempts))
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

        self._default_timeout = float(default_timeout)
        self.retry_attempts = int(retry_attempts)
        self.default_headers = MappingProxyType(_headers_dict(self._session.headers))

    def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        json_body: Any = None,
        timeout: float | int | None = None,
        auth: Optional[tuple[str, str]] = None,
    ) -> Response:
        """Issue one HTTP request and return the response, whatever its status.

        Raises
        ------
        ValueError
            If ``url`` is empty.
        TransportError
            If no response was received.
        """
        if not url:
            raise ValueError("HttpRequestsAdapter.request: url must be a non-empty string.")

        method = method.upper()
        try:
            resp: Response = self._session.request(
                method=method,
                url=url,
                params=dict(params) if params else None,
                headers=dict(headers or {}),
                json=json_body,
                timeout=float(timeout or self._default_timeout),
                auth=auth,
                allow_redirects=True,
            )
        except RequestException as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise TransportError(url, exc) from exc

        logger.debug(
            "%s %s -> %s (%s ms)", method, url, resp.status_code, _elapsed_ms(resp)
        )
        return resp

    def get_text(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """GET ``url`` and return the decoded body; any status but 200 is an ``HttpError``."""
        resp = self.request("GET", url, params=params, headers=headers)
        if resp.status_code != 200:
            raise HttpError(url, resp.status_code)
        return resp.text

    def get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """GET ``url`` and decode a JSON body; any status but 200 is an ``HttpError``."""
        resp = self.request("GET", url, params=params, headers=headers)
        if resp.status_code != 200:
            raise HttpError(url, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ParseError(f"Invalid JSON from {url}: {exc}") from exc

    def describe(self) -> str:
        """Human-readable description of this adapter (for logs and diagnostics)."""
        return (
            f"HTTP adapter via 'requests' (timeout={self._default_timeout}s, "
            f"attempts={self.retry_attempts})"
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()
