"""Resilient JSON fetcher for the boundary API."""
from __future__ import annotations

import json
import logging
import socket
import ssl
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import (
    ChunkedEncodingError,
    ConnectTimeout,
    ConnectionError as RequestsConnectionError,
    ProxyError,
    ReadTimeout,
    RequestException,
    SSLError as RequestsSSLError,
    Timeout,
)

from .config import ApiCfg
from .feature_flags import skip_sleep

__all__ = [
    "Document",
    "Failure",
    "FetchError",
    "FetchOutcome",
    "build_session",
    "default_headers",
    "fetch_json",
    "fetch_outcome",
]

LOGGER = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302})


@dataclass
class FetchError(Exception):
    """Raised when a fetch target fails on every permitted attempt."""

    message: str
    diagnostics: Dict[str, object]
    kind: str = "error"

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def attempts(self) -> int:
        return int(self.diagnostics.get("attempts") or 0)


@dataclass(frozen=True)
class Document:
    """Successfully fetched and parsed JSON payload."""

    payload: Any
    url: str
    attempts: int = 1
    diagnostics: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class Failure:
    """Terminal failure for one fetch target."""

    reason: str
    url: str
    attempts: int
    kind: str = "error"
    diagnostics: Mapping[str, object] = field(default_factory=dict)


FetchOutcome = Union[Document, Failure]


class _AttemptError(Exception):
    def __init__(
        self,
        message: str,
        *,
        kind: str,
        status: Optional[int] = None,
        redirects: int = 0,
        terminal: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status
        self.redirects = redirects
        self.terminal = terminal


def default_headers(api: ApiCfg | None = None) -> Dict[str, str]:
    """Browser-like headers; the API rejects requests without a matching Referer."""

    api = api or ApiCfg()
    return {
        "User-Agent": api.user_agent,
        "Referer": api.referer,
        "Accept": "application/json, text/plain, */*",
    }


def build_session(api: ApiCfg | None = None) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=1)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(default_headers(api))
    return session


def _classify_exception(exc: Exception) -> str:
    if isinstance(exc, ConnectTimeout):
        return "connect_timeout"
    if isinstance(exc, (ReadTimeout, Timeout, socket.timeout)):
        return "read_timeout"
    if isinstance(exc, (RequestsSSLError, ssl.SSLError)):
        return "ssl_error"
    if isinstance(exc, ProxyError):
        return "proxy_error"
    if isinstance(exc, ChunkedEncodingError):
        return "unexpected_eof"
    if isinstance(exc, RequestsConnectionError):
        reason = exc.args[0] if exc.args else None
        reason = getattr(reason, "reason", reason)
        if isinstance(reason, socket.gaierror) or "getaddrinfo" in str(reason):
            return "dns_error"
        return "connection_error"
    return exc.__class__.__name__.lower()


def _describe_exception(exc: Exception, timeout_s: float) -> str:
    if isinstance(exc, Timeout):
        return f"request timed out after {timeout_s:g}s"
    text = str(exc).strip()
    return text or exc.__class__.__name__


def _plan_sleep(duration: float, *, sleep_fn: Callable[[float], None], bucket: List[float]) -> float:
    duration = max(0.0, float(duration))
    if duration <= 0.0:
        return 0.0
    bucket.append(duration)
    if not skip_sleep():
        sleep_fn(duration)
    return duration


def _single_attempt(
    session: requests.Session,
    url: str,
    *,
    headers: Optional[Mapping[str, str]],
    timeout_s: float,
    max_redirects: int,
) -> Tuple[Any, int, int, str]:
    """Run one attempt, following 301/302 without consuming the attempt.

    Returns ``(document, status, redirects, final_url)``.
    """

    current = url
    redirects = 0
    while True:
        try:
            response = session.get(
                current,
                headers=dict(headers) if headers else None,
                timeout=timeout_s,
                allow_redirects=False,
            )
        except RequestException as exc:
            raise _AttemptError(
                _describe_exception(exc, timeout_s),
                kind=_classify_exception(exc),
                redirects=redirects,
            ) from exc
        try:
            status = int(response.status_code)
            location = response.headers.get("Location")
            if status in REDIRECT_STATUSES and location:
                redirects += 1
                if redirects > max_redirects:
                    raise _AttemptError(
                        f"too many redirects (more than {max_redirects}) from {url}",
                        kind="too_many_redirects",
                        status=status,
                        redirects=redirects,
                        terminal=True,
                    )
                current = urljoin(current, location)
                LOGGER.info("  redirected (%d) to %s", status, current)
                continue
            if not 200 <= status < 300:
                reason = (response.reason or "").strip()
                message = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
                raise _AttemptError(
                    message, kind="http_error", status=status, redirects=redirects
                )
            body = response.content
        finally:
            response.close()

        try:
            document = json.loads(body)
        except ValueError as exc:
            raise _AttemptError(
                f"malformed JSON body: {exc}",
                kind="malformed_body",
                status=status,
                redirects=redirects,
            ) from exc
        return document, status, redirects, current


def fetch_json(
    url: str,
    *,
    description: str = "",
    max_attempts: int = 3,
    timeout_s: float = 30.0,
    backoff_s: float = 2.0,
    max_redirects: int = 5,
    headers: Optional[Mapping[str, str]] = None,
    session: Optional[requests.Session] = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> Tuple[Any, Dict[str, object]]:
    """GET *url* and decode its JSON body, retrying with linear backoff.

    A failed attempt (timeout, connection error, non-2xx status, undecodable
    body) is retried after ``backoff_s * attempt`` seconds until
    ``max_attempts`` attempts have failed; the last error is then raised as
    :class:`FetchError`. Redirects are followed inside an attempt, up to
    ``max_redirects`` hops, and never count as an attempt. Exceeding the hop
    limit fails immediately without further attempts.
    """

    attempts_allowed = max(int(max_attempts), 1)
    label = description or url
    own_session = session is None
    active = session if session is not None else build_session()

    exceptions: List[Dict[str, object]] = []
    planned_waits: List[float] = []
    total_backoff = 0.0
    redirects_total = 0
    last_status: Optional[int] = None
    started = time.monotonic()

    def _diagnostics(attempts: int, status: Optional[int], final_url: Optional[str]) -> Dict[str, object]:
        return {
            "url": url,
            "final_url": final_url,
            "attempts": attempts,
            "retries": max(attempts - 1, 0),
            "redirects": redirects_total,
            "status": status,
            "duration_s": round(time.monotonic() - started, 6),
            "backoff_s": round(total_backoff, 6),
            "planned_sleep_s": list(planned_waits),
            "exceptions": list(exceptions),
        }

    attempt = 0
    try:
        while True:
            attempt += 1
            LOGGER.info("  attempt %d/%d: %s", attempt, attempts_allowed, label)
            try:
                document, status, redirects, final_url = _single_attempt(
                    active,
                    url,
                    headers=headers,
                    timeout_s=timeout_s,
                    max_redirects=max_redirects,
                )
            except _AttemptError as err:
                redirects_total += err.redirects
                last_status = err.status
                exceptions.append(
                    {
                        "attempt": attempt,
                        "kind": err.kind,
                        "status": err.status,
                        "message": err.message,
                    }
                )
                LOGGER.warning("  attempt %d failed: %s", attempt, err.message)
                if err.terminal or attempt >= attempts_allowed:
                    raise FetchError(
                        err.message, _diagnostics(attempt, last_status, None), kind=err.kind
                    ) from err
                total_backoff += _plan_sleep(
                    backoff_s * attempt, sleep_fn=sleep_fn, bucket=planned_waits
                )
                continue
            redirects_total += redirects
            return document, _diagnostics(attempt, status, final_url)
    finally:
        if own_session:
            active.close()


def fetch_outcome(url: str, *, description: str = "", **kwargs: Any) -> FetchOutcome:
    """Like :func:`fetch_json` but returns a :data:`FetchOutcome` instead of raising."""

    try:
        document, diagnostics = fetch_json(url, description=description, **kwargs)
    except FetchError as exc:
        return Failure(
            reason=exc.message,
            url=url,
            attempts=exc.attempts,
            kind=exc.kind,
            diagnostics=exc.diagnostics,
        )
    return Document(
        payload=document,
        url=url,
        attempts=int(diagnostics["attempts"]),
        diagnostics=diagnostics,
    )
