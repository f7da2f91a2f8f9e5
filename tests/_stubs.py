"""Offline stand-ins for the HTTP session and the walker's fetcher."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Union

from geobound.http import Document, Failure

BASE_URL = "https://geo.example.test/areas_v3/bound"


def url_for(code: str) -> str:
    return f"{BASE_URL}/{code}_full.json"


def feature(code: str) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": [{"properties": {"adcode": code}}]}


class StubResponse:
    def __init__(
        self,
        status: int = 200,
        body: Union[bytes, Any] = b"{}",
        *,
        headers: Optional[Dict[str, str]] = None,
        reason: str = "OK",
    ) -> None:
        self.status_code = status
        self.headers = headers or {}
        self.reason = reason
        self.content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.closed = False

    def close(self) -> None:
        self.closed = True


class StubSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, headers=None, timeout=None, allow_redirects=True) -> StubResponse:
        self.calls.append(
            {"url": url, "headers": headers, "timeout": timeout, "allow_redirects": allow_redirects}
        )
        if not self._responses:
            return StubResponse(500, b"", reason="No stub left")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeFetcher:
    """Maps URLs to a payload (success) or a string (terminal failure reason)."""

    def __init__(self, plan: Mapping[str, Any], *, attempts_on_failure: int = 3) -> None:
        self.plan = dict(plan)
        self.attempts_on_failure = attempts_on_failure
        self.calls: List[str] = []

    def __call__(self, url: str, description: str):
        self.calls.append(url)
        if url not in self.plan:
            return Failure(reason="HTTP 404: Not Found", url=url, attempts=self.attempts_on_failure, kind="http_error")
        value = self.plan[url]
        if isinstance(value, str):
            return Failure(reason=value, url=url, attempts=self.attempts_on_failure, kind="http_error")
        return Document(payload=value, url=url, attempts=1)
