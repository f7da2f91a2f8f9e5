# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Per-node outcome bookkeeping for a crawl run."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

PROVINCE = "province"
CITY = "city"
KINDS = (PROVINCE, CITY)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Stats:
    """Counters for one hierarchy level. Only ever incremented."""

    total: int = 0
    success: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "success": self.success, "failed": self.failed}


@dataclass(frozen=True)
class LedgerEntry:
    kind: str
    name: str
    code: str
    error_message: str
    is_municipality: bool = False
    original_code: Optional[str] = None
    province_code: Optional[str] = None
    province_name: Optional[str] = None
    attempts: int = 0
    timestamp: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"unknown ledger kind: {self.kind!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the error-log field names."""

        payload: Dict[str, Any] = {
            "type": self.kind,
            "name": self.name,
            "code": self.code,
        }
        if self.original_code is not None:
            payload["originalCode"] = self.original_code
        if self.province_code is not None:
            payload["provinceCode"] = self.province_code
        if self.province_name is not None:
            payload["provinceName"] = self.province_name
        payload["isMunicipality"] = self.is_municipality
        payload["error"] = self.error_message
        payload["attempts"] = self.attempts
        payload["timestamp"] = self.timestamp
        return payload


@dataclass(frozen=True)
class Summary:
    """Read-only snapshot of a finished run."""

    attempted: int
    success: int
    failed: int
    success_rate: float
    provinces: Dict[str, int]
    cities: Dict[str, int]
    province_count: int
    municipalities: Tuple[str, ...]
    error_entries: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.attempted,
            "success": self.success,
            "error": self.failed,
            "successRate": self.success_rate,
            "provinceCount": self.province_count,
            "municipalities": list(self.municipalities),
            "errorEntries": self.error_entries,
            "stats": {"provinces": dict(self.provinces), "cities": dict(self.cities)},
            "timestamp": self.timestamp,
        }


def success_rate(success: int, attempted: int) -> float:
    """Percentage of attempted units that succeeded, one decimal place."""

    if attempted <= 0:
        return 0.0
    return round(success * 100.0 / attempted, 1)


class ResultLedger:
    """Accumulates success/failure counts and the failure log of one run.

    Province counters cover provinces that had their own fetch; municipalities
    are counted through their cities only.
    """

    def __init__(self) -> None:
        self.stats: Dict[str, Stats] = {PROVINCE: Stats(), CITY: Stats()}
        self._entries: List[LedgerEntry] = []
        self._municipalities: List[str] = []

    @property
    def entries(self) -> Tuple[LedgerEntry, ...]:
        return tuple(self._entries)

    @property
    def provinces(self) -> Stats:
        return self.stats[PROVINCE]

    @property
    def cities(self) -> Stats:
        return self.stats[CITY]

    def _counter(self, kind: str) -> Stats:
        try:
            return self.stats[kind]
        except KeyError:
            raise ValueError(f"unknown ledger kind: {kind!r}") from None

    def record_success(self, kind: str) -> None:
        counter = self._counter(kind)
        counter.total += 1
        counter.success += 1

    def record_failure(self, entry: LedgerEntry) -> LedgerEntry:
        """Count a terminal failure for ``entry.kind`` and log the entry."""

        counter = self._counter(entry.kind)
        counter.total += 1
        counter.failed += 1
        return self.log_error(entry)

    def log_error(self, entry: LedgerEntry) -> LedgerEntry:
        """Append *entry* to the error log without touching the counters."""

        self._entries.append(entry)
        return entry

    def note_municipality(self, name: str) -> None:
        if name not in self._municipalities:
            self._municipalities.append(name)

    def entries_of(self, kind: str) -> List[LedgerEntry]:
        return [entry for entry in self._entries if entry.kind == kind]

    def totals(self) -> Tuple[int, int, int]:
        """``(attempted, success, failed)`` across both levels."""

        attempted = self.provinces.total + self.cities.total
        success = self.provinces.success + self.cities.success
        failed = self.provinces.failed + self.cities.failed
        return attempted, success, failed

    def summarize(self, *, province_count: int = 0) -> Summary:
        attempted, success, failed = self.totals()
        return Summary(
            attempted=attempted,
            success=success,
            failed=failed,
            success_rate=success_rate(success, attempted),
            provinces=self.provinces.to_dict(),
            cities=self.cities.to_dict(),
            province_count=province_count,
            municipalities=tuple(self._municipalities),
            error_entries=len(self._entries),
            timestamp=utc_now_iso(),
        )


def error_log_payload(entries: Sequence[LedgerEntry]) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in entries]
