# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Sequential province → city traversal.

Every province in the input is visited in order. Ordinary provinces get their
own document at ``{base}/{code}_full.json`` and each of their cities is
fetched and filed under ``(province_code, city_code)``. Province-level
municipalities (北京, 天津, 上海, 重庆) have no separate province fetch: each of
their declared cities fetches the province document instead, falling back to
the city's own endpoint, and whatever arrives is filed under the province key.

Failures are converted into ledger state at the node that produced them; the
walk always reaches the end of the hierarchy.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence, Tuple

import requests

from .config import GeoboundConfig
from .feature_flags import skip_sleep
from .hierarchy import City, Province
from .http import Document, Failure, FetchOutcome, build_session, fetch_outcome
from .ledger import CITY, PROVINCE, LedgerEntry, ResultLedger, Summary, error_log_payload
from .report import render_final_statistics, render_progress
from .storage import DocumentStore

LOGGER = logging.getLogger(__name__)

Fetcher = Callable[[str, str], FetchOutcome]


class HierarchyWalker:
    """Drives the crawl for one run.

    ``fetcher(url, description)`` must return a :data:`FetchOutcome`; when
    omitted, :func:`geobound.http.fetch_outcome` is used with the configured
    retry policy and a shared session.
    """

    def __init__(
        self,
        config: GeoboundConfig,
        *,
        store: DocumentStore,
        ledger: Optional[ResultLedger] = None,
        fetcher: Optional[Fetcher] = None,
        session: Optional[requests.Session] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.store = store
        self.ledger = ledger if ledger is not None else ResultLedger()
        self.sleep_fn = sleep_fn
        self.municipalities = frozenset(config.crawl.municipalities)
        self._session = session
        self._owns_session = session is None
        self._fetcher = fetcher if fetcher is not None else self._http_fetch

    # -- fetching -----------------------------------------------------------

    def _http_fetch(self, url: str, description: str) -> FetchOutcome:
        if self._session is None:
            self._session = build_session(self.config.api)
        api = self.config.api
        return fetch_outcome(
            url,
            description=description,
            max_attempts=api.max_attempts,
            timeout_s=api.timeout_s,
            backoff_s=api.backoff_s,
            max_redirects=api.max_redirects,
            session=self._session,
            sleep_fn=self.sleep_fn,
        )

    def _fetch_and_store(self, url: str, description: str, key: Tuple[str, ...]) -> FetchOutcome:
        """Fetch *url* and file the document under *key*.

        A write error or an unusable storage key after a successful fetch is
        reported as a failure of the same target.
        """

        outcome = self._fetcher(url, description)
        if isinstance(outcome, Failure):
            return outcome
        try:
            path = self.store.store(key, outcome.payload)
        except (OSError, ValueError) as exc:
            LOGGER.error("   cannot write %s document: %s", description, exc)
            return Failure(
                reason=f"storage error: {exc}",
                url=url,
                attempts=outcome.attempts,
                kind="storage_error",
            )
        LOGGER.info("   saved %s -> %s", description, path)
        return outcome

    def is_municipality(self, province: Province) -> bool:
        return province.name in self.municipalities

    # -- traversal ----------------------------------------------------------

    def process_province(self, province: Province) -> None:
        municipality = self.is_municipality(province)
        LOGGER.info(
            "[province] %s (%s)%s with %d cities",
            province.name,
            province.code,
            " [municipality]" if municipality else "",
            len(province.cities),
        )
        if municipality:
            self.ledger.note_municipality(province.name)
            LOGGER.info("   municipality: province document is fetched per city")
        else:
            url = self.config.api.url_for(province.code)
            outcome = self._fetch_and_store(url, f"{province.name} province", (province.code,))
            if isinstance(outcome, Document):
                self.ledger.record_success(PROVINCE)
            else:
                LOGGER.error("   province %s failed: %s", province.name, outcome.reason)
                self.ledger.record_failure(
                    LedgerEntry(
                        kind=PROVINCE,
                        name=province.name,
                        code=province.code,
                        error_message=outcome.reason,
                        is_municipality=False,
                        attempts=outcome.attempts,
                    )
                )
        self.process_cities(province, municipality=municipality)

    def process_cities(self, province: Province, *, municipality: bool) -> None:
        count = len(province.cities)
        for index, city in enumerate(province.cities):
            self.process_city(province, city, index=index, total=count, municipality=municipality)
            if index < count - 1:
                self._pause(self.config.crawl.request_delay_s)

    def process_city(
        self,
        province: Province,
        city: City,
        *,
        index: int,
        total: int,
        municipality: bool,
    ) -> FetchOutcome:
        api_code = city.api_code
        LOGGER.info(
            "  [city %d/%d] %s (%s -> %s)%s",
            index + 1,
            total,
            city.name,
            city.code,
            province.code if municipality else api_code,
            " [municipality]" if municipality else "",
        )
        if municipality:
            outcome = self._fetch_municipality(province, city, api_code)
        else:
            outcome = self._fetch_and_store(
                self.config.api.url_for(api_code),
                f"{city.name} city",
                (province.code, api_code),
            )

        if isinstance(outcome, Document):
            self.ledger.record_success(CITY)
        else:
            LOGGER.error("   city %s failed: %s", city.name, outcome.reason)
            self.ledger.record_failure(
                LedgerEntry(
                    kind=CITY,
                    name=city.name,
                    code=api_code,
                    original_code=city.code,
                    province_code=province.code,
                    province_name=province.name,
                    is_municipality=municipality,
                    error_message=outcome.reason,
                    attempts=outcome.attempts,
                )
            )
        return outcome

    def _fetch_municipality(self, province: Province, city: City, api_code: str) -> FetchOutcome:
        key = (province.code,)
        primary = self._fetch_and_store(
            self.config.api.url_for(province.code),
            f"{city.name} municipality",
            key,
        )
        if isinstance(primary, Document):
            return primary
        LOGGER.warning(
            "   municipality document for %s failed (%s); trying city endpoint",
            province.name,
            primary.reason,
        )
        self.ledger.log_error(
            LedgerEntry(
                kind=PROVINCE,
                name=province.name,
                code=province.code,
                error_message=primary.reason,
                is_municipality=True,
                attempts=primary.attempts,
            )
        )
        return self._fetch_and_store(
            self.config.api.url_for(api_code), f"{city.name} city", key
        )

    def _pause(self, seconds: float) -> None:
        if seconds <= 0 or skip_sleep():
            return
        self.sleep_fn(seconds)

    def walk(self, provinces: Sequence[Province]) -> None:
        total = len(provinces)
        for position, province in enumerate(provinces, start=1):
            LOGGER.info("[%d/%d] processing province", position, total)
            self.process_province(province)
            LOGGER.info(render_progress(position, total, self.ledger))

    def finalize(self, *, province_count: int) -> Summary:
        summary = self.ledger.summarize(province_count=province_count)
        summary_path = self.store.write_summary(summary.to_dict())
        LOGGER.info("Crawl summary written to %s", summary_path)
        entries = self.ledger.entries
        if entries:
            error_path = self.store.write_error_log(error_log_payload(entries))
            LOGGER.info("Error log written to %s (%d entries)", error_path, len(entries))
        for line in render_final_statistics(summary, entries, str(self.store.root)).splitlines():
            LOGGER.info(line)
        return summary

    def run(self, provinces: Sequence[Province]) -> Summary:
        """Walk *provinces*, persist the summary (and error log) and return it."""

        LOGGER.info(
            "Starting crawl of %d provinces from %s into %s",
            len(provinces),
            self.config.api.base_url,
            self.store.root,
        )
        try:
            self.walk(provinces)
        finally:
            if self._owns_session and self._session is not None:
                self._session.close()
                self._session = None
        return self.finalize(province_count=len(provinces))
