# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Filesystem layout for fetched documents and run artefacts."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Sequence, Union

log = logging.getLogger(__name__)
PathLike = Union[str, Path]

DOCUMENT_FILENAME = "geo.json"
SUMMARY_FILENAME = "crawl_summary.json"
ERROR_LOG_FILENAME = "error_log.json"


def write_json(path: PathLike, obj: Any, *, encoding: str = "utf-8", indent: int = 2) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w", delete=False, dir=str(p.parent), encoding=encoding, suffix=".tmp"
    ) as tmp:
        try:
            json.dump(obj, tmp, ensure_ascii=False, indent=indent)
            tmp.flush()
            os.fsync(tmp.fileno())
        except BaseException:
            tmp.close()
            os.unlink(tmp.name)
            raise
        tmp_name = tmp.name
    os.replace(tmp_name, p)
    log.debug(
        "write_json: %s (%s)",
        p,
        f"keys={list(obj.keys())[:5]}" if isinstance(obj, dict) else type(obj).__name__,
    )
    return p


class DocumentStore:
    """Maps storage keys to ``<root>/<key parts...>/geo.json``.

    A one-part key ``(province_code,)`` holds province and municipality
    documents; ``(province_code, city_code)`` holds ordinary city documents.
    """

    def __init__(self, root: PathLike) -> None:
        self.root = Path(root)

    def path_for(self, key: Sequence[str]) -> Path:
        parts = [str(part) for part in key]
        if not parts or any(not part or part in {".", ".."} or "/" in part for part in parts):
            raise ValueError(f"invalid storage key: {tuple(key)!r}")
        return self.root.joinpath(*parts, DOCUMENT_FILENAME)

    def store(self, key: Sequence[str], document: Any) -> Path:
        return write_json(self.path_for(key), document)

    def write_summary(self, payload: Any) -> Path:
        return write_json(self.root / SUMMARY_FILENAME, payload)

    def write_error_log(self, entries: Any) -> Path:
        return write_json(self.root / ERROR_LOG_FILENAME, entries)
