# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Province → city hierarchy read from the ``ChinaCitys.json`` dataset.

The dataset is a JSON array of provinces::

    [{"code": "420000", "province": "湖北省",
      "citys": [{"code": "420100000000", "city": "武汉市"}, ...]}, ...]

City codes arrive in the 12-digit statistical form; the boundary API expects
the 6-digit form, see :func:`normalize_city_code`.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Set, Tuple

LOGGER = logging.getLogger(__name__)

_CITY_CODE_SUFFIX = "000000"


class HierarchyLoadError(Exception):
    """Raised when the hierarchy input cannot be read; aborts the whole run."""


def normalize_city_code(code: str) -> str:
    """Drop a single trailing ``000000`` from *code*.

    ``"420100000000"`` becomes ``"420100"``; ``"420101"`` is returned as is.
    Normalise once, where the code is used.
    """

    if code.endswith(_CITY_CODE_SUFFIX):
        return code[: -len(_CITY_CODE_SUFFIX)]
    return code


@dataclass(frozen=True)
class City:
    code: str
    name: str

    @property
    def api_code(self) -> str:
        return normalize_city_code(self.code)


@dataclass(frozen=True)
class Province:
    code: str
    name: str
    cities: Tuple[City, ...] = ()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _usable_key(code: str) -> bool:
    return bool(code) and code not in {".", ".."} and "/" not in code and "\\" not in code


def _parse_city(raw: Any, province_code: str, index: int) -> City:
    if not isinstance(raw, dict):
        raise HierarchyLoadError(
            f"city #{index} of province {province_code} is not an object"
        )
    code = _text(raw.get("code"))
    if not code:
        raise HierarchyLoadError(f"city #{index} of province {province_code} has no code")
    if not _usable_key(normalize_city_code(code)):
        raise HierarchyLoadError(
            f"city #{index} of province {province_code} has unusable code {code!r}"
        )
    return City(code=code, name=_text(raw.get("city")))


def parse_hierarchy(payload: Any) -> List[Province]:
    """Build :class:`Province` nodes from the decoded dataset."""

    if not isinstance(payload, list):
        raise HierarchyLoadError(
            f"expected a JSON array of provinces, got {type(payload).__name__}"
        )
    provinces: List[Province] = []
    seen: Set[str] = set()
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise HierarchyLoadError(f"province #{index} is not an object")
        code = _text(raw.get("code"))
        name = _text(raw.get("province"))
        if not code or not name:
            raise HierarchyLoadError(f"province #{index} is missing code or province name")
        if not _usable_key(code):
            raise HierarchyLoadError(f"province #{index} has unusable code {code!r}")
        if code in seen:
            raise HierarchyLoadError(f"duplicate province code {code}")
        seen.add(code)
        raw_cities = raw.get("citys") or []
        if not isinstance(raw_cities, list):
            raise HierarchyLoadError(f"province {code} has a non-list 'citys' field")
        cities = tuple(
            _parse_city(item, code, position) for position, item in enumerate(raw_cities)
        )
        provinces.append(Province(code=code, name=name, cities=cities))
    return provinces


def load_hierarchy(path: str | os.PathLike[str]) -> List[Province]:
    """Read and parse the hierarchy file at *path*."""

    target = Path(path)
    try:
        text = target.read_text(encoding="utf-8")
    except OSError as exc:
        raise HierarchyLoadError(f"cannot read hierarchy input {target}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise HierarchyLoadError(f"invalid JSON in {target}: {exc}") from exc
    provinces = parse_hierarchy(payload)
    LOGGER.info(
        "Loaded %d provinces (%d cities) from %s",
        len(provinces),
        sum(len(province.cities) for province in provinces),
        target,
    )
    return provinces
