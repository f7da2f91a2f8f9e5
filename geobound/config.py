# Geobound
# Copyright (c) 2025 Kevin Wyjad
# Licensed under the Geobound Non-Commercial Public License v1.0.
# See the LICENSE file in the project root for details.

"""Configuration for the boundary crawler."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .feature_flags import getenv_number

LOGGER = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parent / "config" / "geobound.yml"

DEFAULT_BASE_URL = "https://geo.datav.aliyun.com/areas_v3/bound"
DEFAULT_REFERER = "https://geo.datav.aliyun.com/"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)
DEFAULT_MUNICIPALITIES = ("北京市", "天津市", "上海市", "重庆市")


@dataclass
class ApiCfg:
    """Remote API and fetch policy."""

    base_url: str = DEFAULT_BASE_URL
    referer: str = DEFAULT_REFERER
    user_agent: str = DEFAULT_USER_AGENT
    timeout_s: float = 30.0
    max_attempts: int = 3
    backoff_s: float = 2.0
    max_redirects: int = 5

    def url_for(self, code: str) -> str:
        return f"{self.base_url.rstrip('/')}/{code}_full.json"


@dataclass
class CrawlCfg:
    """Traversal pacing and the municipality policy."""

    request_delay_s: float = 1.0
    municipalities: List[str] = field(default_factory=lambda: list(DEFAULT_MUNICIPALITIES))


@dataclass
class PathsCfg:
    input_path: str = "ChinaCitys.json"
    data_dir: str = "data"


@dataclass
class GeoboundConfig:
    """Top-level configuration object."""

    api: ApiCfg = field(default_factory=ApiCfg)
    crawl: CrawlCfg = field(default_factory=CrawlCfg)
    paths: PathsCfg = field(default_factory=PathsCfg)
    source: Optional[str] = None


def _block(data: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name)
    return dict(value) if isinstance(value, Mapping) else {}


def _as_float(value: object, default: float, label: str) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        LOGGER.warning("Invalid %s %r in config; using %s", label, value, default)
        return default


def _as_int(value: object, default: int, label: str) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        LOGGER.warning("Invalid %s %r in config; using %s", label, value, default)
        return default


def _resolve_custom_path(raw_path: str | Path) -> Path:
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        return (Path.cwd() / candidate).resolve()
    return candidate.resolve()


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        LOGGER.warning("Ignoring non-mapping config in %s", path)
        return {}
    return data


def load(path: str | os.PathLike[str] | None = None) -> GeoboundConfig:
    """Load configuration from YAML and apply ``GEOBOUND_*`` overrides.

    Lookup order for the file: explicit *path*, ``GEOBOUND_CONFIG_PATH``, then
    the packaged defaults.
    """

    if path is None:
        env_path = os.getenv("GEOBOUND_CONFIG_PATH", "").strip()
        resolved = _resolve_custom_path(env_path) if env_path else DEFAULT_PATH
    else:
        resolved = _resolve_custom_path(path)
    data = _read_yaml(resolved)

    api_block = _block(data, "api")
    crawl_block = _block(data, "crawl")
    paths_block = _block(data, "paths")

    defaults = ApiCfg()
    api = ApiCfg(
        base_url=str(api_block.get("base_url") or defaults.base_url),
        referer=str(api_block.get("referer") or defaults.referer),
        user_agent=str(api_block.get("user_agent") or defaults.user_agent),
        timeout_s=_as_float(api_block.get("timeout_s"), defaults.timeout_s, "api.timeout_s"),
        max_attempts=_as_int(
            api_block.get("max_attempts"), defaults.max_attempts, "api.max_attempts"
        ),
        backoff_s=_as_float(api_block.get("backoff_s"), defaults.backoff_s, "api.backoff_s"),
        max_redirects=_as_int(
            api_block.get("max_redirects"), defaults.max_redirects, "api.max_redirects"
        ),
    )

    municipalities = [
        str(name).strip()
        for name in crawl_block.get("municipalities") or DEFAULT_MUNICIPALITIES
        if str(name).strip()
    ]
    crawl = CrawlCfg(
        request_delay_s=_as_float(
            crawl_block.get("request_delay_s"), 1.0, "crawl.request_delay_s"
        ),
        municipalities=municipalities,
    )
    paths = PathsCfg(
        input_path=str(paths_block.get("input_path") or "ChinaCitys.json"),
        data_dir=str(paths_block.get("data_dir") or "data"),
    )

    base_url = os.getenv("GEOBOUND_BASE_URL", "").strip()
    if base_url:
        api.base_url = base_url
    input_path = os.getenv("GEOBOUND_INPUT", "").strip()
    if input_path:
        paths.input_path = input_path
    data_dir = os.getenv("GEOBOUND_DATA_DIR", "").strip()
    if data_dir:
        paths.data_dir = data_dir
    api.max_attempts = getenv_number("GEOBOUND_MAX_ATTEMPTS", api.max_attempts, cast=int)
    crawl.request_delay_s = getenv_number(
        "GEOBOUND_REQUEST_DELAY_S", crawl.request_delay_s, cast=float
    )

    if api.max_attempts < 1:
        LOGGER.warning("max_attempts=%d is below 1; using 1", api.max_attempts)
        api.max_attempts = 1
    if api.max_redirects < 0:
        api.max_redirects = 0

    return GeoboundConfig(api=api, crawl=crawl, paths=paths, source=resolved.as_posix())
