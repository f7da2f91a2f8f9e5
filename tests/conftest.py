from __future__ import annotations

from pathlib import Path

import pytest

from geobound.config import GeoboundConfig
from geobound.storage import DocumentStore

from ._stubs import BASE_URL


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "GEOBOUND_CONFIG_PATH",
        "GEOBOUND_BASE_URL",
        "GEOBOUND_INPUT",
        "GEOBOUND_DATA_DIR",
        "GEOBOUND_MAX_ATTEMPTS",
        "GEOBOUND_REQUEST_DELAY_S",
        "GEOBOUND_TEST_NO_SLEEP",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def config(tmp_path: Path) -> GeoboundConfig:
    cfg = GeoboundConfig()
    cfg.api.base_url = BASE_URL
    cfg.paths.data_dir = str(tmp_path / "data")
    return cfg


@pytest.fixture()
def store(config: GeoboundConfig) -> DocumentStore:
    return DocumentStore(config.paths.data_dir)
