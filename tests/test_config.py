from __future__ import annotations

import logging
from pathlib import Path

import pytest

from geobound import config as config_mod


def test_packaged_defaults() -> None:
    cfg = config_mod.load()

    assert cfg.api.base_url == "https://geo.datav.aliyun.com/areas_v3/bound"
    assert cfg.api.max_attempts == 3
    assert cfg.api.backoff_s == 2.0
    assert cfg.api.timeout_s == 30.0
    assert cfg.api.max_redirects == 5
    assert cfg.crawl.request_delay_s == 1.0
    assert set(cfg.crawl.municipalities) == {"北京市", "天津市", "上海市", "重庆市"}
    assert cfg.paths.input_path == "ChinaCitys.json"
    assert cfg.source == config_mod.DEFAULT_PATH.as_posix()


def test_custom_yaml_and_fallbacks(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "custom.yml"
    path.write_text(
        "api:\n"
        "  base_url: https://mirror.example.test/bound/\n"
        "  max_attempts: lots\n"
        "crawl:\n"
        "  request_delay_s: 0.25\n"
        "paths:\n"
        "  data_dir: out\n",
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="geobound.config"):
        cfg = config_mod.load(path)

    assert cfg.api.base_url == "https://mirror.example.test/bound/"
    assert cfg.api.url_for("420100") == "https://mirror.example.test/bound/420100_full.json"
    assert cfg.api.max_attempts == 3
    assert "api.max_attempts" in caplog.text
    assert cfg.crawl.request_delay_s == 0.25
    assert cfg.paths.data_dir == "out"


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "env.yml"
    path.write_text("api:\n  max_attempts: 2\n", encoding="utf-8")
    monkeypatch.setenv("GEOBOUND_CONFIG_PATH", str(path))
    monkeypatch.setenv("GEOBOUND_BASE_URL", "http://localhost:9000")
    monkeypatch.setenv("GEOBOUND_DATA_DIR", str(tmp_path / "d"))
    monkeypatch.setenv("GEOBOUND_REQUEST_DELAY_S", "0")

    cfg = config_mod.load()

    assert cfg.source == path.resolve().as_posix()
    assert cfg.api.max_attempts == 2
    assert cfg.api.base_url == "http://localhost:9000"
    assert cfg.paths.data_dir == str(tmp_path / "d")
    assert cfg.crawl.request_delay_s == 0.0


def test_attempts_floor(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GEOBOUND_MAX_ATTEMPTS", "0")

    assert config_mod.load().api.max_attempts == 1


def test_invalid_yaml_raises_value_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.yml"
    path.write_text("api: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError):
        config_mod.load(path)
