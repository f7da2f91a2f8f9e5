from __future__ import annotations

import json
from pathlib import Path

import pytest

from geobound import cli
from geobound.http import Document, Failure

from ._stubs import BASE_URL, feature, url_for

HIERARCHY = [
    {
        "code": "420000",
        "province": "湖北省",
        "citys": [
            {"code": "420100000000", "city": "武汉市"},
            {"code": "420200000000", "city": "黄石市"},
        ],
    }
]


def _write_input(tmp_path: Path, payload) -> Path:
    path = tmp_path / "ChinaCitys.json"
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


def _argv(tmp_path: Path, input_path: Path, *extra: str):
    return [
        "--input",
        str(input_path),
        "--data-dir",
        str(tmp_path / "data"),
        "--base-url",
        BASE_URL,
        "--request-delay",
        "0",
        *extra,
    ]


@pytest.fixture()
def fake_fetch(monkeypatch: pytest.MonkeyPatch):
    responses = {url_for("420000"): feature("420000"), url_for("420100"): feature("420100")}

    def _fetch(url, *, description="", **kwargs):
        if url in responses:
            return Document(payload=responses[url], url=url)
        return Failure(reason="HTTP 404: Not Found", url=url, attempts=3, kind="http_error")

    monkeypatch.setattr("geobound.walker.fetch_outcome", _fetch)
    return responses


def test_invalid_input_aborts_before_any_fetch(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _unexpected(*args, **kwargs):
        raise AssertionError("walker must not run")

    monkeypatch.setattr(cli, "HierarchyWalker", _unexpected)
    bad = tmp_path / "ChinaCitys.json"
    bad.write_text("{not json", encoding="utf-8")

    assert cli.main(_argv(tmp_path, bad)) == cli.EXIT_FATAL
    assert not (tmp_path / "data").exists()


def test_missing_input_is_fatal(tmp_path: Path) -> None:
    assert cli.main(_argv(tmp_path, tmp_path / "absent.json")) == cli.EXIT_FATAL


def test_missing_config_is_fatal(tmp_path: Path) -> None:
    input_path = _write_input(tmp_path, HIERARCHY)

    code = cli.main(_argv(tmp_path, input_path, "--config", str(tmp_path / "nope.yml")))

    assert code == cli.EXIT_FATAL


def test_completed_run_exits_zero_despite_failures(tmp_path: Path, fake_fetch) -> None:
    input_path = _write_input(tmp_path, HIERARCHY)

    assert cli.main(_argv(tmp_path, input_path)) == cli.EXIT_OK

    data = tmp_path / "data"
    assert (data / "420000" / "geo.json").exists()
    assert (data / "420000" / "420100" / "geo.json").exists()
    summary = json.loads((data / "crawl_summary.json").read_text(encoding="utf-8"))
    assert summary["stats"]["cities"] == {"total": 2, "success": 1, "failed": 1}
    assert len(json.loads((data / "error_log.json").read_text(encoding="utf-8"))) == 1


def test_fail_on_errors_flag(tmp_path: Path, fake_fetch) -> None:
    input_path = _write_input(tmp_path, HIERARCHY)

    assert cli.main(_argv(tmp_path, input_path, "--fail-on-errors")) == cli.EXIT_FAILURES


def test_fail_on_errors_clean_run(tmp_path: Path, fake_fetch) -> None:
    fake_fetch[url_for("420200")] = feature("420200")
    input_path = _write_input(tmp_path, HIERARCHY)

    assert cli.main(_argv(tmp_path, input_path, "--fail-on-errors")) == cli.EXIT_OK
    assert not (tmp_path / "data" / "error_log.json").exists()
