from __future__ import annotations

from pathlib import Path

import pytest

from config import DEFAULT_SUBMIT_TIMEOUT_S, JsonConfigStore


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_analyzer_url() == ""
    assert store.get_submit_timeout_s() == DEFAULT_SUBMIT_TIMEOUT_S

    store.set_analyzer_url("  http://localhost:8000/analyze ")
    store.set_submit_timeout_s(15)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_analyzer_url() == "http://localhost:8000/analyze"
    assert reloaded.get_submit_timeout_s() == 15.0


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_analyzer_url() == ""
    assert store.get_submit_timeout_s() == DEFAULT_SUBMIT_TIMEOUT_S


def test_config_bad_timeout_value_falls_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('{"submit_timeout_s": "soon"}', encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_submit_timeout_s() == DEFAULT_SUBMIT_TIMEOUT_S


def test_config_rejects_non_positive_timeout(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    with pytest.raises(ValueError):
        store.set_submit_timeout_s(0)
