from __future__ import annotations

import pytest

from videogame_notes.cli.app import resolve_log_level
from videogame_notes.shared.config import get_settings


@pytest.fixture(autouse=True)
def _cleanup_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_log_level_comes_from_settings(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("IGDB__CLIENT_ID", "cid")
    monkeypatch.setenv("IGDB__CLIENT_SECRET", "secret")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    assert resolve_log_level() == "DEBUG"


def test_log_level_defaults_when_settings_incomplete(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("IGDB__CLIENT_ID", raising=False)
    monkeypatch.delenv("IGDB__CLIENT_SECRET", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    assert resolve_log_level() == "INFO"
