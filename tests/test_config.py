import os

import pytest

from landb.config import (
    DEFAULT_API_URL,
    Settings,
    detect_read_only,
    get_settings,
    reset_settings_cache,
)
from landb.errors import ConfigError
from landb.islands import (
    DEFAULT_ISLANDS,
    GHOST,
    MAIN,
    WIZARD,
    canonicalize_island,
    island_name,
    parse_island_list,
)


def test_defaults_without_env():
    s = get_settings()
    assert s == Settings()
    assert s.db_path is None
    assert s.read_only is False
    assert s.fetch_interval_s == 60
    assert list(s.islands) == DEFAULT_ISLANDS
    assert s.primary_island == MAIN
    assert s.api_url == DEFAULT_API_URL


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LANDB_PATH", str(tmp_path / "lands.sqlite"))
    monkeypatch.setenv("LANDB_FETCH_INTERVAL_S", "5")
    monkeypatch.setenv("LANDB_ISLANDS", "wizard, Ghost ,main")
    monkeypatch.setenv("LANDB_HTTP_USER_AGENT", "landb/1")
    reset_settings_cache()
    s = get_settings()
    assert s.db_path == str(tmp_path / "lands.sqlite")
    assert s.read_only is False
    assert s.fetch_interval_s == 5
    assert s.islands == (WIZARD, GHOST, MAIN)
    assert s.primary_island == WIZARD
    assert s.user_agent == "landb/1"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("LANDB_FETCH_INTERVAL_S", "soon")
    monkeypatch.setenv("LANDB_HTTP_TIMEOUT_S", "-3")
    s = Settings.from_env()
    assert s.fetch_interval_s == 60
    assert s.http_timeout_s == 30


def test_read_only_flag_needs_a_path(monkeypatch, tmp_path):
    monkeypatch.setenv("LANDB_READ_ONLY", "yes")
    assert Settings.from_env().read_only is False
    monkeypatch.setenv("LANDB_PATH", str(tmp_path / "x.sqlite"))
    assert Settings.from_env().read_only is True


@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root can write anywhere")
def test_detect_read_only_on_unwritable_file(tmp_path):
    path = tmp_path / "lands.sqlite"
    path.write_bytes(b"")
    path.chmod(0o444)
    try:
        assert detect_read_only(str(path)) is True
    finally:
        path.chmod(0o644)


def test_detect_read_only_writable_locations(tmp_path):
    assert detect_read_only(None) is False
    assert detect_read_only(":memory:") is False
    assert detect_read_only(str(tmp_path / "new.sqlite")) is False
    assert detect_read_only(str(tmp_path / "missing-dir" / "new.sqlite")) is False


def test_unknown_island_is_config_error(monkeypatch):
    monkeypatch.setenv("LANDB_ISLANDS", "main,atlantis")
    with pytest.raises(ConfigError):
        Settings.from_env()


def test_island_registry():
    assert canonicalize_island("Wizard") == WIZARD
    assert canonicalize_island(" 4 ") == GHOST
    assert canonicalize_island(7) == 7
    assert island_name(GHOST) == "ghost"
    assert island_name(7) == "island-7"
    assert parse_island_list("main,0,main") == [MAIN]
    assert parse_island_list("") == DEFAULT_ISLANDS
    assert parse_island_list([2, "ghost"]) == [WIZARD, GHOST]
    with pytest.raises(ConfigError):
        canonicalize_island(-1)
    with pytest.raises(ConfigError):
        canonicalize_island(True)
