from __future__ import annotations

import json
from pathlib import Path

import pytest

from bridge_engine.paths_and_safety import (
    SafetyViolationError,
    default_data_root,
    ensure_bridge_directories,
    resolve_bridge_paths,
)
from bridge_engine.settings_store import (
    BridgeSettings,
    load_bridge_settings,
    save_bridge_settings,
)


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("SQLBRIDGE_DATA_ROOT", "LOCALAPPDATA", "APPDATA", "XDG_DATA_HOME"):
        monkeypatch.delenv(var, raising=False)


def test_explicit_data_root_env_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SQLBRIDGE_DATA_ROOT", str(tmp_path / "explicit"))
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path / "Local"))
    assert default_data_root() == tmp_path / "explicit"


def test_default_data_root_prefers_local_appdata(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path / "Local"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    assert default_data_root() == tmp_path / "Local" / "sqlbridge"


def test_default_data_root_falls_back_to_xdg_then_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    assert default_data_root() == tmp_path / "xdg" / "sqlbridge"

    monkeypatch.delenv("XDG_DATA_HOME")
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    assert default_data_root() == tmp_path / "home" / ".local" / "share" / "sqlbridge"


def test_resolve_and_create_paths(tmp_path: Path) -> None:
    paths = resolve_bridge_paths(tmp_path, log_file_name="audit.log")
    ensure_bridge_directories(paths)

    assert paths.logs_root.is_dir()
    assert paths.log_path == paths.logs_root / "audit.log"
    assert paths.settings_path == paths.data_root / "settings.json"


@pytest.mark.parametrize("name", ["", "..", "../escape.log", "a/b.log", "c:x.log"])
def test_unsafe_log_file_names_are_rejected(tmp_path: Path, name: str) -> None:
    with pytest.raises(SafetyViolationError):
        resolve_bridge_paths(tmp_path, log_file_name=name)


def test_settings_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    settings = BridgeSettings(
        log_file_name="audit.log",
        echo_to_console=False,
        max_logged_chars=80,
        default_backup_pages=16,
        default_backup_sleep_ms=10.0,
    )
    save_bridge_settings(path, settings)
    assert load_bridge_settings(path) == settings


def test_missing_or_corrupt_settings_fall_back_to_defaults(tmp_path: Path) -> None:
    assert load_bridge_settings(tmp_path / "absent.json") == BridgeSettings.defaults()

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert load_bridge_settings(corrupt) == BridgeSettings.defaults()


def test_invalid_fields_are_replaced_individually(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"max_logged_chars": -3, "echo_to_console": "yes", "default_backup_pages": 4}),
        encoding="utf-8",
    )
    loaded = load_bridge_settings(path)
    assert loaded.max_logged_chars == BridgeSettings.defaults().max_logged_chars
    assert loaded.echo_to_console is True
    assert loaded.default_backup_pages == 4
