"""
Persisted bridge settings.

Settings live in a small JSON file in the data root. A missing, unreadable, or
partially invalid file never blocks startup: every field that cannot be used
falls back to its default.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path

from .paths_and_safety import DEFAULT_LOG_FILE_NAME

DEFAULT_MAX_LOGGED_CHARS = 200


@dataclass(frozen=True, slots=True)
class BridgeSettings:
    """
    Bridge runtime settings.

    Attributes
    ----------
    log_file_name:
        File name of the invocation log under ``<data_root>/logs``.
    echo_to_console:
        If True, every audit line is also emitted on the operational logger.
    max_logged_chars:
        Statement text and paths longer than this are truncated in audit lines.
    default_backup_pages:
        Page-batch size the caller stub uses when the pages field is blank.
    default_backup_sleep_ms:
        Inter-batch delay the caller stub uses when the delay field is blank.
    """

    log_file_name: str = DEFAULT_LOG_FILE_NAME
    echo_to_console: bool = True
    max_logged_chars: int = DEFAULT_MAX_LOGGED_CHARS
    default_backup_pages: int = -1
    default_backup_sleep_ms: float = 250.0

    @staticmethod
    def defaults() -> "BridgeSettings":
        return BridgeSettings()


def load_bridge_settings(settings_path: Path) -> BridgeSettings:
    """
    Load settings from disk.

    Parameters
    ----------
    settings_path:
        Path to the JSON settings file.

    Returns
    -------
    BridgeSettings
        Loaded settings, or defaults if missing/unreadable.
    """
    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return BridgeSettings.defaults()
    if not isinstance(payload, dict):
        return BridgeSettings.defaults()

    settings = BridgeSettings.defaults()

    log_file_name = payload.get("log_file_name")
    if isinstance(log_file_name, str) and log_file_name.strip():
        settings = replace(settings, log_file_name=log_file_name.strip())

    echo = payload.get("echo_to_console")
    if isinstance(echo, bool):
        settings = replace(settings, echo_to_console=echo)

    max_chars = payload.get("max_logged_chars")
    if isinstance(max_chars, int) and not isinstance(max_chars, bool) and max_chars > 0:
        settings = replace(settings, max_logged_chars=max_chars)

    pages = payload.get("default_backup_pages")
    if isinstance(pages, int) and not isinstance(pages, bool):
        settings = replace(settings, default_backup_pages=pages)

    sleep_ms = payload.get("default_backup_sleep_ms")
    if isinstance(sleep_ms, (int, float)) and not isinstance(sleep_ms, bool) and sleep_ms >= 0:
        settings = replace(settings, default_backup_sleep_ms=float(sleep_ms))

    return settings


def save_bridge_settings(settings_path: Path, settings: BridgeSettings) -> None:
    """Write settings to disk as sorted, indented JSON."""
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "log_file_name": settings.log_file_name,
        "echo_to_console": settings.echo_to_console,
        "max_logged_chars": settings.max_logged_chars,
        "default_backup_pages": settings.default_backup_pages,
        "default_backup_sleep_ms": settings.default_backup_sleep_ms,
    }
    settings_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
