"""
Filesystem path policy for SQLBridge runtime data.

This module is the single choke point for deciding where the bridge writes its
own files. Runtime data lives under the host application's private data
directory (the "data root"):

- ``<data_root>/settings.json``: persisted bridge settings.
- ``<data_root>/logs/<log_file_name>``: the append-only invocation log.

Paths supplied by callers as command arguments (database files, scripts,
backup and dump targets) are owned by the database engine collaborator and are
not policed here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

APP_DIR_NAME = "sqlbridge"
DEFAULT_LOG_FILE_NAME = "db_access.log"


@dataclass(frozen=True, slots=True)
class BridgePaths:
    """
    Concrete resolved paths for the bridge runtime.

    Attributes
    ----------
    data_root:
        Root directory for all SQLBridge runtime data.
    logs_root:
        Directory holding the invocation log.
    log_path:
        The append-only invocation log file.
    settings_path:
        JSON settings file.
    """

    data_root: Path
    logs_root: Path
    log_path: Path
    settings_path: Path


class SafetyViolationError(RuntimeError):
    """Raised when a runtime path is blocked by policy."""


def default_data_root() -> Path:
    """
    Resolve the default SQLBridge data root.

    Preference order:
    1) %SQLBRIDGE_DATA_ROOT% (used as-is)
    2) %LOCALAPPDATA%/sqlbridge
    3) %APPDATA%/sqlbridge
    4) $XDG_DATA_HOME/sqlbridge
    5) ~/.local/share/sqlbridge
    """
    explicit = os.environ.get("SQLBRIDGE_DATA_ROOT")
    if explicit:
        return Path(explicit)

    for var in ("LOCALAPPDATA", "APPDATA", "XDG_DATA_HOME"):
        value = os.environ.get(var)
        if value:
            return Path(value) / APP_DIR_NAME

    return Path.home() / ".local" / "share" / APP_DIR_NAME


def resolve_bridge_paths(
    data_root: Path | None = None,
    log_file_name: str = DEFAULT_LOG_FILE_NAME,
) -> BridgePaths:
    """
    Resolve all runtime paths under a data root.

    Parameters
    ----------
    data_root:
        Optional override for the data root.
    log_file_name:
        File name of the invocation log. Must be a simple file name.

    Returns
    -------
    BridgePaths
        Resolved paths. Nothing is created on disk.

    Raises
    ------
    SafetyViolationError
        If log_file_name is empty or would escape the logs directory.
    """
    name = log_file_name.strip()
    if not name or name in {".", ".."}:
        raise SafetyViolationError("Log file name must be a non-empty simple file name.")
    if any(ch in name for ch in r'\/:*?"<>|'):
        raise SafetyViolationError(f"Log file name contains invalid characters: {name!r}")

    root = (data_root or default_data_root()).expanduser().resolve()
    logs_root = (root / "logs").resolve()
    log_path = (logs_root / name).resolve()

    _assert_within(logs_root, log_path, purpose="invocation log")
    return BridgePaths(
        data_root=root,
        logs_root=logs_root,
        log_path=log_path,
        settings_path=root / "settings.json",
    )


def ensure_bridge_directories(paths: BridgePaths) -> None:
    """Create the runtime directories if missing. Performs no deletion."""
    for directory in (paths.data_root, paths.logs_root):
        directory.mkdir(parents=True, exist_ok=True)


def bridge_paths_as_text(paths: BridgePaths) -> str:
    """Render BridgePaths as ``key: value`` lines."""
    return "\n".join(
        [
            f"data_root: {paths.data_root}",
            f"logs_root: {paths.logs_root}",
            f"log_path: {paths.log_path}",
            f"settings_path: {paths.settings_path}",
        ]
    )


def _assert_within(base: Path, candidate: Path, purpose: str) -> None:
    """Ensure candidate is within base after resolution."""
    try:
        candidate.relative_to(base)
    except ValueError as exc:
        raise SafetyViolationError(
            f"Unsafe path for {purpose}: {candidate} is not within {base}"
        ) from exc
