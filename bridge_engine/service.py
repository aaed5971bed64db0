"""
Bridge composition root.

Builds the runtime in dependency order: paths and settings, then the
invocation logger, then the registry bound to the database engine, then the
dispatch bridge. Registry configuration errors propagate from here and are
fatal at startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .clock import Clock
from .commands import build_command_registry
from .database.api import DatabaseEngine
from .database.sqlite_engine import SqliteDatabaseEngine
from .dispatch import DispatchBridge
from .invocation_log import InvocationLogger
from .paths_and_safety import BridgePaths, default_data_root, ensure_bridge_directories, resolve_bridge_paths
from .settings_store import BridgeSettings, load_bridge_settings


@dataclass(frozen=True, slots=True)
class BridgeRuntime:
    """Everything ``open_bridge`` assembled, for callers that need more than the bridge."""

    bridge: DispatchBridge
    engine: DatabaseEngine
    paths: BridgePaths
    settings: BridgeSettings

    def close(self) -> None:
        """Close the engine's database target."""
        self.engine.close()


def open_bridge(
    data_root: Path | None = None,
    *,
    engine: DatabaseEngine | None = None,
    clock: Clock | None = None,
    settings: BridgeSettings | None = None,
) -> BridgeRuntime:
    """
    Assemble a ready-to-use bridge.

    Parameters
    ----------
    data_root:
        Optional override for the data root.
    engine:
        Database engine collaborator. Defaults to a fresh SqliteDatabaseEngine.
    clock:
        Optional clock for audit timestamps.
    settings:
        Optional settings; loaded from ``<data_root>/settings.json`` if omitted.

    Returns
    -------
    BridgeRuntime
        The bridge together with its engine, paths and settings.
    """
    root = data_root or default_data_root()
    if settings is None:
        settings = load_bridge_settings(resolve_bridge_paths(root).settings_path)
    paths = resolve_bridge_paths(root, log_file_name=settings.log_file_name)
    ensure_bridge_directories(paths)

    invocation_log = InvocationLogger(
        paths.log_path, clock=clock, echo_to_console=settings.echo_to_console
    )
    db_engine: DatabaseEngine = engine if engine is not None else SqliteDatabaseEngine()
    registry = build_command_registry(db_engine, max_logged_chars=settings.max_logged_chars)
    return BridgeRuntime(
        bridge=DispatchBridge(registry, invocation_log),
        engine=db_engine,
        paths=paths,
        settings=settings,
    )
