"""Qt adapter for the dispatch bridge.

The privileged side (bridge, registry, SQLite engine, invocation log) lives on
a worker QObject moved to a dedicated QThread. The GUI only ever sees the
CallerStub surface, and only through queued signals.

Threading model
--------------
- A single worker QObject lives on a dedicated QThread.
- The worker owns the BridgeRuntime and a CallerStub wired to it with a
  LocalTransport.
- Each request signal carries raw form text plus the id of the output panel
  that should display the answer.
"""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from bridge_engine.service import open_bridge
from gui.adapters.caller_stub import CallerStub, CallOutcome, LocalTransport


class BridgeWorker(QObject):
    """Worker that owns the bridge runtime and runs in a background thread."""

    output_ready = Signal(str, str, bool)  # panel, text, ok

    def __init__(self, data_root: Path | None) -> None:
        super().__init__()
        self._runtime = open_bridge(data_root)
        settings = self._runtime.settings
        self._stub = CallerStub(
            LocalTransport(self._runtime.bridge),
            default_backup_pages=settings.default_backup_pages,
            default_backup_sleep_ms=settings.default_backup_sleep_ms,
        )

    @property
    def log_path(self) -> Path:
        return self._runtime.paths.log_path

    def close(self) -> None:
        """Close the database target. Call only once the worker thread has stopped."""
        self._runtime.close()

    def _emit(self, panel: str, outcome: CallOutcome) -> None:
        self.output_ready.emit(panel, outcome.text, outcome.ok)

    @Slot(str, str, bool, bool)
    def set_database_path(self, panel: str, path: str, is_uri: bool, autocommit: bool) -> None:
        self._emit(panel, self._stub.set_database_path(path, is_uri, autocommit))

    @Slot(str, str, str)
    def execute_query(self, panel: str, query: str, values: str) -> None:
        self._emit(panel, self._stub.execute_query(query, values))

    @Slot(str, str, str)
    def execute_many(self, panel: str, query: str, values: str) -> None:
        self._emit(panel, self._stub.execute_many(query, values))

    @Slot(str, str)
    def execute_script(self, panel: str, script_path: str) -> None:
        self._emit(panel, self._stub.execute_script(script_path))

    @Slot(str, str, str)
    def fetch_one(self, panel: str, query: str, values: str) -> None:
        self._emit(panel, self._stub.fetch_one(query, values))

    @Slot(str, str, str, str)
    def fetch_many(self, panel: str, query: str, size: str, values: str) -> None:
        self._emit(panel, self._stub.fetch_many(query, size, values))

    @Slot(str, str, str)
    def fetch_all(self, panel: str, query: str, values: str) -> None:
        self._emit(panel, self._stub.fetch_all(query, values))

    @Slot(str, str)
    def load_extension(self, panel: str, extension_path: str) -> None:
        self._emit(panel, self._stub.load_extension(extension_path))

    @Slot(str, str, str, str, str)
    def backup(self, panel: str, target: str, pages: str, name: str, sleep_ms: str) -> None:
        self._emit(panel, self._stub.backup(target, pages, name, sleep_ms))

    @Slot(str, str, str)
    def iterdump(self, panel: str, target: str, dump_filter: str) -> None:
        self._emit(panel, self._stub.iterdump(target, dump_filter))


class BridgeAdapter(QObject):
    """Qt adapter that marshals caller-stub calls onto the worker thread."""

    # Requests (GUI emits these; wired as queued connections to worker slots)
    request_set_database_path = Signal(str, str, bool, bool)
    request_execute_query = Signal(str, str, str)
    request_execute_many = Signal(str, str, str)
    request_execute_script = Signal(str, str)
    request_fetch_one = Signal(str, str, str)
    request_fetch_many = Signal(str, str, str, str)
    request_fetch_all = Signal(str, str, str)
    request_load_extension = Signal(str, str)
    request_backup = Signal(str, str, str, str, str)
    request_iterdump = Signal(str, str, str)

    # Results (worker emits; adapter forwards)
    output_ready = Signal(str, str, bool)  # panel, text, ok

    def __init__(self, data_root: Path | None = None) -> None:
        super().__init__()

        self._thread = QThread()
        self._worker = BridgeWorker(data_root=data_root)
        self._worker.moveToThread(self._thread)

        queued = Qt.ConnectionType.QueuedConnection
        self.request_set_database_path.connect(self._worker.set_database_path, type=queued)
        self.request_execute_query.connect(self._worker.execute_query, type=queued)
        self.request_execute_many.connect(self._worker.execute_many, type=queued)
        self.request_execute_script.connect(self._worker.execute_script, type=queued)
        self.request_fetch_one.connect(self._worker.fetch_one, type=queued)
        self.request_fetch_many.connect(self._worker.fetch_many, type=queued)
        self.request_fetch_all.connect(self._worker.fetch_all, type=queued)
        self.request_load_extension.connect(self._worker.load_extension, type=queued)
        self.request_backup.connect(self._worker.backup, type=queued)
        self.request_iterdump.connect(self._worker.iterdump, type=queued)

        self._worker.output_ready.connect(self.output_ready)

        self._thread.start()

    @property
    def log_path(self) -> Path:
        return self._worker.log_path

    def shutdown(self) -> None:
        """Stop the worker thread, then close the database target."""
        self._thread.quit()
        self._thread.wait()
        self._worker.close()
