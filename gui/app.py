"""
SQLBridge GUI app.

The window is the untrusted side: it reaches the database only through the
BridgeAdapter, which runs the caller stub and the dispatch bridge on a worker
thread.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication, QHBoxLayout, QLabel, QTabWidget, QVBoxLayout, QWidget

from gui.adapters.bridge_adapter import BridgeAdapter
from gui.tabs.audit_log_tab import AuditLogTab
from gui.tabs.commands_tab import CommandsTab


class AppWindow(QWidget):
    """
    Main window for the SQLBridge GUI.

    Responsibilities
    ----------------
    - Own the BridgeAdapter (and therefore the worker thread)
    - Host the Commands and Audit log tabs
    - Shut the worker down on close
    """

    def __init__(self, data_root: Path | None = None) -> None:
        super().__init__()
        self.setWindowTitle("SQLBridge")
        self.resize(900, 720)

        self.adapter = BridgeAdapter(data_root=data_root)

        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)

        header = QWidget()
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(8, 8, 8, 8)

        title = QLabel("SQLBridge")
        f = title.font()
        f.setPointSize(16)
        f.setBold(True)
        title.setFont(f)

        subtitle = QLabel("Every call is logged to the audit trail")
        subtitle.setStyleSheet("color: #666;")

        header_layout.addWidget(title)
        header_layout.addSpacing(10)
        header_layout.addWidget(subtitle)
        header_layout.addStretch(1)
        root.addWidget(header)

        tabs = QTabWidget()
        self.commands_tab = CommandsTab(self.adapter)
        tabs.addTab(self.commands_tab, "Commands")
        self.audit_tab = AuditLogTab(self.adapter.log_path)
        tabs.addTab(self.audit_tab, "Audit log")
        tabs.currentChanged.connect(lambda _index: self.audit_tab.refresh())
        root.addWidget(tabs, 1)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        try:
            self.adapter.shutdown()
        finally:
            super().closeEvent(event)


def main(data_root: Path | None = None) -> int:
    """
    Run the SQLBridge GUI application.

    Returns
    -------
    int
        Qt application exit code.
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    app = QApplication(sys.argv)
    w = AppWindow(data_root=data_root)
    w.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
