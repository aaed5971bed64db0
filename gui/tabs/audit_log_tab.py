"""
Audit log tab.

Read-only view of the invocation log file. The tab reads the file directly on
refresh; it never writes to it.
"""

from __future__ import annotations

from pathlib import Path

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QHBoxLayout, QLabel, QPlainTextEdit, QPushButton, QVBoxLayout, QWidget


def _mono() -> QFont:
    f = QFont("Consolas")
    f.setStyleHint(QFont.Monospace)
    return f


class AuditLogTab(QWidget):
    """Shows the tail of the invocation log."""

    MAX_LINES = 500

    def __init__(self, log_path: Path) -> None:
        super().__init__()
        self._log_path = log_path

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        header = QHBoxLayout()
        header.addWidget(QLabel(f"Log file: {log_path}"), 1)
        refresh = QPushButton("Refresh")
        refresh.clicked.connect(self.refresh)
        header.addWidget(refresh)
        layout.addLayout(header)

        self.view = QPlainTextEdit()
        self.view.setReadOnly(True)
        self.view.setFont(_mono())
        layout.addWidget(self.view, 1)

        self.refresh()

    def refresh(self) -> None:
        try:
            lines = self._log_path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            self.view.setPlainText("No invocations recorded yet.")
            return
        except OSError as exc:
            self.view.setPlainText(f"Could not read log: {exc}")
            return
        self.view.setPlainText("\n".join(lines[-self.MAX_LINES :]))
        self.view.verticalScrollBar().setValue(self.view.verticalScrollBar().maximum())
