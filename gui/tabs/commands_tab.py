"""
Commands tab.

Purpose
-------
- One form per bridge command (connect, execute, fetch, script, extension,
  backup, dump).
- Each button emits a request on the BridgeAdapter; nothing here touches the
  database or the invocation log directly.
- Answers arrive on ``output_ready`` and are shown as ``Output: <text>`` next
  to the form that asked.
"""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from gui.adapters.bridge_adapter import BridgeAdapter


def _line(placeholder: str) -> QLineEdit:
    edit = QLineEdit()
    edit.setPlaceholderText(placeholder)
    return edit


class CommandsTab(QWidget):
    """
    Forms for every registered command.

    Parameters
    ----------
    adapter:
        The bridge adapter owned by the main window.
    """

    def __init__(self, adapter: BridgeAdapter) -> None:
        super().__init__()
        self._adapter = adapter
        self._outputs: dict[str, QLabel] = {}
        self._adapter.output_ready.connect(self._on_output)

        body = QWidget()
        forms = QVBoxLayout(body)
        forms.setContentsMargins(12, 12, 12, 12)

        # Connection
        self.db_path_edit = _line("Database path or file: URI")
        self.is_uri_check = QCheckBox("URI")
        self.autocommit_check = QCheckBox("Autocommit")
        browse = QPushButton("Browse…")
        browse.clicked.connect(self._browse_db)
        row = QHBoxLayout()
        row.addWidget(self.db_path_edit, 1)
        row.addWidget(browse)
        row.addWidget(self.is_uri_check)
        row.addWidget(self.autocommit_check)
        forms.addWidget(
            self._group(
                "Connect",
                "connect",
                [row],
                lambda: self._adapter.request_set_database_path.emit(
                    "connect",
                    self.db_path_edit.text(),
                    self.is_uri_check.isChecked(),
                    self.autocommit_check.isChecked(),
                ),
            )
        )

        # Single statement
        self.query_edit = _line("SQL statement")
        self.query_value_edit = _line('Value, e.g. 1 or ["a", 2]')
        forms.addWidget(
            self._group(
                "Execute statement",
                "execute",
                [self._fields(("Statement:", self.query_edit), ("Value:", self.query_value_edit))],
                lambda: self._adapter.request_execute_query.emit(
                    "execute", self.query_edit.text(), self.query_value_edit.text()
                ),
            )
        )

        # Many parameter sets
        self.many_query_edit = _line("SQL statement with placeholders")
        self.many_values_edit = _line('Parameter sets, e.g. [[1, "a"], [2, "b"]]')
        forms.addWidget(
            self._group(
                "Execute many",
                "execute_many",
                [self._fields(("Statement:", self.many_query_edit), ("Values:", self.many_values_edit))],
                lambda: self._adapter.request_execute_many.emit(
                    "execute_many", self.many_query_edit.text(), self.many_values_edit.text()
                ),
            )
        )

        # Script
        self.script_edit = _line("Path to .sql script")
        forms.addWidget(
            self._group(
                "Execute script",
                "script",
                [self._fields(("Script:", self.script_edit))],
                lambda: self._adapter.request_execute_script.emit("script", self.script_edit.text()),
            )
        )

        # Fetch
        self.fetch_query_edit = _line("SELECT statement")
        self.fetch_value_edit = _line("Value")
        self.fetch_size_edit = _line("Rows (fetch many)")
        fetch_buttons = QHBoxLayout()
        for label, handler in (
            ("Fetch one", self._fetch_one),
            ("Fetch many", self._fetch_many),
            ("Fetch all", self._fetch_all),
        ):
            button = QPushButton(label)
            button.clicked.connect(handler)
            fetch_buttons.addWidget(button)
        fetch_buttons.addStretch(1)
        forms.addWidget(
            self._group(
                "Fetch",
                "fetch",
                [
                    self._fields(
                        ("Statement:", self.fetch_query_edit),
                        ("Value:", self.fetch_value_edit),
                        ("Size:", self.fetch_size_edit),
                    ),
                    fetch_buttons,
                ],
                None,
            )
        )

        # Extension
        self.extension_edit = _line("Path to native extension")
        forms.addWidget(
            self._group(
                "Load extension",
                "extension",
                [self._fields(("Extension:", self.extension_edit))],
                lambda: self._adapter.request_load_extension.emit(
                    "extension", self.extension_edit.text()
                ),
            )
        )

        # Backup
        self.backup_target_edit = _line("Backup database file")
        self.backup_pages_edit = _line("Pages per step (blank = default)")
        self.backup_name_edit = _line("Source name (blank = main)")
        self.backup_sleep_edit = _line("Delay between steps in ms (blank = default)")
        forms.addWidget(
            self._group(
                "Backup",
                "backup",
                [
                    self._fields(
                        ("Target:", self.backup_target_edit),
                        ("Pages:", self.backup_pages_edit),
                        ("Name:", self.backup_name_edit),
                        ("Sleep:", self.backup_sleep_edit),
                    )
                ],
                lambda: self._adapter.request_backup.emit(
                    "backup",
                    self.backup_target_edit.text(),
                    self.backup_pages_edit.text(),
                    self.backup_name_edit.text(),
                    self.backup_sleep_edit.text(),
                ),
            )
        )

        # Dump
        self.dump_target_edit = _line("Dump file (.sql or .sql.zst)")
        self.dump_filter_edit = _line("Table filter, LIKE pattern (optional)")
        forms.addWidget(
            self._group(
                "Dump",
                "dump",
                [self._fields(("Target:", self.dump_target_edit), ("Filter:", self.dump_filter_edit))],
                lambda: self._adapter.request_iterdump.emit(
                    "dump", self.dump_target_edit.text(), self.dump_filter_edit.text()
                ),
            )
        )

        forms.addStretch(1)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(body)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(scroll)

    def _fields(self, *pairs: tuple[str, QLineEdit]) -> QGridLayout:
        grid = QGridLayout()
        for row, (label, edit) in enumerate(pairs):
            grid.addWidget(QLabel(label), row, 0)
            grid.addWidget(edit, row, 1)
        return grid

    def _group(self, title: str, panel: str, rows: list, on_run) -> QGroupBox:
        box = QGroupBox(title)
        box_layout = QVBoxLayout(box)
        for row in rows:
            box_layout.addLayout(row)

        footer = QHBoxLayout()
        if on_run is not None:
            run = QPushButton("Run")
            run.clicked.connect(on_run)
            footer.addWidget(run)
        output = QLabel("Output:")
        output.setWordWrap(True)
        output.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        footer.addWidget(output, 1)
        box_layout.addLayout(footer)

        self._outputs[panel] = output
        return box

    def _browse_db(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Select database file", self.db_path_edit.text())
        if path:
            self.db_path_edit.setText(path)

    def _fetch_one(self) -> None:
        self._adapter.request_fetch_one.emit(
            "fetch", self.fetch_query_edit.text(), self.fetch_value_edit.text()
        )

    def _fetch_many(self) -> None:
        self._adapter.request_fetch_many.emit(
            "fetch",
            self.fetch_query_edit.text(),
            self.fetch_size_edit.text(),
            self.fetch_value_edit.text(),
        )

    def _fetch_all(self) -> None:
        self._adapter.request_fetch_all.emit(
            "fetch", self.fetch_query_edit.text(), self.fetch_value_edit.text()
        )

    def _on_output(self, panel: str, text: str, ok: bool) -> None:
        label = self._outputs.get(panel)
        if label is None:
            return
        label.setStyleSheet("" if ok else "color: #b00020;")
        label.setText(f"Output: {text}")
