"""
DatabaseEngine public API.

This module defines the capability the bridge forwards commands to. The bridge
does not know about SQLite connections, cursors or transactions; it speaks only
through this interface. Tests bind stub engines implementing the same methods.

Notes
-----
- ``parameter`` values are a scalar, a sequence of positional values, a mapping
  of named values, or None.
- Rows are returned as plain ``dict`` objects so they serialize to JSON as-is.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

Row = dict[str, Any]


class DatabaseEngine(Protocol):
    """Database operations reachable through the bridge."""

    def set_db_path(self, path: str, is_uri: bool = False, autocommit: bool = False) -> bool:
        """
        Open (or re-open) the database target.

        Parameters
        ----------
        path:
            File path, ``:memory:``, or a ``file:`` URI when is_uri is True.
        is_uri:
            Interpret path as an SQLite URI.
        autocommit:
            If True, statements are not wrapped in implicit transactions.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release the database target; a no-op if none is open."""
        raise NotImplementedError

    def execute_query(self, query: str, parameter: Any = None) -> bool:
        """Execute a single statement and commit."""
        raise NotImplementedError

    def execute_many(self, query: str, parameter_sets: Sequence[Any]) -> bool:
        """Execute one statement once per parameter set and commit."""
        raise NotImplementedError

    def execute_script(self, script_path: str) -> bool:
        """Read a multi-statement SQL script from disk and execute it."""
        raise NotImplementedError

    def fetch_one(self, query: str, parameter: Any = None) -> Row | None:
        """Return the first row of a query, or None."""
        raise NotImplementedError

    def fetch_many(self, query: str, size: int, parameter: Any = None) -> list[Row]:
        """Return at most size rows of a query."""
        raise NotImplementedError

    def fetch_all(self, query: str, parameter: Any = None) -> list[Row]:
        """Return every row of a query."""
        raise NotImplementedError

    def load_extension(self, extension_path: str) -> bool:
        """Load a native SQLite extension into the open connection."""
        raise NotImplementedError

    def backup(self, target: str, pages: int, name: str, sleep_ms: float) -> bool:
        """
        Copy a database of the open connection into target.

        Parameters
        ----------
        target:
            Destination database file.
        pages:
            Pages copied per step; zero or negative copies everything at once.
        name:
            Source database name (``main``, ``temp`` or an attached name).
        sleep_ms:
            Delay between steps in milliseconds.
        """
        raise NotImplementedError

    def iterdump(self, target: str, filter: str | None = None) -> bool:
        """
        Write an SQL text dump of schema and data to target.

        Parameters
        ----------
        target:
            Destination file; a ``.zst`` suffix selects zstandard compression.
        filter:
            Optional SQL ``LIKE`` pattern; only schema objects whose name
            matches are dumped.
        """
        raise NotImplementedError
