"""
SQLite implementation of DatabaseEngine.

Threading
---------
A single sqlite3 connection is shared by every dispatch. It is opened with
``check_same_thread=False`` and every use is serialized by an RLock, which is
the engine's own concurrency control: the bridge itself never orders calls.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

import zstandard as zstd

from ..errors import DatabaseEngineError, DatabaseNotConnectedError
from .api import DatabaseEngine, Row

logger = logging.getLogger(__name__)

DUMP_ZSTD_SUFFIX = ".zst"


def _dict_row(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> Row:
    return {column[0]: value for column, value in zip(cursor.description, row)}


def _bind(parameter: Any) -> Sequence[Any] | Mapping[str, Any]:
    """
    Shape a caller-supplied parameter into sqlite3 bindings.

    None binds nothing, a mapping binds named placeholders, a list or tuple
    binds positional placeholders, and any other value is a single positional
    binding.
    """
    if parameter is None:
        return ()
    if isinstance(parameter, Mapping):
        return dict(parameter)
    if isinstance(parameter, (list, tuple)):
        return tuple(parameter)
    return (parameter,)


class SqliteDatabaseEngine(DatabaseEngine):
    """
    sqlite3-backed DatabaseEngine.

    Notes
    -----
    Write statements run inside ``with connection:`` so they commit on success
    and roll back on error. With autocommit enabled that block is a no-op.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._target: str | None = None

    @property
    def target(self) -> str | None:
        return self._target

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseNotConnectedError(
                "No database target is set; call establish-database-target first."
            )
        return self._conn

    def _cursor(self) -> sqlite3.Cursor:
        cur = self._connection().cursor()
        cur.row_factory = _dict_row
        return cur

    def set_db_path(self, path: str, is_uri: bool = False, autocommit: bool = False) -> bool:
        with self._lock:
            conn = sqlite3.connect(
                path,
                uri=is_uri,
                check_same_thread=False,
                isolation_level=None if autocommit else "",
            )
            if self._conn is not None:
                self._conn.close()
            self._conn = conn
            self._target = path
        logger.debug("Database target set: %s (uri=%s, autocommit=%s)", path, is_uri, autocommit)
        return True

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
            self._conn = None
            self._target = None

    def execute_query(self, query: str, parameter: Any = None) -> bool:
        with self._lock:
            conn = self._connection()
            with conn:
                conn.execute(query, _bind(parameter))
        return True

    def execute_many(self, query: str, parameter_sets: Sequence[Any]) -> bool:
        with self._lock:
            conn = self._connection()
            with conn:
                conn.executemany(query, [_bind(p) for p in parameter_sets])
        return True

    def execute_script(self, script_path: str) -> bool:
        script = Path(script_path).read_text(encoding="utf-8")
        with self._lock:
            conn = self._connection()
            with conn:
                conn.executescript(script)
        return True

    def fetch_one(self, query: str, parameter: Any = None) -> Row | None:
        with self._lock:
            return self._cursor().execute(query, _bind(parameter)).fetchone()

    def fetch_many(self, query: str, size: int, parameter: Any = None) -> list[Row]:
        # sqlite3 treats a size below 1 as "all rows"
        if size < 1:
            raise DatabaseEngineError(f"Row count must be at least 1, got {size}")
        with self._lock:
            return self._cursor().execute(query, _bind(parameter)).fetchmany(size)

    def fetch_all(self, query: str, parameter: Any = None) -> list[Row]:
        with self._lock:
            return self._cursor().execute(query, _bind(parameter)).fetchall()

    def load_extension(self, extension_path: str) -> bool:
        with self._lock:
            conn = self._connection()
            if not hasattr(conn, "enable_load_extension"):
                raise DatabaseEngineError("This Python build cannot load SQLite extensions.")
            conn.enable_load_extension(True)
            try:
                conn.load_extension(extension_path)
            finally:
                conn.enable_load_extension(False)
        return True

    def backup(self, target: str, pages: int, name: str, sleep_ms: float) -> bool:
        if sleep_ms < 0:
            raise DatabaseEngineError(f"Backup delay must not be negative: {sleep_ms}")
        destination = Path(target)
        destination.parent.mkdir(parents=True, exist_ok=True)

        def _progress(status: int, remaining: int, total: int) -> None:
            logger.debug("Backup progress: %d of %d pages remaining", remaining, total)

        target_conn = sqlite3.connect(destination)
        try:
            with self._lock:
                self._connection().backup(
                    target_conn,
                    pages=int(pages),
                    progress=_progress,
                    name=name or "main",
                    sleep=sleep_ms / 1000.0,
                )
        finally:
            target_conn.close()
        return True

    def iterdump(self, target: str, filter: str | None = None) -> bool:
        destination = Path(target)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            conn = self._connection()
            lines = conn.iterdump() if not filter else _filtered_dump(conn, filter)
            if destination.name.lower().endswith(DUMP_ZSTD_SUFFIX):
                _write_zst(destination, lines)
            else:
                with destination.open("w", encoding="utf-8", newline="\n") as handle:
                    for line in lines:
                        handle.write(line + "\n")
        return True


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _filtered_dump(conn: sqlite3.Connection, pattern: str) -> Iterator[str]:
    """
    Yield an SQL dump limited to schema objects whose name matches ``pattern``.

    The output has the same shape as ``Connection.iterdump``: one transaction
    with each matched table and its rows, followed by matching indexes,
    triggers and views. ``pattern`` is an SQL ``LIKE`` pattern.
    """
    cur = conn.cursor()
    cur.row_factory = None
    writable_schema = False
    sequence_lines: list[str] = []

    yield "BEGIN TRANSACTION;"
    tables = cur.execute(
        'SELECT "name", "sql" FROM "sqlite_master" '
        "WHERE \"sql\" NOT NULL AND \"type\" == 'table' AND \"name\" LIKE ? "
        'ORDER BY "name"',
        (pattern,),
    ).fetchall()
    for table_name, sql in tables:
        if table_name == "sqlite_sequence":
            rows = cur.execute('SELECT "name", "seq" FROM "sqlite_sequence"').fetchall()
            sequence_lines.append('DELETE FROM "sqlite_sequence";')
            for seq_name, seq in rows:
                escaped = str(seq_name).replace("'", "''")
                sequence_lines.append(f"INSERT INTO \"sqlite_sequence\" VALUES('{escaped}',{seq});")
            continue
        if table_name == "sqlite_stat1":
            yield 'ANALYZE "sqlite_master";'
        elif table_name.startswith("sqlite_"):
            continue
        elif sql.startswith("CREATE VIRTUAL TABLE"):
            if not writable_schema:
                writable_schema = True
                yield "PRAGMA writable_schema=ON;"
            escaped_name = table_name.replace("'", "''")
            escaped_sql = sql.replace("'", "''")
            yield (
                "INSERT INTO sqlite_master(type,name,tbl_name,rootpage,sql)"
                f"VALUES('table','{escaped_name}','{escaped_name}',0,'{escaped_sql}');"
            )
        else:
            yield f"{sql};"

        table_ident = _quote_ident(table_name)
        columns = [str(info[1]) for info in cur.execute(f"PRAGMA table_info({table_ident})").fetchall()]
        values = ",".join(f"'||quote({_quote_ident(col)})||'" for col in columns)
        literal_ident = table_ident.replace("'", "''")
        inserts = conn.execute(f"SELECT 'INSERT INTO {literal_ident} VALUES({values})' FROM {table_ident}")
        for (statement,) in inserts:
            yield f"{statement};"

    others = cur.execute(
        'SELECT "sql" FROM "sqlite_master" '
        "WHERE \"sql\" NOT NULL AND \"type\" IN ('index', 'trigger', 'view') AND \"name\" LIKE ?",
        (pattern,),
    ).fetchall()
    for (sql,) in others:
        yield f"{sql};"

    if writable_schema:
        yield "PRAGMA writable_schema=OFF;"
    yield from sequence_lines
    yield "COMMIT;"



def _write_zst(destination: Path, lines: Iterable[str]) -> None:
    with destination.open("wb") as raw:
        cctx = zstd.ZstdCompressor()
        with cctx.stream_writer(raw) as zst_stream:
            for line in lines:
                zst_stream.write((line + "\n").encode("utf-8"))


def read_dump(path: Path) -> str:
    """Return the text of a dump written by ``iterdump`` (plain or .zst)."""
    if path.name.lower().endswith(DUMP_ZSTD_SUFFIX):
        with path.open("rb") as raw:
            dctx = zstd.ZstdDecompressor()
            with dctx.stream_reader(raw) as reader:
                chunks: list[bytes] = []
                while True:
                    chunk = reader.read(65536)
                    if not chunk:
                        break
                    chunks.append(chunk)
        return b"".join(chunks).decode("utf-8")
    return path.read_text(encoding="utf-8")
