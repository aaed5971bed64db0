"""
The command catalog.

This module lists every operation the untrusted side may request, binds each
one to the injected DatabaseEngine, and defines how each one is described in
the invocation log.

Audit description policy
------------------------
- Statement text and paths are collapsed to a single line and truncated to
  ``max_logged_chars`` with a ``...(+N chars)`` suffix.
- Bound parameter values are never logged. Batch statements log only the
  number of parameter sets.
"""

from __future__ import annotations

from typing import Any, Sequence

from .database.api import DatabaseEngine
from .registry import CommandRegistry, CommandSpec, Describer, Parameter
from .settings_store import DEFAULT_MAX_LOGGED_CHARS

ESTABLISH_DATABASE_TARGET = "establish-database-target"
EXECUTE_SINGLE_STATEMENT = "execute-single-statement"
EXECUTE_MANY = "execute-statement-for-each-of-many-parameter-sets"
EXECUTE_SCRIPT_FROM_PATH = "execute-script-from-path"
FETCH_ONE_ROW = "fetch-one-row"
FETCH_MANY_ROWS = "fetch-many-rows"
FETCH_ALL_ROWS = "fetch-all-rows"
LOAD_NATIVE_EXTENSION = "load-native-extension"
PERFORM_BACKUP = "perform-backup"
STREAM_DUMP = "stream-schema-and-data-dump"

COMMAND_NAMES: tuple[str, ...] = (
    ESTABLISH_DATABASE_TARGET,
    EXECUTE_SINGLE_STATEMENT,
    EXECUTE_MANY,
    EXECUTE_SCRIPT_FROM_PATH,
    FETCH_ONE_ROW,
    FETCH_MANY_ROWS,
    FETCH_ALL_ROWS,
    LOAD_NATIVE_EXTENSION,
    PERFORM_BACKUP,
    STREAM_DUMP,
)

_TEXT = (str,)
_FLAG = (bool,)
_INT = (int,)
_NUMBER = (int, float)
_LIST = (list, tuple)


def summarize_text(text: Any, limit: int = DEFAULT_MAX_LOGGED_CHARS) -> str:
    """
    Collapse text to one line and truncate it deterministically.

    Parameters
    ----------
    text:
        Value to summarize; non-strings are converted with ``str``.
    limit:
        Maximum number of characters kept.

    Returns
    -------
    str
        The summarized text.
    """
    flat = " ".join(str(text).split())
    if len(flat) <= limit:
        return flat
    return f"{flat[:limit]}...(+{len(flat) - limit} chars)"


def _arg(args: Sequence[Any], index: int) -> Any:
    return args[index] if index < len(args) else None


def _describe_first(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        return summarize_text(_arg(args, 0), limit)

    return describe


def _describe_target(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        flags = [flag for flag, on in (("uri", _arg(args, 1)), ("autocommit", _arg(args, 2))) if on]
        text = summarize_text(_arg(args, 0), limit)
        return f"{text} ({', '.join(flags)})" if flags else text

    return describe


def _describe_many(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        sets = _arg(args, 1)
        count = len(sets) if isinstance(sets, (list, tuple)) else 0
        return f"{summarize_text(_arg(args, 0), limit)} ({count} parameter sets)"

    return describe


def _describe_fetch_many(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        return f"{summarize_text(_arg(args, 0), limit)} (max {_arg(args, 1)} rows)"

    return describe


def _describe_backup(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        name = _arg(args, 2) or "main"
        return (
            f"{summarize_text(name, limit)} -> {summarize_text(_arg(args, 0), limit)} "
            f"(pages={_arg(args, 1)}, sleep={_arg(args, 3)}ms)"
        )

    return describe


def _describe_dump(limit: int) -> Describer:
    def describe(args: Sequence[Any]) -> str:
        text = summarize_text(_arg(args, 0), limit)
        dump_filter = _arg(args, 1)
        if dump_filter:
            text += f" (filter={summarize_text(dump_filter, limit)})"
        return text

    return describe


def build_command_specs(
    engine: DatabaseEngine, *, max_logged_chars: int = DEFAULT_MAX_LOGGED_CHARS
) -> list[CommandSpec]:
    """
    Bind every catalog command to the engine.

    Parameters
    ----------
    engine:
        The database engine collaborator.
    max_logged_chars:
        Truncation limit for audit descriptions.

    Returns
    -------
    list[CommandSpec]
        Specs in catalog order.
    """
    limit = max_logged_chars

    def establish(path: str, is_uri: bool | None = None, autocommit: bool | None = None) -> Any:
        return engine.set_db_path(path, bool(is_uri), bool(autocommit))

    def dump(target: str, dump_filter: str | None = None) -> Any:
        return engine.iterdump(target, dump_filter or None)

    value = Parameter("value", required=False)
    return [
        CommandSpec(
            name=ESTABLISH_DATABASE_TARGET,
            parameters=(
                Parameter("path", _TEXT),
                Parameter("is_uri", _FLAG, required=False),
                Parameter("autocommit", _FLAG, required=False),
            ),
            executor=establish,
            describe=_describe_target(limit),
        ),
        CommandSpec(
            name=EXECUTE_SINGLE_STATEMENT,
            parameters=(Parameter("query", _TEXT), value),
            executor=engine.execute_query,
            describe=_describe_first(limit),
        ),
        CommandSpec(
            name=EXECUTE_MANY,
            parameters=(Parameter("query", _TEXT), Parameter("parameter_sets", _LIST)),
            executor=engine.execute_many,
            describe=_describe_many(limit),
        ),
        CommandSpec(
            name=EXECUTE_SCRIPT_FROM_PATH,
            parameters=(Parameter("script_path", _TEXT),),
            executor=engine.execute_script,
            describe=_describe_first(limit),
        ),
        CommandSpec(
            name=FETCH_ONE_ROW,
            parameters=(Parameter("query", _TEXT), value),
            executor=engine.fetch_one,
            describe=_describe_first(limit),
        ),
        CommandSpec(
            name=FETCH_MANY_ROWS,
            parameters=(Parameter("query", _TEXT), Parameter("size", _INT, minimum=1), value),
            executor=engine.fetch_many,
            describe=_describe_fetch_many(limit),
        ),
        CommandSpec(
            name=FETCH_ALL_ROWS,
            parameters=(Parameter("query", _TEXT), value),
            executor=engine.fetch_all,
            describe=_describe_first(limit),
        ),
        CommandSpec(
            name=LOAD_NATIVE_EXTENSION,
            parameters=(Parameter("extension_path", _TEXT),),
            executor=engine.load_extension,
            describe=_describe_first(limit),
        ),
        CommandSpec(
            name=PERFORM_BACKUP,
            parameters=(
                Parameter("target", _TEXT),
                Parameter("pages", _INT),
                Parameter("name", _TEXT),
                Parameter("sleep_ms", _NUMBER),
            ),
            executor=engine.backup,
            describe=_describe_backup(limit),
        ),
        CommandSpec(
            name=STREAM_DUMP,
            parameters=(Parameter("target", _TEXT), Parameter("filter", _TEXT, required=False)),
            executor=dump,
            describe=_describe_dump(limit),
        ),
    ]


def build_command_registry(
    engine: DatabaseEngine,
    *,
    max_logged_chars: int = DEFAULT_MAX_LOGGED_CHARS,
    only: Sequence[str] | None = None,
) -> CommandRegistry:
    """
    Build the frozen registry for an engine.

    Parameters
    ----------
    engine:
        The database engine collaborator.
    max_logged_chars:
        Truncation limit for audit descriptions.
    only:
        Optional subset of command names to register (catalog order is kept).

    Returns
    -------
    CommandRegistry
        Frozen registry.
    """
    registry = CommandRegistry()
    for spec in build_command_specs(engine, max_logged_chars=max_logged_chars):
        if only is None or spec.name in only:
            registry.register(spec)
    return registry.freeze()
