"""Caller stub: the untrusted side's only route to the bridge.

The stub exposes exactly one method per registered command. Each method takes
raw form input, shapes it into arguments, sends one JSON request through a
Transport, and returns a CallOutcome carrying either the result or the error
message. There is deliberately no method that sends an arbitrary command name.

Input shaping
-------------
- Value fields hold a comma-delimited list of JSON literals (``1, "a"``). The
  list is parsed as ``[<text>]`` and its first element is sent; an empty field
  sends None.
- Numeric fields are parsed to numbers; blank backup fields use defaults.

Shaping failures never reach the bridge. They produce the same kind of
CallOutcome as a failure reported by the bridge.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol

from bridge_engine.commands import (
    ESTABLISH_DATABASE_TARGET,
    EXECUTE_MANY,
    EXECUTE_SCRIPT_FROM_PATH,
    EXECUTE_SINGLE_STATEMENT,
    FETCH_ALL_ROWS,
    FETCH_MANY_ROWS,
    FETCH_ONE_ROW,
    LOAD_NATIVE_EXTENSION,
    PERFORM_BACKUP,
    STREAM_DUMP,
)
from bridge_engine.dispatch import DispatchBridge
from bridge_engine.envelope import ErrorEnvelope, normalize
from bridge_engine.errors import ArgumentShapeError, BridgeError
from bridge_engine.wire import decode_reply, encode_request

# Public stub method -> command it sends.
STUB_METHODS: Mapping[str, str] = {
    "set_database_path": ESTABLISH_DATABASE_TARGET,
    "execute_query": EXECUTE_SINGLE_STATEMENT,
    "execute_many": EXECUTE_MANY,
    "execute_script": EXECUTE_SCRIPT_FROM_PATH,
    "fetch_one": FETCH_ONE_ROW,
    "fetch_many": FETCH_MANY_ROWS,
    "fetch_all": FETCH_ALL_ROWS,
    "load_extension": LOAD_NATIVE_EXTENSION,
    "backup": PERFORM_BACKUP,
    "iterdump": STREAM_DUMP,
}


class Transport(Protocol):
    """Carries one JSON request to the privileged side and returns its JSON reply."""

    def send(self, request: str) -> str:
        ...


class LocalTransport:
    """In-process transport straight into a DispatchBridge."""

    def __init__(self, bridge: DispatchBridge) -> None:
        self._bridge = bridge

    def send(self, request: str) -> str:
        return self._bridge.handle(request)


@dataclass(frozen=True, slots=True)
class CallOutcome:
    """
    Result of one stub call as the UI sees it.

    Attributes
    ----------
    ok:
        False when the call failed before or after crossing the boundary.
    value:
        Decoded result on success, the ErrorEnvelope on failure.
    text:
        User-visible rendering: JSON for results, the message for failures.
    """

    ok: bool
    value: Any
    text: str


def parse_literal_list(text: str, field: str = "value") -> list[Any]:
    """
    Parse a comma-delimited list of JSON literals.

    Raises
    ------
    ArgumentShapeError
        If the text is not a valid literal list.
    """
    try:
        return json.loads("[" + text + "]")
    except RecursionError:
        raise ArgumentShapeError(f"Could not parse {field}: value is nested too deeply") from None
    except ValueError as exc:
        raise ArgumentShapeError(f"Could not parse {field}: {exc}") from exc


def first_literal(text: str, field: str = "value") -> Any:
    """Return the first literal of a comma-delimited list, or None if it is empty."""
    values = parse_literal_list(text, field)
    return values[0] if values else None


def parse_int(text: str, field: str, default: int | None = None) -> int:
    """
    Parse a whole number field.

    Parameters
    ----------
    text:
        Raw field text.
    field:
        Field label used in the error message.
    default:
        Value used when the field is blank; a blank field is an error if None.

    Raises
    ------
    ArgumentShapeError
        If the text is not a whole number.
    """
    cleaned = text.strip()
    if not cleaned and default is not None:
        return default
    try:
        return int(cleaned)
    except ValueError:
        raise ArgumentShapeError(f"{field} must be a whole number, got {text!r}") from None


def parse_number(text: str, field: str, default: float | None = None) -> float:
    """Parse a numeric field; see ``parse_int`` for the arguments."""
    cleaned = text.strip()
    if not cleaned and default is not None:
        return default
    try:
        return float(cleaned)
    except ValueError:
        raise ArgumentShapeError(f"{field} must be a number, got {text!r}") from None


def render_value(value: Any) -> str:
    """Return the user-visible text of a result: strings as-is, anything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _failure(fault: BaseException) -> CallOutcome:
    envelope = normalize(fault)
    return CallOutcome(ok=False, value=envelope, text=envelope.error)


class CallerStub:
    """
    Restricted, explicit surface over a Transport.

    Parameters
    ----------
    transport:
        Channel to the dispatch bridge.
    default_backup_pages:
        Pages per backup step used when the pages field is blank.
    default_backup_sleep_ms:
        Backup inter-step delay used when the delay field is blank.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        default_backup_pages: int = -1,
        default_backup_sleep_ms: float = 250.0,
    ) -> None:
        self._transport = transport
        self._default_pages = default_backup_pages
        self._default_sleep_ms = default_backup_sleep_ms

    def set_database_path(self, path: str, is_uri: bool = False, autocommit: bool = False) -> CallOutcome:
        return self._call(ESTABLISH_DATABASE_TARGET, lambda: (path, bool(is_uri), bool(autocommit)))

    def execute_query(self, query: str, values: str = "") -> CallOutcome:
        return self._call(EXECUTE_SINGLE_STATEMENT, lambda: (query, first_literal(values)))

    def execute_many(self, query: str, values: str) -> CallOutcome:
        return self._call(EXECUTE_MANY, lambda: (query, first_literal(values, "values")))

    def execute_script(self, script_path: str) -> CallOutcome:
        return self._call(EXECUTE_SCRIPT_FROM_PATH, lambda: (script_path,))

    def fetch_one(self, query: str, values: str = "") -> CallOutcome:
        return self._call(FETCH_ONE_ROW, lambda: (query, first_literal(values)))

    def fetch_many(self, query: str, size: str, values: str = "") -> CallOutcome:
        return self._call(
            FETCH_MANY_ROWS, lambda: (query, parse_int(size, "size"), first_literal(values))
        )

    def fetch_all(self, query: str, values: str = "") -> CallOutcome:
        return self._call(FETCH_ALL_ROWS, lambda: (query, first_literal(values)))

    def load_extension(self, extension_path: str) -> CallOutcome:
        return self._call(LOAD_NATIVE_EXTENSION, lambda: (extension_path,))

    def backup(self, target: str, pages: str = "", name: str = "", sleep_ms: str = "") -> CallOutcome:
        return self._call(
            PERFORM_BACKUP,
            lambda: (
                target,
                parse_int(pages, "pages", self._default_pages),
                name.strip() or "main",
                parse_number(sleep_ms, "sleep", self._default_sleep_ms),
            ),
        )

    def iterdump(self, target: str, dump_filter: str = "") -> CallOutcome:
        def shape() -> tuple[Any, ...]:
            cleaned = dump_filter.strip()
            return (target, cleaned) if cleaned else (target,)

        return self._call(STREAM_DUMP, shape)

    def _call(self, command: str, shape: Callable[[], tuple[Any, ...]]) -> CallOutcome:
        try:
            request = encode_request(command, shape())
            reply = decode_reply(self._transport.send(request))
        except (BridgeError, OSError) as exc:
            return _failure(exc)
        if isinstance(reply, ErrorEnvelope):
            return CallOutcome(ok=False, value=reply, text=reply.error)
        return CallOutcome(ok=True, value=reply, text=render_value(reply))
