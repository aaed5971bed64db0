"""
JSON wire format between the caller stub and the dispatch bridge.

Request::

    {"command": "fetch-one-row", "args": ["SELECT ?", 1]}

Reply: the raw JSON result, or ``{"error": "<message>"}``.

BLOB values are carried as lowercase hex strings.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from .envelope import ErrorEnvelope, is_envelope_payload
from .errors import ProtocolError


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, allow_nan=False, default=_json_default)


def encode_request(command: str, args: Sequence[Any]) -> str:
    """
    Encode one request message.

    Raises
    ------
    ProtocolError
        If the arguments cannot be represented as JSON.
    """
    try:
        return _dumps({"command": command, "args": list(args)})
    except (TypeError, ValueError, RecursionError) as exc:
        raise ProtocolError(f"Arguments for {command} are not serializable: {exc}") from exc


def decode_request(raw: str) -> tuple[str, list[Any]]:
    """
    Decode a request message.

    Raises
    ------
    ProtocolError
        If the message is not a JSON object with a string ``command`` and a
        list ``args``.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ProtocolError(f"Malformed request: {exc}") from exc
    if not isinstance(payload, dict):
        raise ProtocolError("Malformed request: expected a JSON object")
    command = payload.get("command")
    args = payload.get("args", [])
    if not isinstance(command, str):
        raise ProtocolError("Malformed request: 'command' must be a string")
    if not isinstance(args, list):
        raise ProtocolError("Malformed request: 'args' must be a list")
    return command, args


def encode_reply(value: Any) -> str:
    """
    Encode a dispatch result.

    Raises
    ------
    ProtocolError
        If the value cannot be represented as JSON.
    """
    if isinstance(value, ErrorEnvelope):
        return _dumps(value.to_wire())
    try:
        return _dumps(value)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ProtocolError(f"Result is not serializable: {exc}") from exc


def decode_reply(raw: str) -> Any:
    """Decode a reply; error envelopes come back as ErrorEnvelope instances."""
    try:
        value = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ProtocolError(f"Malformed reply: {exc}") from exc
    if is_envelope_payload(value):
        return ErrorEnvelope.from_wire(value)
    return value
