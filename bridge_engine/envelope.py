"""
Error envelope: the only shape in which a failure crosses the boundary.

Whatever the origin of a fault (unknown command, malformed arguments, an
exception raised by the database engine), the caller receives the same
``{"error": <message>}`` structure and can apply one uniform check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

ERROR_KEY = "error"


@dataclass(frozen=True, slots=True)
class ErrorEnvelope:
    """
    Normalized, serializable failure description.

    Attributes
    ----------
    error:
        Single-line, human-readable failure message.
    """

    error: str

    def to_wire(self) -> dict[str, str]:
        """Return the JSON-ready ``{"error": ...}`` mapping."""
        return {ERROR_KEY: self.error}

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "ErrorEnvelope":
        return cls(error=str(payload[ERROR_KEY]))


def fault_message(fault: BaseException) -> str:
    """
    Extract a human-readable message from an exception.

    A lone string argument is used verbatim, which keeps ``KeyError('x')`` from
    being quoted. Otherwise ``str(fault)`` is used, falling back to the
    exception class name when that is empty. The result is a single line.
    """
    args = getattr(fault, "args", ())
    if len(args) == 1 and isinstance(args[0], str):
        message = args[0]
    else:
        message = str(fault)
    message = " ".join(message.split())
    return message or type(fault).__name__


def normalize(fault: BaseException) -> ErrorEnvelope:
    """Wrap any exception as an ErrorEnvelope."""
    return ErrorEnvelope(error=fault_message(fault))


def is_envelope_payload(value: Any) -> bool:
    """Return True if a decoded wire value is an error envelope."""
    return (
        isinstance(value, Mapping)
        and set(value.keys()) == {ERROR_KEY}
        and isinstance(value[ERROR_KEY], str)
    )
