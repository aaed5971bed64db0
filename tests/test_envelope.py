from __future__ import annotations

import sqlite3

from bridge_engine.envelope import ErrorEnvelope, fault_message, is_envelope_payload, normalize
from bridge_engine.errors import ArgumentShapeError, UnknownCommandError


def test_envelope_shape_is_identical_for_every_fault_source() -> None:
    envelopes = [
        normalize(UnknownCommandError("drop-table")),
        normalize(ArgumentShapeError("Could not parse value")),
        normalize(sqlite3.OperationalError("no such table: t")),
        normalize(OSError("disk full")),
    ]

    for envelope in envelopes:
        wire = envelope.to_wire()
        assert list(wire) == ["error"]
        assert isinstance(wire["error"], str)
        assert is_envelope_payload(wire)


def test_message_prefers_single_string_argument() -> None:
    assert fault_message(KeyError("missing")) == "missing"
    assert fault_message(OSError("disk full")) == "disk full"


def test_message_falls_back_to_str_then_class_name() -> None:
    assert fault_message(OSError(28, "No space left on device")) == "[Errno 28] No space left on device"
    assert fault_message(RuntimeError()) == "RuntimeError"


def test_message_is_collapsed_to_one_line() -> None:
    assert normalize(ValueError("near line 1:\n  syntax   error")) == ErrorEnvelope(
        error="near line 1: syntax error"
    )


def test_is_envelope_payload_rejects_other_shapes() -> None:
    assert not is_envelope_payload({"error": 1})
    assert not is_envelope_payload({"error": "x", "id": 1})
    assert not is_envelope_payload([{"error": "x"}])
    assert not is_envelope_payload(True)
