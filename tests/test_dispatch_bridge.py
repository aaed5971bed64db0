from __future__ import annotations

import asyncio
import json
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

import pytest

from bridge_engine.clock import FixedClock
from bridge_engine.commands import FETCH_ONE_ROW, PERFORM_BACKUP, build_command_registry
from bridge_engine.dispatch import MALFORMED_REQUEST, DispatchBridge
from bridge_engine.envelope import ErrorEnvelope
from bridge_engine.invocation_log import InvocationLogger
from stub_engine import StubEngine

CLOCK = FixedClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


def _bridge(tmp_path: Path, engine: StubEngine, only: list[str] | None = None) -> DispatchBridge:
    registry = build_command_registry(engine, only=only)
    log = InvocationLogger(tmp_path / "logs" / "db_access.log", clock=CLOCK, echo_to_console=False)
    return DispatchBridge(registry, log)


def _lines(bridge: DispatchBridge) -> list[str]:
    return bridge.invocation_log.read_records()


def test_fetch_one_row_success_returns_value_and_logs_once(tmp_path: Path) -> None:
    engine = StubEngine(rows=[{"a": 1}])
    bridge = _bridge(tmp_path, engine, only=[FETCH_ONE_ROW])

    result = bridge.dispatch("fetch-one-row", "SELECT 1", None)

    assert result == {"a": 1}
    lines = _lines(bridge)
    assert len(lines) == 1
    assert lines[0] == "[2024-01-01T12:00:00.000Z] [INFO] fetch-one-row succeeded: SELECT 1"
    assert engine.calls == [("fetch_one", ("SELECT 1", None))]


def test_unknown_command_returns_envelope_without_invoking_executor(tmp_path: Path) -> None:
    engine = StubEngine()
    bridge = _bridge(tmp_path, engine)

    result = bridge.dispatch("drop-table", "users")

    assert result == ErrorEnvelope(error="Unknown command: drop-table")
    assert result.to_wire() == {"error": "Unknown command: drop-table"}
    assert engine.calls == []
    lines = _lines(bridge)
    assert len(lines) == 1
    assert "[ERROR]" in lines[0]
    assert "Unknown command: drop-table" in lines[0]


def test_executor_fault_is_normalized_and_logged(tmp_path: Path) -> None:
    engine = StubEngine(faults={"backup": OSError("disk full")})
    bridge = _bridge(tmp_path, engine)

    result = bridge.dispatch(PERFORM_BACKUP, "/tmp/b.db", 5, "main", 100)

    assert result == ErrorEnvelope(error="disk full")
    lines = _lines(bridge)
    assert len(lines) == 1
    assert lines[0].startswith("[2024-01-01T12:00:00.000Z] [ERROR] perform-backup failed:")
    assert lines[0].endswith("-> disk full")


def test_argument_shape_mismatch_never_reaches_executor(tmp_path: Path) -> None:
    engine = StubEngine()
    bridge = _bridge(tmp_path, engine)

    too_few = bridge.dispatch("fetch-many-rows", "SELECT 1")
    wrong_type = bridge.dispatch("fetch-many-rows", "SELECT 1", "ten")

    assert isinstance(too_few, ErrorEnvelope)
    assert "expects 2 to 3 argument(s), got 1" in too_few.error
    assert isinstance(wrong_type, ErrorEnvelope)
    assert "'size'" in wrong_type.error
    assert engine.calls == []
    assert len(_lines(bridge)) == 2


def test_every_registered_command_returns_value_or_envelope(tmp_path: Path) -> None:
    engine = StubEngine(faults={"execute_script": RuntimeError("boom")})
    bridge = _bridge(tmp_path, engine)
    valid_args = {
        "establish-database-target": ("db.sqlite", False, True),
        "execute-single-statement": ("INSERT INTO t VALUES (?)", 1),
        "execute-statement-for-each-of-many-parameter-sets": ("INSERT INTO t VALUES (?)", [[1], [2]]),
        "execute-script-from-path": ("schema.sql",),
        "fetch-one-row": ("SELECT 1",),
        "fetch-many-rows": ("SELECT 1", 2),
        "fetch-all-rows": ("SELECT 1", None),
        "load-native-extension": ("ext.so",),
        "perform-backup": ("b.db", -1, "main", 0),
        "stream-schema-and-data-dump": ("dump.sql", "t%"),
    }
    assert set(valid_args) == set(bridge.registry.names())

    for name, args in valid_args.items():
        result = bridge.dispatch(name, *args)
        if name == "execute-script-from-path":
            assert result == ErrorEnvelope(error="boom")
        else:
            assert not isinstance(result, ErrorEnvelope)

    assert len(_lines(bridge)) == len(valid_args)


def test_parameter_values_are_not_logged(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine())

    bridge.dispatch("execute-single-statement", "UPDATE u SET pw = ?", "hunter2")
    bridge.dispatch(
        "execute-statement-for-each-of-many-parameter-sets",
        "INSERT INTO u VALUES (?)",
        [["secret-a"], ["secret-b"]],
    )

    text = "\n".join(_lines(bridge))
    assert "hunter2" not in text
    assert "secret-a" not in text
    assert "(2 parameter sets)" in text


def test_log_failure_does_not_mask_result(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    engine = StubEngine(rows=[{"a": 1}])
    bridge = _bridge(tmp_path, engine)

    def _broken(_entry: object) -> None:
        raise OSError("sink unavailable")

    bridge.invocation_log.record = _broken  # type: ignore[method-assign]

    with caplog.at_level("WARNING"):
        result = bridge.dispatch("fetch-one-row", "SELECT 1")

    assert result == {"a": 1}
    assert "sink unavailable" in caplog.text


def test_concurrent_dispatches_each_log_one_intact_line(tmp_path: Path) -> None:
    gate = threading.Barrier(2)
    engine = StubEngine(gate=gate)
    bridge = _bridge(tmp_path, engine)

    with ThreadPoolExecutor(max_workers=2) as pool:
        first = pool.submit(bridge.dispatch, "fetch-all-rows", "SELECT * FROM a")
        second = pool.submit(bridge.dispatch, "load-native-extension", "/ext/vec0.so")
        results = [first.result(timeout=10), second.result(timeout=10)]

    assert results == [[{"a": 1}], True]
    lines = _lines(bridge)
    assert len(lines) == 2
    assert sorted(line.split("] ", 2)[2] for line in lines) == [
        "fetch-all-rows succeeded: SELECT * FROM a",
        "load-native-extension succeeded: /ext/vec0.so",
    ]


def test_record_count_matches_call_count_under_load(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine())
    names = ["fetch-one-row", "drop-table", "fetch-all-rows", "fetch-many-rows"]

    def _call(i: int) -> object:
        return bridge.dispatch(names[i % len(names)], f"SELECT {i}")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_call, range(200)))

    lines = _lines(bridge)
    assert len(lines) == 200
    assert all(line.startswith("[2024-01-01T12:00:00.000Z] [") for line in lines)


def test_dispatch_async_runs_calls_concurrently(tmp_path: Path) -> None:
    gate = threading.Barrier(2)
    bridge = _bridge(tmp_path, StubEngine(gate=gate))

    async def _both() -> list[object]:
        return await asyncio.gather(
            bridge.dispatch_async("fetch-one-row", "SELECT 1"),
            bridge.dispatch_async("execute-single-statement", "DELETE FROM t"),
        )

    assert asyncio.run(_both()) == [{"a": 1}, True]
    assert len(_lines(bridge)) == 2


def test_handle_round_trips_rows_through_json(tmp_path: Path) -> None:
    rows = [{"id": 1, "name": "Ada", "score": 1.5, "note": None}, {"id": 2, "name": "Grace", "score": -3.25, "note": "x"}]
    bridge = _bridge(tmp_path, StubEngine(rows=rows))

    reply = bridge.handle(json.dumps({"command": "fetch-all-rows", "args": ["SELECT * FROM people"]}))

    assert json.loads(reply) == rows


def test_handle_malformed_request_is_enveloped_and_logged(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine())

    reply = json.loads(bridge.handle("{not json"))

    assert set(reply) == {"error"}
    assert reply["error"].startswith("Malformed request")
    lines = _lines(bridge)
    assert len(lines) == 1
    assert MALFORMED_REQUEST in lines[0]


def test_handle_unserializable_result_is_a_single_failure(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine(rows=[{"when": object()}]))

    reply = json.loads(bridge.handle(json.dumps({"command": "fetch-one-row", "args": ["SELECT 1"]})))

    assert set(reply) == {"error"}
    assert "not serializable" in reply["error"]
    lines = _lines(bridge)
    assert len(lines) == 1
    assert "[ERROR] fetch-one-row failed" in lines[0]


def test_lone_surrogate_in_statement_does_not_mask_result(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine(rows=[{"a": 1}]))

    result = bridge.dispatch("fetch-one-row", "SELECT '\ud800'")

    assert result == {"a": 1}
    lines = _lines(bridge)
    assert len(lines) == 1
    assert lines[0].endswith("fetch-one-row succeeded: SELECT '\\ud800'")


def test_handle_lone_surrogate_command_is_enveloped_and_logged(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, StubEngine())

    reply = json.loads(bridge.handle('{"command": "\\ud800", "args": []}'))

    assert reply == {"error": "Unknown command: \ud800"}
    lines = _lines(bridge)
    assert len(lines) == 1
    assert "[ERROR] \\ud800 failed" in lines[0]


def test_any_log_failure_does_not_mask_result(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    bridge = _bridge(tmp_path, StubEngine(rows=[{"a": 1}]))

    def _broken(_entry: object) -> None:
        raise ValueError("cannot encode")

    bridge.invocation_log.record = _broken  # type: ignore[method-assign]

    with caplog.at_level("WARNING"):
        ok = bridge.dispatch("fetch-one-row", "SELECT 1")
        failed = bridge.dispatch("drop-table")

    assert ok == {"a": 1}
    assert failed == ErrorEnvelope(error="Unknown command: drop-table")
    assert caplog.text.count("cannot encode") == 2


def test_handle_deeply_nested_request_is_a_single_failure(tmp_path: Path) -> None:
    engine = StubEngine()
    bridge = _bridge(tmp_path, engine)
    depth = 100_000
    raw = '{"command": "fetch-one-row", "args": ["SELECT 1", ' + "[" * depth + "]" * depth + "]}"

    reply = json.loads(bridge.handle(raw))

    assert set(reply) == {"error"}
    assert reply["error"].startswith("Malformed request")
    assert engine.calls == []
    lines = _lines(bridge)
    assert len(lines) == 1
    assert MALFORMED_REQUEST in lines[0]


def test_fetch_many_rows_rejects_non_positive_size(tmp_path: Path) -> None:
    engine = StubEngine()
    bridge = _bridge(tmp_path, engine)

    zero = bridge.dispatch("fetch-many-rows", "SELECT 1", 0)
    negative = bridge.dispatch("fetch-many-rows", "SELECT 1", -1)

    assert zero == ErrorEnvelope(error="fetch-many-rows: 'size' must be at least 1, got 0")
    assert negative == ErrorEnvelope(error="fetch-many-rows: 'size' must be at least 1, got -1")
    assert engine.calls == []
    assert len(_lines(bridge)) == 2
