from __future__ import annotations

import pytest

from bridge_engine.commands import COMMAND_NAMES, FETCH_ONE_ROW, build_command_registry
from bridge_engine.errors import (
    ArgumentShapeError,
    DuplicateCommandError,
    RegistryFrozenError,
    UnknownCommandError,
)
from bridge_engine.registry import CommandRegistry, CommandSpec, Parameter
from stub_engine import StubEngine


def _spec(name: str) -> CommandSpec:
    return CommandSpec(name=name, parameters=(Parameter("query", (str,)),), executor=lambda q: q)


def test_register_and_resolve() -> None:
    registry = CommandRegistry()
    spec = _spec("fetch-one-row")
    registry.register(spec)

    assert registry.resolve("fetch-one-row") is spec
    assert "fetch-one-row" in registry
    assert registry.names() == ("fetch-one-row",)


def test_duplicate_registration_is_a_configuration_error() -> None:
    registry = CommandRegistry()
    registry.register(_spec("a"))
    with pytest.raises(DuplicateCommandError):
        registry.register(_spec("a"))


def test_frozen_registry_rejects_registration() -> None:
    registry = CommandRegistry().freeze()
    with pytest.raises(RegistryFrozenError):
        registry.register(_spec("a"))
    with pytest.raises(TypeError):
        registry.as_mapping()["a"] = _spec("a")  # type: ignore[index]


def test_resolve_unknown_name() -> None:
    registry = CommandRegistry()
    with pytest.raises(UnknownCommandError) as excinfo:
        registry.resolve("drop-table")
    assert str(excinfo.value) == "Unknown command: drop-table"


def test_check_arguments_arity_and_types() -> None:
    spec = CommandSpec(
        name="fetch-many-rows",
        parameters=(Parameter("query", (str,)), Parameter("size", (int,)), Parameter("value", required=False)),
        executor=lambda *a: a,
    )
    spec.check_arguments(["SELECT 1", 3])
    spec.check_arguments(["SELECT 1", 3, [1, 2]])
    spec.check_arguments(["SELECT 1", 3, None])

    with pytest.raises(ArgumentShapeError, match="expects 2 to 3"):
        spec.check_arguments(["SELECT 1"])
    with pytest.raises(ArgumentShapeError, match="expects 2 to 3"):
        spec.check_arguments(["SELECT 1", 3, None, "extra"])
    with pytest.raises(ArgumentShapeError, match="'size'"):
        spec.check_arguments(["SELECT 1", True])
    with pytest.raises(ArgumentShapeError, match="'query'"):
        spec.check_arguments([None, 3])


def test_catalog_registers_every_command_once() -> None:
    registry = build_command_registry(StubEngine())
    assert registry.frozen
    assert registry.names() == COMMAND_NAMES
    assert len(set(COMMAND_NAMES)) == 10


def test_catalog_subset() -> None:
    registry = build_command_registry(StubEngine(), only=[FETCH_ONE_ROW])
    assert registry.names() == (FETCH_ONE_ROW,)


def test_check_arguments_enforces_minimum() -> None:
    spec = CommandSpec(
        name="fetch-many-rows",
        parameters=(Parameter("query", (str,)), Parameter("size", (int,), minimum=1)),
        executor=lambda *a: a,
    )
    spec.check_arguments(["SELECT 1", 1])

    with pytest.raises(ArgumentShapeError, match="'size' must be at least 1, got 0"):
        spec.check_arguments(["SELECT 1", 0])
    with pytest.raises(ArgumentShapeError, match="'size' must be at least 1, got -5"):
        spec.check_arguments(["SELECT 1", -5])
