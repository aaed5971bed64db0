"""
Command registry: the allow-list between caller and executor.

A name is dispatchable only if it was registered here. Registration happens
once at startup; ``freeze()`` closes the table and later lookups are
read-only, so concurrent dispatches need no synchronization.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Sequence

from .errors import ArgumentShapeError, DuplicateCommandError, RegistryFrozenError, UnknownCommandError

Executor = Callable[..., Any]
Describer = Callable[[Sequence[Any]], str]


@dataclass(frozen=True, slots=True)
class Parameter:
    """
    One positional parameter of a command.

    Attributes
    ----------
    name:
        Name used in error messages.
    kinds:
        Accepted Python types after JSON decoding. Empty means any value.
    required:
        Required parameters must be supplied; optional ones may be omitted or None.
    minimum:
        Smallest accepted numeric value, if bounded.
    """

    name: str
    kinds: tuple[type, ...] = ()
    required: bool = True
    minimum: int | float | None = None

    def accepts(self, value: Any) -> bool:
        if value is None:
            return not self.required
        if not self.kinds:
            return True
        if isinstance(value, bool) and bool not in self.kinds:
            return False
        return isinstance(value, self.kinds)


def _no_description(_args: Sequence[Any]) -> str:
    return ""


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """
    A registered command: its name, signature, executor and audit describer.
    """

    name: str
    parameters: tuple[Parameter, ...]
    executor: Executor
    describe: Describer = _no_description

    @property
    def min_arity(self) -> int:
        return sum(1 for p in self.parameters if p.required)

    @property
    def max_arity(self) -> int:
        return len(self.parameters)

    def check_arguments(self, args: Sequence[Any]) -> None:
        """
        Validate arity and argument types.

        Raises
        ------
        ArgumentShapeError
            If the arguments do not match the declared parameters.
        """
        count = len(args)
        if count < self.min_arity or count > self.max_arity:
            if self.min_arity == self.max_arity:
                expected = str(self.max_arity)
            else:
                expected = f"{self.min_arity} to {self.max_arity}"
            raise ArgumentShapeError(
                f"{self.name} expects {expected} argument(s), got {count}"
            )
        for param, value in zip(self.parameters, args):
            if not param.accepts(value):
                raise ArgumentShapeError(
                    f"{self.name}: invalid value for '{param.name}' ({type(value).__name__})"
                )
            if param.minimum is not None and value is not None and value < param.minimum:
                raise ArgumentShapeError(
                    f"{self.name}: '{param.name}' must be at least {param.minimum}, got {value}"
                )


class CommandRegistry:
    """Name to CommandSpec table, immutable once frozen."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandSpec] = {}
        self._frozen = False

    def register(self, spec: CommandSpec) -> None:
        """
        Bind a command name to its spec.

        Raises
        ------
        DuplicateCommandError
            If the name is already bound.
        RegistryFrozenError
            If the registry has been frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Registry is frozen; cannot register {spec.name!r}")
        if spec.name in self._commands:
            raise DuplicateCommandError(f"Command already registered: {spec.name}")
        self._commands[spec.name] = spec

    def freeze(self) -> "CommandRegistry":
        """Reject further registrations and return the registry itself."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, name: str) -> CommandSpec:
        """
        Return the spec bound to name.

        Raises
        ------
        UnknownCommandError
            If the name is not registered.
        """
        try:
            return self._commands[name]
        except (KeyError, TypeError):
            raise UnknownCommandError(str(name)) from None

    def names(self) -> tuple[str, ...]:
        """Return the registered command names in registration order."""
        return tuple(self._commands)

    def as_mapping(self) -> Mapping[str, CommandSpec]:
        return MappingProxyType(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self._commands.values())

    def __len__(self) -> int:
        return len(self._commands)
