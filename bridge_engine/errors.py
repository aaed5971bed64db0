"""
Domain exceptions for the SQLBridge engine.

Notes
-----
Every failure that can happen while serving a command maps to an exception
below or is raised by the database engine collaborator. None of them crosses
the boundary as-is: the dispatch bridge normalizes all of them into an
ErrorEnvelope.

Configuration errors (duplicate or late registration) are the exception to
that rule. They surface at startup, before any command is served.
"""

from __future__ import annotations


class BridgeError(RuntimeError):
    """Base exception for all SQLBridge domain failures."""


class UnknownCommandError(BridgeError):
    """Raised when a command name is not in the registry allow-list."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown command: {name}")
        self.name = name


class ArgumentShapeError(BridgeError):
    """Raised when input cannot be shaped into the arguments a command expects."""


class RegistryConfigurationError(BridgeError):
    """Base class for registry construction failures (fatal at startup)."""


class DuplicateCommandError(RegistryConfigurationError):
    """Raised when a command name is registered twice."""


class RegistryFrozenError(RegistryConfigurationError):
    """Raised when registering into a registry that has already been frozen."""


class DatabaseEngineError(BridgeError):
    """Raised by the database engine collaborator for engine-level failures."""


class DatabaseNotConnectedError(DatabaseEngineError):
    """Raised when an operation needs a database target that was never established."""


class ProtocolError(ArgumentShapeError):
    """Raised when a wire message cannot be decoded or encoded."""
