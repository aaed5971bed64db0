"""
Dispatch bridge: the single choke point for cross-boundary calls.

For every call the bridge:

1. resolves the command name against the registry allow-list,
2. validates the arguments against the command's parameters,
3. invokes the executor once,
4. records exactly one invocation record,
5. returns the executor's value unchanged, or an ErrorEnvelope.

No exception escapes ``dispatch``, ``dispatch_async`` or ``handle``. Any
failure to append the audit record is reported on the operational logger and
never replaces the result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Sequence, TypeVar

from .envelope import ErrorEnvelope, normalize
from .errors import ProtocolError
from .invocation_log import InvocationLogger, InvocationRecord, Outcome
from .registry import CommandRegistry
from .wire import decode_request, encode_reply

logger = logging.getLogger(__name__)

MALFORMED_REQUEST = "<malformed-request>"

T = TypeVar("T")


def _identity(value: Any) -> Any:
    return value


class DispatchBridge:
    """
    Privileged-side dispatcher.

    Parameters
    ----------
    registry:
        Frozen command registry.
    invocation_log:
        Audit sink receiving one record per call.
    """

    def __init__(self, registry: CommandRegistry, invocation_log: InvocationLogger) -> None:
        self._registry = registry
        self._log = invocation_log

    @property
    def registry(self) -> CommandRegistry:
        return self._registry

    @property
    def invocation_log(self) -> InvocationLogger:
        return self._log

    def dispatch(self, name: str, *args: Any) -> Any:
        """
        Run one command and return its value or an ErrorEnvelope.

        Parameters
        ----------
        name:
            Command name; must be registered.
        *args:
            Positional arguments matching the command's parameters.
        """
        return self._run(name, args, _identity)

    async def dispatch_async(self, name: str, *args: Any) -> Any:
        """Run ``dispatch`` in a worker thread so the event loop is not blocked."""
        return await asyncio.to_thread(self.dispatch, name, *args)

    def handle(self, raw_request: str) -> str:
        """
        Serve one JSON request and return the JSON reply.

        A reply that cannot be encoded is treated as a failure of that call.
        """
        try:
            name, args = decode_request(raw_request)
        except ProtocolError as exc:
            envelope = normalize(exc)
            self._record(MALFORMED_REQUEST, "", envelope)
            return encode_reply(envelope)
        return self._run(name, args, encode_reply)

    def _run(self, name: str, args: Sequence[Any], finish: Callable[[Any], T]) -> T:
        description = ""
        try:
            command = self._registry.resolve(name)
            command.check_arguments(args)
            description = command.describe(args)
            reply = finish(command.executor(*args))
        except Exception as exc:  # every fault becomes an envelope
            envelope = normalize(exc)
            self._record(name, description, envelope)
            return finish(envelope)
        self._record(name, description, None)
        return reply

    def _record(self, name: Any, description: str, envelope: ErrorEnvelope | None) -> None:
        entry = InvocationRecord(
            timestamp=self._log.now(),
            command=" ".join(str(name).split()) or MALFORMED_REQUEST,
            description=description,
            outcome=Outcome.SUCCESS if envelope is None else Outcome.FAILURE,
            error=None if envelope is None else envelope.error,
        )
        try:
            self._log.record(entry)
        except Exception as exc:  # the sink never replaces the result
            logger.warning("Invocation record for %s could not be appended: %s", entry.command, exc)
