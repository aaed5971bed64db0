"""
Append-only invocation log.

Every dispatch produces exactly one line of the form::

    [2024-01-01T12:00:00.000Z] [INFO] fetch-one-row succeeded: SELECT 1

The line is appended to a flat text file and, when enabled, echoed on the
operational console through ``logging``. Writers are serialized with a lock so
lines from concurrent dispatches are never interleaved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .clock import Clock, SystemClock, iso_timestamp

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Outcome tag of one invocation."""

    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def level(self) -> str:
        return "INFO" if self is Outcome.SUCCESS else "ERROR"


@dataclass(frozen=True, slots=True)
class InvocationRecord:
    """
    One audit entry describing a single dispatch attempt.

    Attributes
    ----------
    timestamp:
        Time the outcome was recorded (timezone-aware).
    command:
        Requested command name, registered or not.
    description:
        One-line description of the attempted action. May be empty.
    outcome:
        Success or failure.
    error:
        Normalized error message; set only on failure.
    """

    timestamp: datetime
    command: str
    description: str
    outcome: Outcome
    error: str | None = None

    @property
    def message(self) -> str:
        verb = "succeeded" if self.outcome is Outcome.SUCCESS else "failed"
        text = f"{self.command} {verb}"
        if self.description:
            text += f": {self.description}"
        if self.error is not None:
            text += f" -> {self.error}"
        return text

    def render(self) -> str:
        """Return the audit line, without trailing newline."""
        return f"[{iso_timestamp(self.timestamp)}] [{self.outcome.level}] {self.message}"


class InvocationLogger:
    """
    Flat, ever-growing audit trail.

    Notes
    -----
    - Each ``record()`` opens the file in append mode, writes one line and
      flushes before releasing the lock. Characters UTF-8 cannot carry (lone
      surrogates) are written as backslash escapes.
    - Write failures propagate; the dispatch bridge treats them as
      secondary failures.
    """

    def __init__(
        self,
        log_path: Path,
        *,
        clock: Clock | None = None,
        echo_to_console: bool = True,
    ) -> None:
        self._log_path = log_path
        self._clock: Clock = clock or SystemClock()
        self._echo = echo_to_console
        self._lock = threading.Lock()
        self._log_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._log_path

    def now(self) -> datetime:
        return self._clock.now()

    def record(self, entry: InvocationRecord) -> None:
        """
        Append one record.

        Parameters
        ----------
        entry:
            The record to append.

        Raises
        ------
        OSError
            If the log file cannot be written.
        """
        line = entry.render()
        with self._lock:
            with self._log_path.open(
                "a", encoding="utf-8", errors="backslashreplace", newline="\n"
            ) as handle:
                handle.write(line + "\n")
                handle.flush()
            if self._echo:
                if entry.outcome is Outcome.SUCCESS:
                    logger.info(line)
                else:
                    logger.error(line)

    def read_records(self) -> list[str]:
        """Return all audit lines currently in the sink (empty if none yet)."""
        with self._lock:
            try:
                text = self._log_path.read_text(encoding="utf-8", errors="replace")
            except FileNotFoundError:
                return []
        return text.splitlines()
