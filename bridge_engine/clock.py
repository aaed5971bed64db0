"""
Clock abstractions for audit timestamps.

Notes
-----
The invocation logger never reads wall-clock time directly. Callers provide a
Clock so tests can pin the timestamp printed on each audit line.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """A source of timestamps for invocation records."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock backed by the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock pinned to one instant (naive values are treated as UTC)."""

    fixed_time: datetime

    def now(self) -> datetime:
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.replace(tzinfo=timezone.utc)
        return self.fixed_time


def iso_timestamp(moment: datetime) -> str:
    """
    Render a timestamp the way audit lines print it.

    Parameters
    ----------
    moment:
        Timezone-aware datetime.

    Returns
    -------
    str
        ISO 8601 in UTC with millisecond precision and a trailing 'Z',
        for example ``2024-01-01T12:00:00.000Z``.
    """
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
