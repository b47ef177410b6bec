"""
Clock abstractions for deterministic behavior.

Notes
-----
Engine code must not access wall-clock time directly. Callers provide a Clock.
This keeps listing and message timestamps reproducible in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """A source of time for deterministic behavior."""

    def now(self) -> datetime:
        """
        Return the current time.

        Returns
        -------
        datetime
            A timezone-aware datetime.
        """
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock that returns the current system time in UTC."""

    def now(self) -> datetime:
        """Return the current system time as an aware UTC datetime."""
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock that always returns a fixed time (useful for tests)."""

    fixed_time: datetime

    def now(self) -> datetime:
        """
        Return the fixed time.

        Returns
        -------
        datetime
            The fixed time value, assumed UTC when naive.
        """
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.replace(tzinfo=timezone.utc)
        return self.fixed_time


@dataclass(slots=True)
class SteppingClock:
    """
    Clock that advances by a fixed step on every call.

    Attributes
    ----------
    start:
        Time returned by the first call.
    step:
        Increment applied after each call.
    """

    start: datetime
    step: timedelta = timedelta(seconds=1)
    _calls: int = field(default=0, init=False, repr=False)

    def now(self) -> datetime:
        """Return the next time in the sequence."""
        start = self.start if self.start.tzinfo is not None else self.start.replace(tzinfo=timezone.utc)
        value = start + self.step * self._calls
        self._calls += 1
        return value
