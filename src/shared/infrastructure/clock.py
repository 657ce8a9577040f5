"""
Clock
=====

Injectable source of "now".

Services take a ``Clock`` instead of calling ``datetime.now`` so that the
sweep and lifecycle tests can pin time.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Interface for the current instant."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current aware datetime."""


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **kwargs) -> datetime:
        """Move forward by ``timedelta(**kwargs)`` and return the new instant."""
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant
