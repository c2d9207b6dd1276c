"""Time sources and the ``YYYY-MM-DD HH:MM:SS`` timestamp format.

Components take a :class:`Clock` instance instead of reading the wall clock
directly; tests hand them a :class:`FixedClock`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

__all__ = ["TIMESTAMP_FORMAT", "Clock", "SystemClock", "FixedClock", "format_timestamp", "stamp"]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


class Clock(ABC):
    """Abstract time source."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def timestamp(self) -> str:
        """Current time rendered with :data:`TIMESTAMP_FORMAT`."""
        return format_timestamp(self.now())


class SystemClock(Clock):
    """Local wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Always reports the same moment until moved with :meth:`set`."""

    def __init__(self, moment: datetime) -> None:
        self._moment = moment

    def set(self, moment: datetime) -> None:
        self._moment = moment

    def now(self) -> datetime:
        return self._moment


def stamp(text: str, clock: Clock) -> str:
    """Prefix *text* with ``[timestamp]`` the way chat lines are displayed."""
    return f"[{clock.timestamp()}] {text}"
