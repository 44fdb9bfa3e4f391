"""Injectable clocks for assigning transaction timestamps."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes for timezone-aware columns; everything
    the ledger stores is UTC, so naive values are read as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    """
    Test clock that only moves when told to.

    ``now()`` returns the same value until ``advance()`` or ``set_time()``
    is called, which makes timestamp ties easy to reproduce.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._time = as_utc(
            fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        )

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        self._time = as_utc(time)

    def advance(self, seconds: float = 1) -> datetime:
        self._time += timedelta(seconds=seconds)
        return self._time
