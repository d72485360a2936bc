"""Wall-clock time source."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current local time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Local wall clock as timezone-aware datetimes in the device timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


def to_utc(value: datetime) -> datetime:
    """The same instant in UTC. Naive values are read as device-local time."""
    return value.astimezone(timezone.utc)


def time_between(start: datetime, end: datetime) -> timedelta:
    """Real time elapsed from `start` to `end`, unaffected by UTC offset changes."""
    return to_utc(end) - to_utc(start)


def date_key(value: datetime | date) -> str:
    """Canonical YYYY-MM-DD key for a local calendar date."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()
