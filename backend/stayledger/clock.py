"""Injectable wall clock so time-based policy is testable."""

from datetime import date, datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from stayledger.config import settings


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""
        ...


class SystemClock:
    """Clock backed by the real system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock (overridden in tests)."""
    return system_clock


def hotel_tz() -> ZoneInfo:
    return ZoneInfo(settings.hotel_timezone)


def local_today(clock: Clock) -> date:
    """Today's date at the hotel."""
    return clock.now().astimezone(hotel_tz()).date()


def to_naive_utc(moment: datetime) -> datetime:
    """Convert an aware datetime to the naive UTC form stored in the DB."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def utcnow() -> datetime:
    """Naive UTC timestamp for ledger rows."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
