"""Clock and timezone helpers.

Stored timestamps are UTC ISO-8601 strings with a ``Z`` suffix, the same
format pydantic produces for aware UTC datetimes, so range queries on
string attributes compare correctly.
"""

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def utc_iso(value: datetime) -> str:
    """Format an aware datetime as a second-precision UTC string."""
    return value.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def local_to_utc(day: date, start: str, tz_name: str) -> datetime:
    """Combine a local date and ``HH:MM`` start time into a UTC datetime."""
    local = datetime.combine(day, time.fromisoformat(start), tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc)


def local_date(value: datetime, tz_name: str) -> date:
    """Calendar date of an instant in the given timezone."""
    return value.astimezone(ZoneInfo(tz_name)).date()


def local_day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """UTC instants of local midnight at the start and end of a day.

    DST transitions are handled by ZoneInfo, so a day may be 23 or 25 hours.
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
