from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

END_OF_DAY = time(23, 59, 59, 999000)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def get_timezone(name: str) -> tzinfo:
    return ZoneInfo(name)


def now_in(tz: tzinfo) -> datetime:
    """Current time in the given zone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(tz)


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of ``moment`` in ``tz``. Naive datetimes are taken as already local."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(tz).date()


def week_window(week_end: date) -> tuple[date, date]:
    """Monday..Sunday window ending on ``week_end``."""
    return week_end - timedelta(days=6), week_end


def month_window(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


def is_week_end(day: date) -> bool:
    return day.isoweekday() == 7


def is_month_end(day: date) -> bool:
    return (day + timedelta(days=1)).day == 1
