"""Timestamp and calendar helpers.

Timestamps are persisted in UTC. Calendar-day questions (which day a clock-in
belongs to, how many days a leave spans) are answered in the single company
timezone from ``settings.COMPANY_TIMEZONE``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from backoffice.config import settings

_ONE_MS = timedelta(milliseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    """Return *ts* as an aware UTC datetime. Naive values are taken as UTC
    (SQLite drops tzinfo on round-trip)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def local_date(ts: datetime, tz: Optional[ZoneInfo] = None) -> date:
    """Calendar date of *ts* in the company timezone."""
    return as_utc(ts).astimezone(tz or settings.company_tz).date()


def local_time(ts: datetime, tz: Optional[ZoneInfo] = None) -> time:
    """Wall-clock time-of-day of *ts* in the company timezone."""
    return as_utc(ts).astimezone(tz or settings.company_tz).time()


def at_local_time(day: date, at: time, tz: Optional[ZoneInfo] = None) -> datetime:
    """UTC instant of wall-clock *at* on *day* in the company timezone."""
    return datetime.combine(day, at, tzinfo=tz or settings.company_tz).astimezone(timezone.utc)


def to_local_date(value: Union[date, datetime], tz: Optional[ZoneInfo] = None) -> date:
    """Strip time-of-day: aware datetimes are converted to the company
    timezone first, naive ones are taken at face value."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz or settings.company_tz).date()
    return value


def inclusive_day_count(start: date, end: date) -> int:
    """Calendar days spanned by [start, end], counting both endpoints."""
    return abs((end - start).days) + 1


def duration_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two instants."""
    return (as_utc(end) - as_utc(start)) // _ONE_MS


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    first = date(year, month, 1)
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    return first, next_first - timedelta(days=1)
