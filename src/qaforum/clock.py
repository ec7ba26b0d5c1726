"""Local-time helpers.

The service runs on a single configured UTC offset (IST by default). A
"calendar day" for daily counters and every time-of-day window is evaluated
in that offset, never in the server's own zone.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone

from qaforum.config import get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_local(now_utc: datetime, tz_offset_minutes: int) -> datetime:
    """Shift an aware (or naive UTC) datetime into the fixed offset."""
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=timezone.utc)
    return now_utc.astimezone(timezone(timedelta(minutes=tz_offset_minutes)))


def minute_of_day(now_utc: datetime, tz_offset_minutes: int) -> int:
    local = to_local(now_utc, tz_offset_minutes)
    return local.hour * 60 + local.minute


def is_within_window(now_utc: datetime, tz_offset_minutes: int, start_minute: int, end_minute: int) -> bool:
    """True if the local minute-of-day falls in ``[start_minute, end_minute)``.

    A window with ``start_minute > end_minute`` wraps past midnight.
    """
    minute = minute_of_day(now_utc, tz_offset_minutes)
    if start_minute <= end_minute:
        return start_minute <= minute < end_minute
    return minute >= start_minute or minute < end_minute


def local_day(now: datetime | None = None, tz_offset_minutes: int | None = None) -> date:
    """Calendar date in the configured local offset."""
    if tz_offset_minutes is None:
        tz_offset_minutes = get_settings().local_utc_offset_minutes
    return to_local(now or utc_now(), tz_offset_minutes).date()


def local_day_bounds(now: datetime | None = None, tz_offset_minutes: int | None = None) -> tuple[datetime, datetime]:
    """UTC instants at which the current local day starts and ends."""
    if tz_offset_minutes is None:
        tz_offset_minutes = get_settings().local_utc_offset_minutes
    local = to_local(now or utc_now(), tz_offset_minutes)
    start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return start.astimezone(timezone.utc), (start + timedelta(days=1)).astimezone(timezone.utc)


def format_window(start_minute: int, end_minute: int) -> str:
    """Render a window as ``HH:MM-HH:MM``."""
    return f"{start_minute // 60:02d}:{start_minute % 60:02d}-{end_minute // 60:02d}:{end_minute % 60:02d}"


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Same day-of-month ``months`` later, clamped to the last day of a shorter month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
