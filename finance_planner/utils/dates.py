from __future__ import annotations

import calendar
from datetime import date, datetime
from zoneinfo import ZoneInfo


def _add_month(year: int, month: int, delta: int) -> tuple[int, int]:
    total = year * 12 + (month - 1) + delta
    new_year = total // 12
    new_month = total % 12 + 1
    return new_year, new_month


def clamp_day(year: int, month: int, day: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(value: date, months: int) -> date:
    """Calendar month arithmetic keeping the day of month, clamped to month length.

    2024-01-31 + 1 month -> 2024-02-29; 2024-02-29 + 12 months -> 2025-02-28.
    """
    year, month = _add_month(value.year, value.month, months)
    return clamp_day(year, month, value.day)


def sunday_weekday(value: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def to_local_date(value: date | datetime | None, zone: ZoneInfo) -> date | None:
    """Calendar date of a date or timestamp.

    Aware timestamps are converted to ``zone`` first; naive ones are assumed to
    already be local.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(zone)
        return value.date()
    return value
