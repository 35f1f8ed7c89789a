"""Next-execution-date calculation for planned payments.

Pure functions only: the same inputs always give the same result. The planned
payment service calls :func:`schedule_next_execution` before every flush of a
created or updated payment and stores both the date and the warning code.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from finance_planner.models import LOCAL_ZONE, PaymentFrequency, RecurrenceType
from finance_planner.utils.dates import add_months, sunday_weekday, to_local_date

# Upper bound (in days past the base date) for the weekly day-of-week scan
WEEKLY_SCAN_DAYS = 14


class ScheduleWarning(str, Enum):
    """Why a payment has no next execution date although it was not fired."""

    UNKNOWN_FREQUENCY = "unknown_frequency"
    UNKNOWN_RECURRENCE_TYPE = "unknown_recurrence_type"
    WEEKLY_UNSCHEDULABLE = "weekly_unschedulable"
    INVALID_MONTHLY_INTERVAL = "invalid_monthly_interval"
    MISSING_START_DATE = "missing_start_date"
    MISSING_SCHEDULED_DATE = "missing_scheduled_date"


@dataclass(frozen=True)
class ScheduleResult:
    next_date: Optional[date]
    warning: Optional[ScheduleWarning] = None

    @property
    def is_scheduled(self) -> bool:
        return self.next_date is not None


def _raw(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def next_weekly_date(base: date, weekly_days: Iterable[int] | None) -> Optional[date]:
    """First day after ``base`` whose weekday (0=Sun) is in ``weekly_days``.

    Only ``base + 1`` .. ``base + WEEKLY_SCAN_DAYS`` are considered; ``None``
    means the set can never match (empty or out-of-range indices).
    """
    wanted = set(weekly_days or ())
    if not wanted:
        return None
    for offset in range(1, WEEKLY_SCAN_DAYS + 1):
        candidate = base + timedelta(days=offset)
        if sunday_weekday(candidate) in wanted:
            return candidate
    return None


def schedule_next_execution(
    frequency: PaymentFrequency | str | None,
    recurrence_type: RecurrenceType | str | None,
    start_date: Optional[date],
    scheduled_date: Optional[date],
    weekly_days: Iterable[int] | None,
    monthly_interval: Optional[int],
    last_executed_at: date | datetime | None,
    *,
    zone: ZoneInfo = LOCAL_ZONE,
) -> ScheduleResult:
    """Compute the next date a planned payment should fire.

    One-time payments fire on ``scheduled_date`` until executed once. Recurrent
    payments step forward from the last execution date, or from the day before
    ``start_date`` when they never ran, so the first occurrence can land on the
    start date itself.
    """
    last_executed = to_local_date(last_executed_at, zone)
    freq = _raw(frequency)

    if freq == PaymentFrequency.ONE_TIME.value:
        if last_executed is not None:
            return ScheduleResult(None)
        if scheduled_date is None:
            return ScheduleResult(None, ScheduleWarning.MISSING_SCHEDULED_DATE)
        return ScheduleResult(scheduled_date)

    if freq != PaymentFrequency.RECURRENT.value:
        return ScheduleResult(None, ScheduleWarning.UNKNOWN_FREQUENCY)

    if last_executed is not None:
        base = last_executed
    elif start_date is not None:
        base = start_date - timedelta(days=1)
    else:
        return ScheduleResult(None, ScheduleWarning.MISSING_START_DATE)

    kind = _raw(recurrence_type)
    if kind == RecurrenceType.DAILY.value:
        return ScheduleResult(base + timedelta(days=1))
    if kind == RecurrenceType.WEEKLY.value:
        found = next_weekly_date(base, weekly_days)
        if found is None:
            return ScheduleResult(None, ScheduleWarning.WEEKLY_UNSCHEDULABLE)
        return ScheduleResult(found)
    if kind == RecurrenceType.MONTHLY.value:
        interval = 1 if monthly_interval is None else int(monthly_interval)
        if interval < 1:
            return ScheduleResult(None, ScheduleWarning.INVALID_MONTHLY_INTERVAL)
        return ScheduleResult(add_months(base, interval))
    if kind == RecurrenceType.YEARLY.value:
        return ScheduleResult(add_months(base, 12))
    return ScheduleResult(None, ScheduleWarning.UNKNOWN_RECURRENCE_TYPE)


def compute_next_execution_date(
    frequency: PaymentFrequency | str | None,
    recurrence_type: RecurrenceType | str | None,
    start_date: Optional[date],
    scheduled_date: Optional[date],
    weekly_days: Iterable[int] | None,
    monthly_interval: Optional[int],
    last_executed_at: date | datetime | None,
) -> Optional[date]:
    """Date-only view of :func:`schedule_next_execution`; ``None`` when unscheduled."""
    return schedule_next_execution(
        frequency,
        recurrence_type,
        start_date,
        scheduled_date,
        weekly_days,
        monthly_interval,
        last_executed_at,
    ).next_date
