from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from finance_planner.models import PaymentFrequency, RecurrenceType
from finance_planner.services import (
    ScheduleWarning,
    compute_next_execution_date,
    schedule_next_execution,
)
from finance_planner.services.recurrence import next_weekly_date
from finance_planner.utils import add_months, sunday_weekday


def test_one_time_fires_on_scheduled_date_until_executed():
    assert compute_next_execution_date("one_time", None, None, date(2024, 3, 10), None, None, None) == date(2024, 3, 10)
    executed = datetime(2024, 3, 10, 9, 0)
    assert compute_next_execution_date("one_time", None, None, date(2024, 3, 10), None, None, executed) is None


def test_one_time_executed_is_not_a_warning():
    res = schedule_next_execution(PaymentFrequency.ONE_TIME, None, None, date(2024, 3, 10), None, None, date(2024, 3, 10))
    assert res.next_date is None
    assert res.warning is None
    assert not res.is_scheduled


def test_one_time_without_scheduled_date():
    res = schedule_next_execution("one_time", None, None, None, None, None, None)
    assert res.next_date is None
    assert res.warning is ScheduleWarning.MISSING_SCHEDULED_DATE


def test_monthly_interval_from_last_execution():
    got = compute_next_execution_date(
        "recurrent", "monthly", date(2024, 1, 15), None, None, 2, datetime(2024, 1, 15, 8, 30)
    )
    assert got == date(2024, 3, 15)


def test_weekly_picks_first_matching_weekday_after_base():
    # 2024-06-03 is a Monday; 1=Mon, 3=Wed
    got = compute_next_execution_date("recurrent", "weekly", None, None, [1, 3], None, date(2024, 6, 3))
    assert got == date(2024, 6, 5)


def test_recomputation_is_stable():
    args = ("recurrent", RecurrenceType.WEEKLY, date(2024, 1, 1), None, [0, 6], 1, datetime(2024, 2, 7, 23, 0))
    first = schedule_next_execution(*args)
    second = schedule_next_execution(*args)
    assert first == second
    # Wed 2024-02-07 -> Sat 2024-02-10
    assert first.next_date == date(2024, 2, 10)


def test_never_executed_counts_from_day_before_start():
    # daily lands on the start date itself
    assert compute_next_execution_date("recurrent", "daily", date(2024, 5, 1), None, None, None, None) == date(2024, 5, 1)
    # weekly on the start weekday also lands on the start date (2024-01-01 is Monday)
    assert compute_next_execution_date("recurrent", "weekly", date(2024, 1, 1), None, [1], None, None) == date(2024, 1, 1)
    # monthly steps from 2024-01-14
    assert compute_next_execution_date("recurrent", "monthly", date(2024, 1, 15), None, None, 1, None) == date(2024, 2, 14)


def test_daily_after_execution():
    got = compute_next_execution_date("recurrent", "daily", date(2024, 1, 1), None, None, None, datetime(2024, 2, 28, 12))
    assert got == date(2024, 2, 29)


def test_monthly_clamps_to_month_end():
    got = compute_next_execution_date("recurrent", "monthly", date(2024, 1, 1), None, None, 1, date(2024, 1, 31))
    assert got == date(2024, 2, 29)
    got = compute_next_execution_date("recurrent", "monthly", date(2023, 1, 1), None, None, 1, date(2023, 1, 31))
    assert got == date(2023, 2, 28)


def test_monthly_interval_defaults_to_one():
    got = compute_next_execution_date("recurrent", "monthly", date(2024, 1, 1), None, None, None, date(2024, 11, 20))
    assert got == date(2024, 12, 20)


def test_monthly_invalid_interval_is_flagged():
    res = schedule_next_execution("recurrent", "monthly", date(2024, 1, 1), None, None, 0, date(2024, 1, 5))
    assert res.next_date is None
    assert res.warning is ScheduleWarning.INVALID_MONTHLY_INTERVAL


def test_yearly_leap_day_clamps():
    got = compute_next_execution_date("recurrent", "yearly", date(2020, 1, 1), None, None, None, date(2024, 2, 29))
    assert got == date(2025, 2, 28)
    got = compute_next_execution_date("recurrent", "yearly", date(2020, 1, 1), None, None, None, date(2024, 7, 4))
    assert got == date(2025, 7, 4)


@pytest.mark.parametrize("weekly_days", [None, [], [7], [-1, 9]])
def test_weekly_without_a_matching_weekday_is_unschedulable(weekly_days):
    res = schedule_next_execution("recurrent", "weekly", date(2024, 1, 1), None, weekly_days, None, None)
    assert res.next_date is None
    assert res.warning is ScheduleWarning.WEEKLY_UNSCHEDULABLE


def test_unknown_recurrence_type_is_flagged():
    res = schedule_next_execution("recurrent", "fortnightly", date(2024, 1, 1), None, None, None, None)
    assert res.next_date is None
    assert res.warning is ScheduleWarning.UNKNOWN_RECURRENCE_TYPE

    res = schedule_next_execution("recurrent", None, date(2024, 1, 1), None, None, None, None)
    assert res.warning is ScheduleWarning.UNKNOWN_RECURRENCE_TYPE


def test_unknown_frequency_is_flagged():
    res = schedule_next_execution("sometimes", "daily", date(2024, 1, 1), None, None, None, None)
    assert res.warning is ScheduleWarning.UNKNOWN_FREQUENCY


def test_recurrent_without_start_or_history():
    res = schedule_next_execution("recurrent", "daily", None, None, None, None, None)
    assert res.next_date is None
    assert res.warning is ScheduleWarning.MISSING_START_DATE


def test_aware_timestamp_uses_local_calendar_date():
    # 20:00 UTC on 2024-03-09 is already 2024-03-10 in Asia/Kolkata
    executed = datetime(2024, 3, 9, 20, 0, tzinfo=timezone.utc)
    got = compute_next_execution_date("recurrent", "daily", date(2024, 1, 1), None, None, None, executed)
    assert got == date(2024, 3, 11)


def test_next_weekly_date_scans_strictly_after_base():
    sunday = date(2024, 6, 2)
    assert sunday_weekday(sunday) == 0
    assert next_weekly_date(sunday, [0]) == date(2024, 6, 9)
    assert next_weekly_date(sunday, [6, 0]) == date(2024, 6, 8)


def test_add_months_handles_year_boundaries():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
