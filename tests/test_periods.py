from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from services.periods import PeriodPlanner

BRT = timezone(timedelta(hours=-3))


def test_week_windows_are_contiguous_seven_day_ranges() -> None:
    now = datetime(2026, 10, 18, 15, 30, tzinfo=BRT)

    plan = PeriodPlanner().plan(now)

    assert plan.week.start == datetime(2026, 10, 12, tzinfo=BRT)
    assert plan.week.end == datetime(2026, 10, 19, tzinfo=BRT)
    assert plan.previous_week.end == plan.week.start
    assert plan.week.end - plan.week.start == timedelta(days=7)
    assert plan.previous_week.end - plan.previous_week.start == timedelta(days=7)
    assert plan.week.last_day == date(2026, 10, 18)
    assert now in plan.week
    assert now not in plan.previous_week


def test_month_window_covers_calendar_month() -> None:
    plan = PeriodPlanner().plan(datetime(2026, 2, 10, 8, tzinfo=BRT))

    assert plan.month.start == datetime(2026, 2, 1, tzinfo=BRT)
    assert plan.month.end == datetime(2026, 3, 1, tzinfo=BRT)
    assert plan.month.last_day == date(2026, 2, 28)


def test_december_month_rolls_into_next_year() -> None:
    plan = PeriodPlanner().plan(datetime(2026, 12, 31, 23, 59, tzinfo=BRT))

    assert plan.month.start == datetime(2026, 12, 1, tzinfo=BRT)
    assert plan.month.end == datetime(2027, 1, 1, tzinfo=BRT)


def test_plan_defaults_to_aware_now() -> None:
    plan = PeriodPlanner().plan()

    assert plan.now.tzinfo is not None
    assert plan.now in plan.week


def test_trailing_months_clamps_day() -> None:
    planner = PeriodPlanner()

    assert planner.trailing_months(12, datetime(2026, 10, 18, tzinfo=BRT)) == datetime(
        2025, 10, 18, tzinfo=BRT
    )
    assert planner.trailing_months(1, datetime(2026, 3, 31, tzinfo=BRT)) == datetime(
        2026, 2, 28, tzinfo=BRT
    )


def test_boundaries_stay_on_local_midnight_across_dst() -> None:
    new_york = ZoneInfo("America/New_York")
    # Clocks moved forward on 2026-03-08, between the two weeks.
    now = datetime(2026, 3, 15, 12, 0, tzinfo=new_york)

    plan = PeriodPlanner(tz=new_york).plan(now)

    assert plan.week.start.utcoffset() == timedelta(hours=-4)
    assert plan.previous_week.start.utcoffset() == timedelta(hours=-5)
    assert plan.previous_week.start.astimezone(timezone.utc) == datetime(2026, 3, 2, 5, tzinfo=timezone.utc)
    assert plan.week.start.astimezone(timezone.utc) == datetime(2026, 3, 9, 4, tzinfo=timezone.utc)
    assert plan.previous_week.end == plan.week.start
    for boundary in (plan.previous_week.start, plan.week.start, plan.week.end, plan.month.start):
        assert (boundary.hour, boundary.minute) == (0, 0)


def test_planner_zone_converts_given_now() -> None:
    sao_paulo = ZoneInfo("America/Sao_Paulo")
    # 01:30 UTC on the 1st is still the previous evening in São Paulo.
    now = datetime(2026, 11, 1, 1, 30, tzinfo=timezone.utc)

    plan = PeriodPlanner(tz=sao_paulo).plan(now)

    assert plan.now.tzinfo is sao_paulo
    assert plan.month.start == datetime(2026, 10, 1, tzinfo=sao_paulo)
    assert plan.now.date() == date(2026, 10, 31)
    assert plan.week.last_day == date(2026, 10, 31)
    assert plan.month.end == datetime(2026, 11, 1, tzinfo=sao_paulo)
