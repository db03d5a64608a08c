"""Day-aligned reporting periods anchored to the current moment."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from settings import get_settings


@dataclass(frozen=True)
class DateRange:
    """Half-open ``[start, end)`` interval."""

    start: datetime
    end: datetime

    @property
    def last_day(self) -> date:
        return self.end.date() - timedelta(days=1)

    def __contains__(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class PeriodPlan:
    now: datetime
    week: DateRange
    previous_week: DateRange
    month: DateRange


def _midnight(day: date, tz: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


class PeriodPlanner:
    """Computes the week, previous week and month windows used by the dashboard.

    Boundaries are built from calendar dates in ``tz``, so with a named zone
    each one lands on local midnight even when the window crosses a DST
    change. Without ``tz`` the zone of ``now`` is used.
    """

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        self.tz = tz

    def now(self) -> datetime:
        if self.tz is not None:
            return datetime.now(self.tz)
        return datetime.now().astimezone()

    def localize(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return self.now()
        if self.tz is not None:
            return now.astimezone(self.tz)
        return now

    def plan(self, now: Optional[datetime] = None) -> PeriodPlan:
        current = self.localize(now)
        tz = current.tzinfo
        today = current.date()

        week_start = today - timedelta(days=6)
        week = DateRange(
            start=_midnight(week_start, tz),
            end=_midnight(today + timedelta(days=1), tz),
        )
        previous_week = DateRange(
            start=_midnight(week_start - timedelta(days=7), tz),
            end=week.start,
        )

        month_start = today.replace(day=1)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)
        month = DateRange(start=_midnight(month_start, tz), end=_midnight(next_month, tz))

        return PeriodPlan(now=current, week=week, previous_week=previous_week, month=month)

    def trailing_months(self, months: int, now: Optional[datetime] = None) -> datetime:
        """Start of the window covering the last ``months`` months up to ``now``."""
        current = self.localize(now)
        total = current.year * 12 + (current.month - 1) - months
        year, month_index = divmod(total, 12)
        day = min(current.day, _days_in_month(year, month_index + 1))
        return current.replace(year=year, month=month_index + 1, day=day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - timedelta(days=1)).day


@lru_cache
def build_default_planner() -> PeriodPlanner:
    settings = get_settings()
    return PeriodPlanner(tz=ZoneInfo(settings.timezone) if settings.timezone else None)
