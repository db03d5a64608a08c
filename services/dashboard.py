"""On-screen dashboard figures: weekly comparison, stat cards and monthly chart."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from app.schemas import DashboardSnapshot, OverviewPoint, StatCards
from datastore.query import QueryError
from services.aggregator import Aggregator
from services.fetcher import RowFetcher, build_default_fetcher
from services.formatting import (
    bar_width,
    format_currency,
    format_date,
    format_delta,
    format_integer,
    format_month_long,
    format_month_short,
    format_percent,
    percent_delta,
)
from services.periods import PeriodPlanner, build_default_planner

logger = logging.getLogger(__name__)

OVERVIEW_MONTHS = 12


class DashboardService:
    def __init__(
        self,
        fetcher: RowFetcher,
        aggregator: Aggregator,
        planner: Optional[PeriodPlanner] = None,
    ) -> None:
        self.fetcher = fetcher
        self.aggregator = aggregator
        self.planner = planner or PeriodPlanner()

    def snapshot(self, owner_id: Optional[str] = None, now: Optional[datetime] = None) -> DashboardSnapshot:
        """Week-over-week and month figures; query failures propagate."""
        plan = self.planner.plan(now)

        week = self.aggregator.aggregate(
            self.fetcher.fetch_range(plan.week.start, plan.week.end, owner_id=owner_id)
        )
        previous_week = self.aggregator.aggregate(
            self.fetcher.fetch_range(plan.previous_week.start, plan.previous_week.end, owner_id=owner_id)
        )
        month = self.aggregator.aggregate(
            self.fetcher.fetch_range(plan.month.start, plan.month.end, owner_id=owner_id)
        )
        latest = self.fetcher.fetch_latest(owner_id=owner_id)

        if latest is not None and latest.efficiency is not None:
            efficiency = latest.efficiency
        else:
            efficiency = month.avg_efficiency

        return DashboardSnapshot(
            week_label=f"{format_date(plan.week.start)} - {format_date(plan.week.last_day)}",
            month_label=format_month_long(plan.month.start),
            energy_week=format_integer(week.energy),
            waste_week=format_integer(week.waste),
            energy_week_delta=format_delta(percent_delta(week.energy, previous_week.energy)),
            waste_week_delta=format_delta(percent_delta(week.waste, previous_week.waste)),
            efficiency_current=format_percent(efficiency),
            efficiency_bar_width=bar_width(efficiency),
            month_energy=f"{format_integer(month.energy)} kWh",
            month_waste=f"{format_integer(month.waste)} kg",
            month_tax=format_currency(month.tax),
            week_energy=f"{format_integer(week.energy)} kWh",
            week_efficiency=format_percent(week.avg_efficiency),
        )

    def stat_cards(self, owner_id: Optional[str] = None) -> StatCards:
        """Cards for the latest reading; zeroed when the store cannot be read."""
        try:
            latest = self.fetcher.fetch_latest(owner_id=owner_id)
        except QueryError as exc:
            logger.warning(
                "Falling back to empty stat cards",
                extra={"owner_id": owner_id, "reason": str(exc)},
            )
            return StatCards()

        if latest is None:
            return StatCards()
        return StatCards(
            waste_processed=f"{format_integer(latest.waste_processed or 0)} kg",
            energy_generated=f"{format_integer(latest.energy_generated or 0)} kWh",
            tax_savings=format_currency(latest.tax_savings or 0),
            efficiency=format_percent(latest.efficiency),
            measured_at=latest.timestamp,
        )

    def overview(self, owner_id: Optional[str] = None, now: Optional[datetime] = None) -> List[OverviewPoint]:
        current = self.planner.localize(now)
        since = self.planner.trailing_months(OVERVIEW_MONTHS, current)
        rows = self.fetcher.fetch_range(since, owner_id=owner_id)
        series = self.aggregator.monthly_series(rows, tz=current.tzinfo, months=OVERVIEW_MONTHS)
        return [
            OverviewPoint(
                name=format_month_short(point.month),
                waste_processed=point.waste,
                energy_generated=point.energy,
                tax_deduction=point.tax,
            )
            for point in series
        ]


@lru_cache
def build_default_dashboard_service() -> DashboardService:
    return DashboardService(
        fetcher=build_default_fetcher(),
        aggregator=Aggregator(),
        planner=build_default_planner(),
    )
