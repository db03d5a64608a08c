"""Builds the normalized report consumed by every exporter."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import List, Optional, Sequence

from app.schemas import ActivityEntry, Report, ReportStats, ReportTotals
from models.records import IndicatorRow
from services.aggregator import Aggregator, PeriodAggregate
from services.fetcher import RowFetcher, build_default_fetcher
from services.formatting import (
    format_currency,
    format_date,
    format_integer,
    format_percent,
)
from services.periods import PeriodPlanner, build_default_planner
from settings import get_settings

logger = logging.getLogger(__name__)

REPORT_TITLE = "Relatório do Biodigestor"
ACTIVITY_STATUS = "Registrado"


def format_stats(aggregate: PeriodAggregate) -> ReportStats:
    return ReportStats(
        waste=f"{format_integer(aggregate.waste)} kg",
        energy=f"{format_integer(aggregate.energy)} kWh",
        efficiency=format_percent(aggregate.avg_efficiency),
        tax=format_currency(aggregate.tax),
    )


def describe_activity(row: IndicatorRow, now: datetime) -> ActivityEntry:
    when = row.timestamp
    return ActivityEntry(
        date=format_date(when.astimezone(now.tzinfo)) if when is not None else "",
        activity=(
            f"Energia: {format_integer(row.energy_generated or 0)} kWh • "
            f"Resíduos: {format_integer(row.waste_processed or 0)} kg"
        ),
        status=ACTIVITY_STATUS,
        value=format_currency(row.tax_savings) if row.tax_savings is not None else "",
    )


class ReportBuilder:
    """Month statistics plus the latest week of activity, fetched fresh per call."""

    def __init__(
        self,
        fetcher: RowFetcher,
        aggregator: Aggregator,
        planner: Optional[PeriodPlanner] = None,
        activity_limit: int = 10,
    ) -> None:
        self.fetcher = fetcher
        self.aggregator = aggregator
        self.planner = planner or PeriodPlanner()
        self.activity_limit = activity_limit

    def build(
        self,
        owner_id: Optional[str] = None,
        activities: Optional[Sequence[ActivityEntry]] = None,
        now: Optional[datetime] = None,
    ) -> Report:
        plan = self.planner.plan(now)

        month_rows = self.fetcher.fetch_range(
            plan.month.start, plan.month.end, owner_id=owner_id, ascending=True
        )
        week_rows = self.fetcher.fetch_range(
            plan.week.start, plan.week.end, owner_id=owner_id, ascending=False
        )

        aggregate = self.aggregator.aggregate(month_rows)
        logger.debug(
            "Built month aggregate",
            extra={"owner_id": owner_id, "period": "month", "row_count": aggregate.row_count},
        )

        if activities:
            entries: List[ActivityEntry] = [entry.model_copy() for entry in activities]
        else:
            entries = [
                describe_activity(row, plan.now) for row in week_rows[: self.activity_limit]
            ]

        last_day = plan.month.end - timedelta(days=1)
        return Report(
            title=REPORT_TITLE,
            generated_at=format_date(plan.now),
            period_label=f"{format_date(plan.month.start)} — {format_date(last_day)}",
            stats=format_stats(aggregate),
            totals=ReportTotals(
                energy=aggregate.energy,
                waste=aggregate.waste,
                tax=aggregate.tax,
                avg_efficiency=aggregate.avg_efficiency,
            ),
            activities=entries,
        )


@lru_cache
def build_default_report_builder() -> ReportBuilder:
    settings = get_settings()
    return ReportBuilder(
        fetcher=build_default_fetcher(),
        aggregator=Aggregator(),
        planner=build_default_planner(),
        activity_limit=settings.activity_limit,
    )
