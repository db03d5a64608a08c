"""Aggregation logic for indicator rows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Dict, Iterable, List, Optional

from models.records import IndicatorRow


@dataclass
class PeriodAggregate:
    """Sums and mean efficiency for one period."""

    energy: float = 0.0
    waste: float = 0.0
    tax: float = 0.0
    avg_efficiency: Optional[float] = None
    row_count: int = 0


@dataclass
class MonthlyPoint:
    month: date
    energy: float = 0.0
    waste: float = 0.0
    tax: float = 0.0


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, rows: Iterable[IndicatorRow]) -> PeriodAggregate:
        summary = PeriodAggregate()
        efficiency_total = 0.0
        efficiency_count = 0

        for row in rows:
            summary.row_count += 1
            summary.energy += row.energy_generated or 0.0
            summary.waste += row.waste_processed or 0.0
            summary.tax += row.tax_savings or 0.0

            # None means "not measured"; 0.0 is a real reading.
            if row.efficiency is not None:
                efficiency_total += row.efficiency
                efficiency_count += 1

        if efficiency_count:
            summary.avg_efficiency = efficiency_total / efficiency_count

        return summary

    def monthly_series(
        self,
        rows: Iterable[IndicatorRow],
        tz: Optional[tzinfo] = None,
        months: int = 12,
    ) -> List[MonthlyPoint]:
        """Bucket rows by calendar month, oldest first, keeping the last ``months``."""
        buckets: Dict[date, MonthlyPoint] = {}

        for row in rows:
            moment = row.timestamp
            if moment is None:
                continue
            local = moment.astimezone(tz) if tz is not None else moment
            key = date(local.year, local.month, 1)
            point = buckets.get(key)
            if point is None:
                point = buckets[key] = MonthlyPoint(month=key)
            point.energy += row.energy_generated or 0.0
            point.waste += row.waste_processed or 0.0
            point.tax += row.tax_savings or 0.0

        ordered = [buckets[key] for key in sorted(buckets)]
        if months > 0:
            ordered = ordered[-months:]
        return [
            MonthlyPoint(
                month=point.month,
                energy=round(point.energy, 2),
                waste=round(point.waste, 2),
                tax=round(point.tax, 2),
            )
            for point in ordered
        ]
