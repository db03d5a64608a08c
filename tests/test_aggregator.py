"""Unit tests for the aggregation logic."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from models.records import IndicatorRow
from services.aggregator import Aggregator


def _row(
    energy: Optional[float],
    waste: Optional[float],
    tax: Optional[float],
    efficiency: Optional[float],
    measured_at: Optional[datetime] = None,
) -> IndicatorRow:
    """Helper to build deterministic indicator rows."""

    return IndicatorRow(
        energy_generated=energy,
        waste_processed=waste,
        tax_savings=tax,
        efficiency=efficiency,
        measured_at=measured_at or datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


def test_aggregate_empty_iterable_returns_default_summary() -> None:
    aggregator = Aggregator()

    summary = aggregator.aggregate([])

    assert summary.row_count == 0
    assert summary.energy == 0.0
    assert summary.waste == 0.0
    assert summary.tax == 0.0
    assert summary.avg_efficiency is None


def test_aggregate_computes_sums_and_mean_efficiency() -> None:
    aggregator = Aggregator()
    rows = [
        _row(10, 1, 1.5, 90),
        _row(20, 2, 2.5, None),
        _row(30, 3, 0, 80),
        _row(0, 4, 0, None),
        _row(5, 5, 1.0, 70),
    ]

    summary = aggregator.aggregate(rows)

    assert summary.row_count == 5
    assert summary.energy == 65
    assert summary.waste == 15
    assert summary.tax == pytest.approx(5.0)
    assert summary.avg_efficiency == pytest.approx(80.0)


def test_aggregate_treats_missing_values_as_zero() -> None:
    summary = Aggregator().aggregate([_row(None, None, None, None), _row(4, None, 2, None)])

    assert summary.energy == 4
    assert summary.waste == 0
    assert summary.tax == 2
    assert summary.avg_efficiency is None


def test_zero_efficiency_counts_as_a_reading() -> None:
    summary = Aggregator().aggregate([_row(1, 1, 1, 0.0), _row(1, 1, 1, 50.0)])

    assert summary.avg_efficiency == pytest.approx(25.0)


def test_aggregate_is_order_independent() -> None:
    rows = [_row(1.1, 2, 0.3, 10), _row(2.2, 3, 0.6, None), _row(3.3, 4, 0.9, 30)]
    aggregator = Aggregator()

    forward = aggregator.aggregate(rows)
    backward = aggregator.aggregate(reversed(rows))

    assert forward.energy == pytest.approx(backward.energy)
    assert forward.tax == pytest.approx(backward.tax)
    assert forward.avg_efficiency == backward.avg_efficiency


def test_monthly_series_buckets_and_orders_months() -> None:
    aggregator = Aggregator()
    rows = [
        _row(10, 1, 0.5, None, datetime(2026, 9, 15, tzinfo=timezone.utc)),
        _row(5, 2, 0.25, None, datetime(2026, 8, 3, tzinfo=timezone.utc)),
        _row(7, 3, 0.2, None, datetime(2026, 9, 1, tzinfo=timezone.utc)),
        IndicatorRow(energy_generated=100),
    ]

    series = aggregator.monthly_series(rows)

    assert [point.month for point in series] == [date(2026, 8, 1), date(2026, 9, 1)]
    assert series[1].energy == 17
    assert series[1].waste == 4
    assert series[1].tax == pytest.approx(0.7)


def test_monthly_series_uses_local_month_boundaries() -> None:
    brt = timezone(timedelta(hours=-3))
    # 01:00 UTC on the 1st is still the previous month in Brasília.
    rows = [_row(1, 1, 1, None, datetime(2026, 10, 1, 1, tzinfo=timezone.utc))]

    series = Aggregator().monthly_series(rows, tz=brt)

    assert [point.month for point in series] == [date(2026, 9, 1)]


def test_monthly_series_keeps_last_months() -> None:
    rows = [
        _row(month, 0, 0, None, datetime(2025, month, 10, tzinfo=timezone.utc))
        for month in range(1, 13)
    ]

    series = Aggregator().monthly_series(rows, months=3)

    assert [point.month.month for point in series] == [10, 11, 12]
