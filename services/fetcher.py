"""Time-bounded indicator reads with an ordered list of timestamp strategies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Callable, List, Optional, Sequence

from datastore.indicator_store import build_default_table
from datastore.query import IndicatorSource, Query, QueryError
from models.records import IndicatorRow
from settings import get_settings

logger = logging.getLogger(__name__)

SELECT_COLUMNS = (
    "energy_generated",
    "waste_processed",
    "tax_savings",
    "efficiency",
    "measured_at",
    "created_at",
)


@dataclass(frozen=True)
class TimestampStrategy:
    """Filters and orders indicator rows on one timestamp column."""

    column: str

    def range_query(
        self,
        table: IndicatorSource,
        start: datetime,
        end: Optional[datetime],
        ascending: bool,
    ) -> Query:
        query = table.query().select(*SELECT_COLUMNS).gte(self.column, start)
        if end is not None:
            query = query.lt(self.column, end)
        return query.order(self.column, ascending=ascending)

    def latest_query(self, table: IndicatorSource) -> Query:
        return (
            table.query()
            .select(*SELECT_COLUMNS)
            .order(self.column, ascending=False, nulls_first=False)
            .limit(1)
        )


DEFAULT_STRATEGIES = (TimestampStrategy("measured_at"), TimestampStrategy("created_at"))


class RowFetcher:
    """Runs each query against the preferred timestamp column, then the fallbacks."""

    def __init__(
        self,
        table: IndicatorSource,
        strategies: Sequence[TimestampStrategy] = DEFAULT_STRATEGIES,
        owner_column: str = "user_id",
    ) -> None:
        if not strategies:
            raise ValueError("At least one timestamp strategy is required.")
        self.table = table
        self.strategies = tuple(strategies)
        self.owner_column = owner_column

    def fetch_range(
        self,
        start: datetime,
        end: Optional[datetime] = None,
        owner_id: Optional[str] = None,
        ascending: bool = True,
    ) -> List[IndicatorRow]:
        """Rows with a timestamp in ``[start, end)``; never ``None``."""

        def build(strategy: TimestampStrategy) -> Query:
            return self._scoped(strategy.range_query(self.table, start, end, ascending), owner_id)

        return self._first_success(build, owner_id=owner_id)

    def fetch_latest(self, owner_id: Optional[str] = None) -> Optional[IndicatorRow]:
        def build(strategy: TimestampStrategy) -> Query:
            return self._scoped(strategy.latest_query(self.table), owner_id)

        rows = self._first_success(build, owner_id=owner_id, require_rows=True)
        return rows[0] if rows else None

    def _scoped(self, query: Query, owner_id: Optional[str]) -> Query:
        if owner_id:
            return query.eq(self.owner_column, owner_id)
        return query

    def _first_success(
        self,
        build: Callable[[TimestampStrategy], Query],
        owner_id: Optional[str],
        require_rows: bool = False,
    ) -> List[IndicatorRow]:
        last_error: Optional[QueryError] = None
        final_index = len(self.strategies) - 1

        for index, strategy in enumerate(self.strategies):
            result = build(strategy).execute()
            if result.ok:
                if require_rows and not result.data and index < final_index:
                    logger.debug(
                        "No rows ordered by %s; trying next timestamp column",
                        strategy.column,
                        extra={"column": strategy.column, "owner_id": owner_id},
                    )
                    continue
                return [IndicatorRow.from_mapping(record) for record in result.data]

            last_error = result.error
            logger.warning(
                "Indicator query on %s failed",
                strategy.column,
                extra={
                    "column": strategy.column,
                    "owner_id": owner_id,
                    "reason": str(result.error),
                },
            )

        if last_error is None:
            return []
        raise last_error


@lru_cache
def build_default_fetcher() -> RowFetcher:
    settings = get_settings()
    return RowFetcher(table=build_default_table(), owner_column=settings.owner_column)
