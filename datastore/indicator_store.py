from __future__ import annotations
import json
from datetime import datetime
from functools import cmp_to_key, lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Sequence

from datastore.postgrest import PostgrestIndicatorTable
from datastore.query import (
    IndicatorSource,
    Ordering,
    Query,
    QueryError,
    QueryResult,
)
from models.records import INDICATOR_COLUMNS, IndicatorRow, parse_timestamp
from settings import get_settings

_UNDEFINED_COLUMN = "42703"
_INVALID_VALUE = "22007"


def _matches(candidate: Any, op: str, expected: Any) -> bool:
    if candidate is None or expected is None:
        return False
    if isinstance(candidate, datetime):
        expected = parse_timestamp(expected)
    if op == "eq":
        return candidate == expected
    if op == "neq":
        return candidate != expected
    if op == "gt":
        return candidate > expected
    if op == "gte":
        return candidate >= expected
    if op == "lt":
        return candidate < expected
    if op == "lte":
        return candidate <= expected
    raise ValueError(f"Unsupported filter operator {op!r}.")


def _compare(left: Dict[str, Any], right: Dict[str, Any], orders: Sequence[Ordering]) -> int:
    for ordering in orders:
        a = left.get(ordering.column)
        b = right.get(ordering.column)
        if a is None and b is None:
            continue
        if a is None:
            return -1 if ordering.resolved_nulls_first else 1
        if b is None:
            return 1 if ordering.resolved_nulls_first else -1
        if a == b:
            continue
        result = -1 if a < b else 1
        return result if ordering.ascending else -result
    return 0


class IndicatorTable:
    """In-memory indicator table answering the same queries as the hosted store."""

    def __init__(
        self,
        name: str,
        persistence_path: Optional[Path] = None,
        columns: Optional[Iterable[str]] = None,
        owner_column: str = "user_id",
    ) -> None:
        self.name = name
        self.owner_column = owner_column
        if columns is None:
            columns = [owner_column if column == "user_id" else column for column in INDICATOR_COLUMNS]
        self.columns = frozenset(columns)
        self._rows: List[IndicatorRow] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def query(self) -> Query:
        return Query(self)

    def insert(self, rows: Iterable[IndicatorRow]) -> None:
        with self._lock:
            self._rows.extend(rows)
            self._persist()

    def scan(self) -> list[IndicatorRow]:
        with self._lock:
            return list(self._rows)

    def run(self, query: Query) -> QueryResult:
        unknown = sorted(query.referenced_columns() - self.columns)
        if unknown:
            return QueryResult(
                error=QueryError(
                    f"column {self.name}.{unknown[0]} does not exist",
                    code=_UNDEFINED_COLUMN,
                )
            )

        with self._lock:
            records = [self._record(row) for row in self._rows]

        try:
            matched = [
                record
                for record in records
                if all(_matches(record.get(item.column), item.op, item.value) for item in query.filters)
            ]
        except (TypeError, ValueError) as exc:
            return QueryResult(error=QueryError(str(exc), code=_INVALID_VALUE))
        if query.orders:
            matched.sort(key=cmp_to_key(lambda a, b: _compare(a, b, query.orders)))
        if query.row_limit is not None:
            matched = matched[: query.row_limit]

        if "*" not in query.columns:
            matched = [{column: record.get(column) for column in query.columns} for record in matched]
        return QueryResult(data=matched)

    def _record(self, row: IndicatorRow) -> Dict[str, Any]:
        record = row.to_mapping()
        if self.owner_column != "user_id":
            record[self.owner_column] = record.pop("user_id", None)
        return record

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [row.to_json() for row in self._rows]
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        for payload in data:
            self._rows.append(IndicatorRow.from_mapping(payload))


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> IndicatorSource:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    if settings.postgrest_url:
        return PostgrestIndicatorTable(
            base_url=settings.postgrest_url,
            name=table_name,
            api_key=settings.postgrest_api_key,
        )
    table_path = settings.store_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return IndicatorTable(
        name=table_name,
        persistence_path=persistence,
        owner_column=settings.owner_column,
    )
