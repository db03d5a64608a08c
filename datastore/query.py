"""Chainable query builder shared by the indicator store backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set

OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte"})


class QueryError(Exception):
    """A query the store rejected or could not answer."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class Ordering:
    column: str
    ascending: bool = True
    nulls_first: Optional[bool] = None

    @property
    def resolved_nulls_first(self) -> bool:
        # PostgreSQL default: NULLS LAST for ASC, NULLS FIRST for DESC.
        if self.nulls_first is None:
            return not self.ascending
        return self.nulls_first


@dataclass
class QueryResult:
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[QueryError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryBackend(Protocol):
    name: str

    def run(self, query: "Query") -> QueryResult:
        ...


class IndicatorSource(Protocol):
    name: str

    def query(self) -> "Query":
        ...


class Query:
    """Accumulates select/filter/order/limit clauses until ``execute``."""

    def __init__(self, backend: QueryBackend) -> None:
        self._backend = backend
        self.columns: tuple[str, ...] = ("*",)
        self.filters: list[Filter] = []
        self.orders: list[Ordering] = []
        self.row_limit: Optional[int] = None

    @property
    def table(self) -> str:
        return self._backend.name

    def select(self, *columns: str) -> "Query":
        self.columns = tuple(columns) or ("*",)
        return self

    def filter(self, column: str, op: str, value: Any) -> "Query":
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator {op!r}.")
        self.filters.append(Filter(column=column, op=op, value=value))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self.filter(column, "eq", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self.filter(column, "gte", value)

    def lt(self, column: str, value: Any) -> "Query":
        return self.filter(column, "lt", value)

    def order(
        self,
        column: str,
        ascending: bool = True,
        nulls_first: Optional[bool] = None,
    ) -> "Query":
        self.orders.append(Ordering(column=column, ascending=ascending, nulls_first=nulls_first))
        return self

    def limit(self, count: int) -> "Query":
        if count < 0:
            raise ValueError("Limit must be non-negative.")
        self.row_limit = count
        return self

    def referenced_columns(self) -> Set[str]:
        referenced = {column for column in self.columns if column != "*"}
        referenced.update(item.column for item in self.filters)
        referenced.update(item.column for item in self.orders)
        return referenced

    def execute(self) -> QueryResult:
        return self._backend.run(self)

    def __repr__(self) -> str:
        return (
            f"Query(table={self.table!r}, columns={self.columns!r}, filters={self.filters!r}, "
            f"orders={self.orders!r}, limit={self.row_limit!r})"
        )
