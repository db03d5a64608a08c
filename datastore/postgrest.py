"""Indicator table backed by a PostgREST endpoint (the hosted relational store)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple

import httpx

from datastore.query import Ordering, Query, QueryError, QueryResult


def _encode_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode_order(ordering: Ordering) -> str:
    direction = "asc" if ordering.ascending else "desc"
    nulls = "nullsfirst" if ordering.resolved_nulls_first else "nullslast"
    return f"{ordering.column}.{direction}.{nulls}"


class PostgrestIndicatorTable:
    """Translates :class:`Query` objects into PostgREST requests."""

    def __init__(
        self,
        base_url: str,
        name: str,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.name = name
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        token = access_token or api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if client is None:
            client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)
        client.headers.update(headers)
        self._client = client

    def query(self) -> Query:
        return Query(self)

    def close(self) -> None:
        self._client.close()

    def build_params(self, query: Query) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = [("select", ",".join(query.columns))]
        for item in query.filters:
            params.append((item.column, f"{item.op}.{_encode_value(item.value)}"))
        if query.orders:
            params.append(("order", ",".join(_encode_order(item) for item in query.orders)))
        if query.row_limit is not None:
            params.append(("limit", str(query.row_limit)))
        return params

    def run(self, query: Query) -> QueryResult:
        try:
            response = self._client.get(f"/rest/v1/{self.name}", params=self.build_params(query))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            return QueryResult(error=self._status_error(exc))
        except httpx.HTTPError as exc:
            return QueryResult(error=QueryError(f"Indicator store unreachable: {exc}"))

        try:
            payload = response.json()
        except ValueError as exc:
            return QueryResult(error=QueryError(f"Invalid JSON from indicator store: {exc}"))
        if not isinstance(payload, list):
            return QueryResult(error=QueryError("Unexpected payload from indicator store."))
        return QueryResult(data=payload)

    @staticmethod
    def _status_error(exc: httpx.HTTPStatusError) -> QueryError:
        code: Optional[str] = None
        detail: Optional[str] = None
        try:
            data = exc.response.json()
            code = data.get("code")
            detail = data.get("message")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Indicator query failed with status {exc.response.status_code}: "
            f"{detail or 'no detail provided.'}"
        )
        return QueryError(message, code=code)
