from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_TABLE_NAME_ENV = "BIODASH_INDICATOR_TABLE"
_STORE_PATH_ENV = "BIODASH_INDICATOR_STORE_PATH"
_POSTGREST_URL_ENV = "BIODASH_POSTGREST_URL"
_POSTGREST_KEY_ENV = "BIODASH_POSTGREST_API_KEY"
_OWNER_COLUMN_ENV = "BIODASH_OWNER_COLUMN"
_REFRESH_OWNER_ENV = "BIODASH_REFRESH_OWNER_ID"
_REFRESH_INTERVAL_ENV = "BIODASH_REFRESH_INTERVAL"
_ACTIVITY_LIMIT_ENV = "BIODASH_ACTIVITY_LIMIT"
_TIMEZONE_ENV = "BIODASH_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    table_name: str
    store_path: Optional[str]
    postgrest_url: Optional[str]
    postgrest_api_key: Optional[str]
    owner_column: str
    refresh_owner_id: Optional[str]
    refresh_interval: float
    activity_limit: int
    log_level: str
    timezone: Optional[str]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(default: Optional[str]) -> Optional[str]:
    value = os.getenv(_TIMEZONE_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        table_name=_read_str_env(_TABLE_NAME_ENV, "biodigester_indicators"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/indicators.json"),
        postgrest_url=_read_optional_env(_POSTGREST_URL_ENV, None),
        postgrest_api_key=_read_optional_env(_POSTGREST_KEY_ENV, None),
        owner_column=_read_str_env(_OWNER_COLUMN_ENV, "user_id"),
        refresh_owner_id=_read_optional_env(_REFRESH_OWNER_ENV, None),
        refresh_interval=_read_positive_float(_REFRESH_INTERVAL_ENV, 30.0),
        activity_limit=_read_positive_int(_ACTIVITY_LIMIT_ENV, 10),
        log_level=_read_log_level("INFO"),
        timezone=_read_timezone(None),
    )
