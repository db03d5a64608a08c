from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable
from zoneinfo import ZoneInfo

from datastore.indicator_store import IndicatorTable, build_default_table
from datastore.postgrest import PostgrestIndicatorTable
from models.records import IndicatorRow
from services.fetcher import build_default_fetcher
from services.periods import build_default_planner
from services.dashboard import build_default_dashboard_service
from services.refresher import build_default_refresher
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


CACHES = (
    get_settings,
    build_default_table,
    build_default_fetcher,
    build_default_dashboard_service,
    build_default_refresher,
    build_default_planner,
)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "indicators.json"

    monkeypatch.delenv("BIODASH_POSTGREST_URL", raising=False)
    monkeypatch.setenv("BIODASH_INDICATOR_TABLE", "custom_indicators")
    monkeypatch.setenv("BIODASH_INDICATOR_STORE_PATH", str(store_path))
    monkeypatch.setenv("BIODASH_OWNER_COLUMN", "owner_id")
    monkeypatch.setenv("BIODASH_REFRESH_OWNER_ID", "u9")
    monkeypatch.setenv("BIODASH_REFRESH_INTERVAL", "5")
    monkeypatch.setenv("BIODASH_ACTIVITY_LIMIT", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    _clear_caches(CACHES)

    try:
        settings = get_settings()
        table = build_default_table()
        fetcher = build_default_fetcher()
        refresher = build_default_refresher()

        assert isinstance(table, IndicatorTable)
        assert table.name == "custom_indicators"
        assert table.persistence_path == store_path
        assert fetcher.owner_column == "owner_id"
        assert table.owner_column == "owner_id"
        assert refresher.interval == 5.0
        assert refresher.owner_id == "u9"
        assert settings.activity_limit == 10
        assert settings.log_level == "DEBUG"
    finally:
        _clear_caches(CACHES)


def test_postgrest_url_selects_hosted_store(monkeypatch) -> None:
    monkeypatch.setenv("BIODASH_POSTGREST_URL", "https://project.store.test")
    monkeypatch.setenv("BIODASH_POSTGREST_API_KEY", "anon-key")
    _clear_caches(CACHES)
    table = build_default_table()

    try:
        assert isinstance(table, PostgrestIndicatorTable)
        assert table.name == get_settings().table_name
    finally:
        table.close()
        _clear_caches(CACHES)


def test_owner_column_override_scopes_in_memory_reads(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("BIODASH_POSTGREST_URL", raising=False)
    monkeypatch.setenv("BIODASH_INDICATOR_STORE_PATH", str(tmp_path / "indicators.json"))
    monkeypatch.setenv("BIODASH_OWNER_COLUMN", "owner_id")
    _clear_caches(CACHES)

    try:
        table = build_default_table()
        table.insert(
            [
                IndicatorRow(energy_generated=7, measured_at=datetime(2026, 10, 3, tzinfo=timezone.utc), user_id="u1"),
                IndicatorRow(energy_generated=9, measured_at=datetime(2026, 10, 4, tzinfo=timezone.utc), user_id="u2"),
            ]
        )

        latest = build_default_fetcher().fetch_latest(owner_id="u1")

        assert latest is not None
        assert latest.energy_generated == 7.0
    finally:
        _clear_caches(CACHES)


def test_timezone_setting_drives_default_planner(monkeypatch) -> None:
    monkeypatch.setenv("BIODASH_TIMEZONE", "America/Sao_Paulo")
    _clear_caches(CACHES)

    try:
        assert get_settings().timezone == "America/Sao_Paulo"
        assert build_default_planner().tz == ZoneInfo("America/Sao_Paulo")
    finally:
        _clear_caches(CACHES)

    monkeypatch.setenv("BIODASH_TIMEZONE", "Mars/Olympus_Mons")
    _clear_caches(CACHES)

    try:
        assert get_settings().timezone is None
        assert build_default_planner().tz is None
    finally:
        _clear_caches(CACHES)
