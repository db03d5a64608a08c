"""Periodic background refresh of the live dashboard figures."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from app.schemas import LiveDashboard
from datastore.query import QueryError
from services.dashboard import DashboardService, build_default_dashboard_service
from settings import get_settings

logger = logging.getLogger(__name__)


class DashboardRefresher:
    """Recomputes stat cards and the overview chart every ``interval`` seconds.

    The task is owned by whoever calls :meth:`start`; :meth:`stop` must be
    awaited on teardown. It can also be used as ``async with refresher:``.
    A failed refresh keeps the previous values.
    """

    def __init__(
        self,
        service: DashboardService,
        interval: float = 30.0,
        owner_id: Optional[str] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("Refresh interval must be positive.")
        self.service = service
        self.interval = interval
        self.owner_id = owner_id
        self.latest = LiveDashboard()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="dashboard-refresh")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> "DashboardRefresher":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def refresh_once(self) -> LiveDashboard:
        try:
            self.latest = await asyncio.to_thread(self._collect)
        except QueryError as exc:
            logger.warning(
                "Dashboard refresh failed; keeping previous values",
                extra={"owner_id": self.owner_id, "reason": str(exc)},
            )
        except Exception as exc:  # noqa: BLE001 - the refresh loop must survive
            logger.exception(
                "Unexpected dashboard refresh error; keeping previous values",
                extra={"owner_id": self.owner_id, "reason": str(exc)},
            )
        return self.latest

    def _collect(self) -> LiveDashboard:
        return LiveDashboard(
            stats=self.service.stat_cards(owner_id=self.owner_id),
            overview=self.service.overview(owner_id=self.owner_id),
            refreshed_at=datetime.now(timezone.utc),
        )

    async def _run(self) -> None:
        while True:
            await self.refresh_once()
            await asyncio.sleep(self.interval)


@lru_cache
def build_default_refresher() -> DashboardRefresher:
    settings = get_settings()
    return DashboardRefresher(
        service=build_default_dashboard_service(),
        interval=settings.refresh_interval,
        owner_id=settings.refresh_owner_id,
    )
