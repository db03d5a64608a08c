from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.refresher import build_default_refresher


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    refresher = build_default_refresher()
    refresher.start()
    try:
        yield
    finally:
        await refresher.stop()
        build_default_refresher.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="BioDash",
        description="Biodigester indicator dashboard and report export service.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
