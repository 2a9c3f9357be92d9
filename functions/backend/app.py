"""
FastAPI application entry point for the content service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool

from backend.config import get_settings
from backend.dependencies import get_content_registry
from backend.routes import router
from backend.worker import ContentRefresher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    registry = get_content_registry()
    # Document reads are blocking HTTP calls.
    await run_in_threadpool(registry.load_all)

    refresher = None
    if settings.content_refresh_interval_seconds > 0:
        refresher = ContentRefresher(
            registry, settings.content_refresh_interval_seconds
        )
        refresher.start()
    try:
        yield
    finally:
        if refresher:
            refresher.stop()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="KPT Content Service (FastAPI)", version="0.1.0", lifespan=lifespan
    )
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
