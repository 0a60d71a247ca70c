from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.monitor import build_default_monitor
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    build_default_monitor()
    logger.info(
        "Monitor ready (data_dir=%s, demo owner %s)",
        settings.data_dir or "<memory>",
        "enabled" if settings.allow_demo_owner else "disabled",
    )
    try:
        yield
    finally:
        # Tables are reloaded from disk on the next startup.
        build_default_monitor.cache_clear()
        logger.info("Monitor stopped")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="AgriLink Monitor",
        description="Sensor aggregation and alerting service for agricultural IoT deployments.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


app = create_app()
