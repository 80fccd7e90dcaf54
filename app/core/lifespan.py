"""Application lifespan: logging, tracing and schema setup; engine disposal on exit."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import Settings, get_settings
from app.infrastructure.persistence import database
from app.shared.telemetry.logging import setup_logging
from app.shared.telemetry.telemetry import TelemetryConfig, get_telemetry, set_telemetry

logger = logging.getLogger(__name__)


def start_telemetry(settings: Settings, app: FastAPI | None = None) -> TelemetryConfig | None:
    """Start tracing when enabled; instruments the app (if given), logging and the SQL engine."""
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled")
        return None
    telemetry = TelemetryConfig.from_settings(settings)
    if telemetry.start() is None:
        return None
    set_telemetry(telemetry)
    if app is not None:
        telemetry.instrument_fastapi(app)
    telemetry.instrument_logging()
    if settings.sql_configured:
        database._ensure_engine()
        telemetry.instrument_sqlalchemy(database.engine)
    return telemetry


def stop_telemetry() -> None:
    telemetry = get_telemetry()
    if telemetry is not None:
        telemetry.shutdown()
        set_telemetry(None)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: logging, telemetry, schema creation (DATABASE_CREATE_SCHEMA).

    Shutdown: telemetry flush, SQL engine dispose.
    """
    settings = get_settings()
    setup_logging()
    start_telemetry(settings, app)

    if settings.sql_configured and settings.database_create_schema:
        await database.create_schema()
        logger.info("Database schema ensured")

    yield

    stop_telemetry()
    if database.engine is not None:
        await database.dispose_engine()
        logger.info("Database engine disposed")
