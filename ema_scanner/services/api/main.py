"""FastAPI status service exposing health, version, and a read-only view of scan state."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from ema_scanner.core.config import get_settings
from ema_scanner.core.logging import configure_logging
from ema_scanner.core.state import ScanStateStore

settings = get_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Log startup metadata for operational visibility."""

    logger.info(
        "api_startup",
        extra={"service": "api", "env": settings.ENV, "version": settings.VERSION},
    )
    yield


app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)


@app.get("/health")
def health() -> dict[str, str]:
    """Return process liveness status."""

    return {"status": "ok"}


@app.get("/version")
def version() -> dict[str, str]:
    """Return application metadata from shared settings."""

    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "env": settings.ENV,
    }


@app.get("/status")
def status() -> dict[str, Any]:
    """Summarize the persisted scan state written by the scanner process."""

    state = ScanStateStore(settings.STATE_PATH).load()
    evaluated = [value for value in state.values() if value is not None]
    latest = max(evaluated) if evaluated else None
    return {
        "state_path": settings.STATE_PATH,
        "interval": settings.ema_interval().value,
        "ema_short": settings.EMA_SHORT_PERIOD,
        "ema_long": settings.EMA_LONG_PERIOD,
        "instruments_tracked": len(state),
        "instruments_evaluated": len(evaluated),
        "latest_close_time": latest.isoformat() if latest is not None else None,
    }
