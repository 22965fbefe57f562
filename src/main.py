"""
FastAPI Application

Main entry point for the Swapt Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from src.config import get_settings
from src.config.logging import configure_logging
from src.serving.api import create_api_app

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging(settings.monitoring.log_level)

    storage = settings.storage
    logger.info(
        "Starting Swapt Analytics API",
        environment=settings.app_env,
        cache_path=str(storage.stats_path),
    )

    yield

    logger.info("Shutting down...")


app = create_api_app(settings, lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
