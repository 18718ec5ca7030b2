"""FastAPI application factory.

Creates and configures the FastAPI app:
  - Includes route routers (API, upload)
  - Initializes the database on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from analytics_ingest.config import settings
from analytics_ingest.database import init_db
from analytics_ingest.routes.api import router as api_router
from analytics_ingest.routes.upload import router as upload_router

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: initialize database on startup."""
    logger.info("Starting analytics ingest service on port %s", settings.app_port)
    init_db()
    logger.info(
        "Upload limits: %d MB per file, %d rows per sheet",
        settings.max_upload_size_mb,
        settings.max_rows_per_sheet,
    )
    yield
    logger.info("Shutting down analytics ingest service.")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Analytics Export Ingest",
        description="Parses social analytics spreadsheet exports into normalized datasets.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    application.include_router(api_router)
    application.include_router(upload_router)
    return application


app = create_app()
