"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers the import router.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from talent_import import __version__
from talent_import.api.routers import imports
from talent_import.core.config import settings
from talent_import.core.logging_config import configure_logging

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the entity tables on startup unless SKIP_DB_INIT=1."""
    if os.getenv("SKIP_DB_INIT") == "1":
        logger.info("SKIP_DB_INIT=1 detected; skipping database bootstrap during startup")
        yield
        return

    from talent_import.db.session import create_tables

    try:
        create_tables()
        logger.info("Database tables ready")
    except Exception:
        logger.exception("Failed to initialize database tables; the application cannot start")
        raise

    yield


app = FastAPI(
    title="Talent Import API",
    version=__version__,
    description="Bulk import of candidates, jobs and clients from CSV and Excel spreadsheets",
    lifespan=lifespan,
)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
allowed_origins = [origin.strip() for origin in allowed_origins]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(imports.router)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": __version__,
        "ai_mapping": settings.llm_configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
