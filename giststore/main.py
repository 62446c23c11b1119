"""Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from sqlalchemy import text

from . import __version__
from .api import gists_router
from .core.config import Settings, get_settings
from .core.logging_config import setup_logging
from .database import Database, get_database
from .exceptions import GistStoreException
from .middleware.exception_handler import gist_store_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .services import DiagramService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around its own store handle.

    The database is opened in the lifespan, so nothing touches storage
    until the app starts serving.
    """
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle for the gist store API."""
        logger.info(f"Environment: {settings.environment.value}")
        for warning in settings.production_warnings():
            logger.warning(warning)

        database = Database(settings)
        # StorageFailureError here aborts startup with the cause logged.
        database.open()
        app.state.database = database
        app.state.started_at = time.monotonic()

        logger.info(
            "Gist store API started | env=%s | persistence=%s",
            settings.environment.value,
            database.strategy.describe(),
        )

        yield  # App runs here

        database.close()
        logger.info("Gist store API stopped")

    app = FastAPI(
        title="Gist Store API",
        description=(
            "Versioned diagram storage behind a GitHub-Gist-shaped API. "
            "Every write appends an immutable version; reads reconstruct the "
            "latest state per file, page through history, and compare versions."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    # Register exception handlers
    app.add_exception_handler(GistStoreException, gist_store_exception_handler)

    # Include routers
    app.include_router(gists_router)

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "name": "Gist Store API",
            "version": __version__,
            "status": "running"
        }

    @app.get("/health")
    def health_check(database: Database = Depends(get_database)):
        """Health check endpoint returning database status, uptime, and diagram count.

        Never raises; returns degraded status on DB failure so load balancers
        can still probe without receiving 5xx.
        """
        db_status = "ok"
        diagram_count = 0
        try:
            with database.session() as db:
                db.execute(text("SELECT 1"))
            diagram_count = DiagramService(database).count_diagrams()
        except Exception:
            logger.warning("Health check could not reach the database", exc_info=True)
            db_status = "error"

        return {
            "status": "healthy" if db_status == "ok" else "degraded",
            "db": db_status,
            "uptime_seconds": round(time.monotonic() - app.state.started_at),
            "version": __version__,
            "diagram_count": diagram_count,
        }

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(create_app(_settings), host=_settings.host, port=_settings.port)
