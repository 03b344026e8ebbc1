"""FastAPI application entry point.

This module creates and configures the FastAPI application for TagSense.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tagsense.api import api_router
from tagsense.core.config import get_app_settings
from tagsense.core.embedding import close_embedding_service
from tagsense.db import check_db_connection, close_db, init_db
from tagsense.utils import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings = get_app_settings()

    setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    yield

    logger.info("Shutting down...")
    await close_embedding_service()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_app_settings()

    app = FastAPI(
        title="TagSense API",
        description="Multi-signal tag recommendations for workspace projects and folders",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Local frontends on any port
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        db_healthy = await check_db_connection()
        return {
            "status": "healthy" if db_healthy else "degraded",
            "database": "connected" if db_healthy else "disconnected",
            "version": settings.app_version,
        }

    return app


# Create application instance
app = create_app()


def run():
    """Run the application using uvicorn.

    This function is called when running the `tagsense` command.
    """
    import uvicorn

    settings = get_app_settings()
    # uvicorn has no TRACE/SUCCESS levels
    uvicorn_level = {"TRACE": "trace", "SUCCESS": "info"}.get(
        settings.log_level, settings.log_level.lower()
    )
    uvicorn.run(
        "tagsense.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.debug,
        reload_dirs=["src"],
        log_level=uvicorn_level,
    )


if __name__ == "__main__":
    run()
