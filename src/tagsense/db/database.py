"""Database engine and session factory for the SQL stores.

The engine is created once at startup from ``DatabaseSettings``; stores
receive the session factory and open their own short-lived sessions.
"""

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tagsense.core.config import DatabaseSettings, get_database_settings
from tagsense.utils import get_logger

logger = get_logger(__name__)

# Global engine instance
_engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def describe_target(settings: DatabaseSettings) -> str:
    """Connection target for log lines, with the password masked."""
    return make_url(settings.async_url).render_as_string(hide_password=True)


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    """Create the async engine; no connection is opened until first use."""
    return create_async_engine(
        settings.async_url,
        echo=settings.echo,  # Set DATABASE_ECHO=true for SQL debugging
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_pre_ping=True,  # Verify connections before use
    )


async def init_db(settings: DatabaseSettings | None = None) -> None:
    """Initialize the engine and session factory, and ensure pgvector exists.

    Called once from the application lifespan.
    """
    global _engine, AsyncSessionLocal

    settings = settings or get_database_settings()
    logger.info(f"Connecting to database at {describe_target(settings)}")

    _engine = build_engine(settings)
    AsyncSessionLocal = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # Create pgvector extension if not exists
    async with _engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        logger.info("pgvector extension ensured")


async def close_db() -> None:
    """Dispose of the engine at application shutdown."""
    global _engine, AsyncSessionLocal

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        AsyncSessionLocal = None
        logger.info("Database connection closed")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used by the SQL stores.

    Stores open one session per call, so concurrent signal lookups never
    share a session.
    """
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return AsyncSessionLocal


async def check_db_connection() -> bool:
    """Return True if the database answers ``SELECT 1``."""
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
