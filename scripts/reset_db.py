import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from tagsense.core.config import get_database_settings
from tagsense.db.models import Base


async def reset_database():
    """Drop and recreate all TagSense tables."""
    settings = get_database_settings()

    print(f"Connecting to database: {settings.host}:{settings.port}/{settings.name}")
    print("WARNING: This will DROP ALL TABLES. Ctrl+C to cancel in 5 seconds...")
    await asyncio.sleep(5)

    engine = create_async_engine(settings.async_url, echo=True)

    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

        print("Dropping all tables...")
        await conn.run_sync(Base.metadata.drop_all)
        print("Application tables dropped.")

        print("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        print("Application tables created.")

    await engine.dispose()
    print("Database reset complete.")


if __name__ == "__main__":
    try:
        asyncio.run(reset_database())
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
    except Exception as e:
        print(f"\nError: {e}")
