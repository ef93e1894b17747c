"""
LegianOS Database Layer
SQLite (aiosqlite) holds conversation memory by default.
Supabase can replace it for hosted deployments; see services/memory.py.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from legianos.config import settings
from legianos import models  # noqa: F401  registers tables on SQLModel.metadata

logger = logging.getLogger("legianos")


def _get_connect_args() -> dict:
    """Get database-specific connection arguments."""
    if "sqlite" in settings.db_url:
        return {"check_same_thread": False}
    return {}


engine = create_async_engine(
    settings.db_url,
    echo=False,
    future=True,
    pool_pre_ping=True,  # Verify connections before use
    connect_args=_get_connect_args(),
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def create_db_and_tables(bind=None):
    """Create the schema. Idempotent."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("database_tables_created", extra={"db_url": str((bind or engine).url)})


async def verify_database_connections() -> dict:
    """Health check for the SQL store."""
    status = {"sqlite": False, "supabase": bool(settings.supabase_url), "errors": []}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        status["sqlite"] = True
    except Exception as e:
        status["errors"].append(f"SQLite: {e}")

    return status
