"""
Async SQLAlchemy engine and sessions for the ledger database.

Sessions never expire objects on commit and never autoflush: ledger
services flush explicitly and re-read balances after their UPDATEs.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.config import settings

logger = logging.getLogger(__name__)


def _connect_args(database_url: str) -> dict:
    """asyncpg-only options; other drivers get none."""
    if "+asyncpg" not in database_url:
        return {}
    return {
        "statement_cache_size": 0,  # Required for transaction poolers
        "server_settings": {
            # Bounds how long a ledger statement may wait on a row lock
            "statement_timeout": str(settings.db_statement_timeout_ms),
        },
    }


# One connection per session; the transaction pooler does the pooling
engine = create_async_engine(
    settings.database_url,
    poolclass=NullPool,
    echo=not settings.is_production,
    connect_args=_connect_args(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session per request.

    Whatever the endpoint left pending (audit log rows) is committed
    after it returns; on error everything pending is rolled back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session outside a request: startup seeding, notification delivery.

    Usage:
        async with get_db_context() as db:
            await seed_default_tiers(db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.warning("Background database session rolled back")
            raise
