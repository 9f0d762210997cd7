"""
Database setup.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from checkout.store._tables import Base

logger = logging.getLogger(__name__)

SHARED_CONNECTION_LOCK = "checkout.shared_connection_lock"


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """
    Create database schema and return (session_factory, engine).

    Note: an in-memory SQLite database lives in one connection, so it gets
    a StaticPool shared by every session. Sessions on such an engine share
    one transaction too; the factory carries a lock that the store holds for
    the lifetime of each session.
    """
    info = {}
    if ":memory:" in url:
        engine = create_async_engine(url, echo=False, poolclass=StaticPool)
        info[SHARED_CONNECTION_LOCK] = asyncio.Lock()
    else:
        engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.debug("Database schema ready at %s", engine.url.render_as_string(hide_password=True))
    return async_sessionmaker(engine, expire_on_commit=False, info=info), engine


def shared_connection_lock(session_factory: async_sessionmaker[AsyncSession]) -> asyncio.Lock | None:
    """Lock serializing sessions of a single-connection engine, None for pooled engines."""
    return session_factory.kw.get("info", {}).get(SHARED_CONNECTION_LOCK)


__all__ = ("create_database", "shared_connection_lock")
