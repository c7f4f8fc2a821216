"""Database setup."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cardescrow.store._tables import Base

logger = logging.getLogger(__name__)


async def create_database(
    url: str = "sqlite+aiosqlite:///./cardescrow.db",
    echo: bool = False,
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables if missing and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("database ready at %s", engine.url.render_as_string(hide_password=True))
    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = ("create_database",)
