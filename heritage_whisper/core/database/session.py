"""
Engine and session factory for the application database.

Connection settings come from ``settings.database``. ``DATABASE_URL`` may be
pasted from the Supabase dashboard as is: ``postgres://`` and
``postgresql://`` URLs are pointed at the asyncpg driver, and plain
``sqlite://`` URLs (tests, local runs) at aiosqlite.
"""

from __future__ import annotations

import logging
import re
from typing import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from heritage_whisper.server.core.config import DatabaseConfig, settings

from .base import Base

logger = logging.getLogger(__name__)

_POSTGRES_URL = re.compile(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://")
_SQLITE_URL = re.compile(r"^sqlite(?:\+[a-z0-9_]+)?://")


def async_database_url(url: str) -> str:
    """Rewrite a Postgres or SQLite URL to its async driver."""
    if _POSTGRES_URL.match(url):
        return _POSTGRES_URL.sub("postgresql+asyncpg://", url, count=1)
    if _SQLITE_URL.match(url):
        return _SQLITE_URL.sub("sqlite+aiosqlite://", url, count=1)
    return url


def build_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the engine; pool settings apply to Postgres only."""
    url = make_url(async_database_url(config.url))
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url, echo=config.echo, connect_args={"check_same_thread": False})
    return create_async_engine(
        url,
        echo=config.echo,
        pool_pre_ping=True,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_recycle=config.pool_recycle,
        connect_args={"statement_cache_size": config.statement_cache_size},
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Responses and background tasks read rows after commit.
    return async_sessionmaker(bind, expire_on_commit=False)


async def create_all(bind: AsyncEngine) -> None:
    """Create every table on ``bind``. Tests use this; deployments run Alembic."""
    from . import entities  # noqa: F401  (registers every table)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = build_engine(settings.database)
async_session_maker = build_session_factory(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections at shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
