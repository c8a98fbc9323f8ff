"""Unit tests for the settings-driven engine and session factory."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.session import (
    async_database_url,
    build_engine,
    build_session_factory,
    get_session,
)
from heritage_whisper.server.core.config import DatabaseConfig


class TestAsyncDatabaseUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("postgres://u:p@db.supabase.co:5432/postgres", "postgresql+asyncpg://u:p@db.supabase.co:5432/postgres"),
            ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql+psycopg2://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql+asyncpg://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("sqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
            ("sqlite+aiosqlite:///local.db", "sqlite+aiosqlite:///local.db"),
            ("mysql+aiomysql://u:p@host/db", "mysql+aiomysql://u:p@host/db"),
        ],
    )
    def test_rewrites_to_async_driver(self, url, expected):
        assert async_database_url(url) == expected


class TestBuildEngine:
    @pytest.mark.asyncio
    async def test_sqlite_uses_aiosqlite(self):
        engine = build_engine(DatabaseConfig(url="sqlite:///:memory:", pool_size=50))

        assert engine.url.drivername == "sqlite+aiosqlite"
        assert engine.dialect.name == "sqlite"
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_postgres_uses_configured_pool(self):
        config = DatabaseConfig(url="postgres://u:p@localhost/db", pool_size=3, max_overflow=2, echo=True)

        engine = build_engine(config)

        assert engine.url.drivername == "postgresql+asyncpg"
        assert engine.pool.size() == 3
        assert engine.echo is True
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_session_factory_keeps_rows_loaded_after_commit(self):
        engine = build_engine(DatabaseConfig(url="sqlite:///:memory:"))

        factory = build_session_factory(engine)

        assert factory.kw["expire_on_commit"] is False
        async with factory() as session:
            assert isinstance(session, AsyncSession)
        await engine.dispose()


class TestGetSession:
    @pytest.mark.asyncio
    async def test_yields_session(self):
        generator = get_session()
        session = await generator.__anext__()

        assert isinstance(session, AsyncSession)
        await generator.aclose()
