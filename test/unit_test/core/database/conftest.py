"""Test configuration for database unit tests.

Fixtures run the database layer against in-memory SQLite.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel.pool import StaticPool

from heritage_whisper.core.database import create_all
from heritage_whisper.core.database.entities import User


@pytest_asyncio.fixture
async def in_memory_engine() -> AsyncGenerator:
    """Create in-memory SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def in_memory_session(in_memory_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create in-memory SQLite session for testing."""
    async with async_sessionmaker(in_memory_engine, expire_on_commit=False)() as session:
        yield session


@pytest_asyncio.fixture
async def storyteller(in_memory_session: AsyncSession) -> User:
    user = User(id="user-1", email="margaret@example.com", name="Margaret", birth_year=1950)
    in_memory_session.add(user)
    await in_memory_session.commit()
    return user
