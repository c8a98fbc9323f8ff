"""
Centralized database layer for HeritageWhisper.

Structure:
- entities/: Database entity models organized by table/business logic
- repositories/: Data access layer organized by table/business logic
- session.py: Settings-driven engine, session factory and table creation
"""

from .base import Base, utc_now
from .session import (
    async_database_url,
    async_session_maker,
    build_engine,
    build_session_factory,
    create_all,
    dispose_engine,
    engine,
    get_session,
)

__all__ = [
    "Base",
    "async_database_url",
    "async_session_maker",
    "build_engine",
    "build_session_factory",
    "create_all",
    "dispose_engine",
    "engine",
    "get_session",
    "utc_now",
]
