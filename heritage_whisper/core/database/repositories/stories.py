"""Story repository."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.stories import Story
from .base import OwnedRepository, paginate


class StoryRepository(OwnedRepository[Story]):
    """Repository for stories, always scoped to an owner."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Story)

    async def list_for_user(
        self, user_id: str, *, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[Story]:
        """Stories newest year first, then newest recording first."""
        stmt = (
            select(Story)
            .where(Story.user_id == user_id)
            .order_by(Story.story_year.desc(), Story.created_at.desc())
        )
        stmt = paginate(stmt, limit, offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_created_since(self, user_id: str, since: datetime) -> List[Story]:
        stmt = (
            select(Story)
            .where(Story.user_id == user_id, Story.created_at > since)
            .order_by(Story.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_chronological(self, user_id: str) -> List[Story]:
        stmt = select(Story).where(Story.user_id == user_id).order_by(Story.created_at.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_years(self, user_id: str) -> List[int]:
        stmt = select(Story.story_year).where(Story.user_id == user_id, Story.story_year.is_not(None))
        result = await self.session.execute(stmt)
        return [year for year in result.scalars().all() if year is not None]

    async def list_missing_duration(self, limit: Optional[int] = None) -> List[Story]:
        """Stories with audio whose duration was never measured."""
        stmt = (
            select(Story)
            .where(Story.audio_url.is_not(None), (Story.duration_seconds == 0) | (Story.duration_seconds.is_(None)))
            .order_by(Story.created_at.asc())
        )
        stmt = paginate(stmt, limit, None)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
