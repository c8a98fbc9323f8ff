"""Activity event repository."""

from __future__ import annotations

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.activity import ActivityEvent
from .base import SQLModelRepository


class ActivityEventRepository(SQLModelRepository[ActivityEvent]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ActivityEvent)

    async def list_recent(self, user_id: str, limit: int = 20) -> List[ActivityEvent]:
        stmt = (
            select(ActivityEvent)
            .where(ActivityEvent.user_id == user_id)
            .order_by(ActivityEvent.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
