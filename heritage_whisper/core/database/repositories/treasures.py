"""Treasure repository."""

from __future__ import annotations

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.treasures import Treasure
from .base import OwnedRepository


class TreasureRepository(OwnedRepository[Treasure]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Treasure)

    async def list_for_user(self, user_id: str) -> List[Treasure]:
        stmt = select(Treasure).where(Treasure.user_id == user_id).order_by(Treasure.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
