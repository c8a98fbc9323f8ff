"""Share link repository."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.shares import SharedAccess
from .base import OwnedRepository


class SharedAccessRepository(OwnedRepository[SharedAccess]):
    owner_column = "owner_user_id"

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SharedAccess)

    async def list_for_owner(self, owner_id: str) -> List[SharedAccess]:
        stmt = (
            select(SharedAccess)
            .where(SharedAccess.owner_user_id == owner_id)
            .order_by(SharedAccess.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_for_email(self, owner_id: str, email: str) -> Optional[SharedAccess]:
        stmt = select(SharedAccess).where(
            SharedAccess.owner_user_id == owner_id,
            SharedAccess.shared_with_email == email,
            SharedAccess.is_active == True,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_token(self, token: str) -> Optional[SharedAccess]:
        stmt = select(SharedAccess).where(SharedAccess.share_token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
