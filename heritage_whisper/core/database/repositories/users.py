"""User repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..base import utc_now
from ..entities.activity import ActivityEvent
from ..entities.billing import StripeCustomer
from ..entities.family import FamilyInvite, FamilyMember, FamilyPrompt, FamilySession
from ..entities.prompts import ActivePrompt, PromptHistory, UserPrompt
from ..entities.shares import SharedAccess
from ..entities.stories import Story
from ..entities.treasures import Treasure
from ..entities.users import User
from .base import SQLModelRepository


class UserRepository(SQLModelRepository[User]):
    """Repository for storyteller accounts."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def adjust_story_count(self, user: User, delta: int) -> User:
        """Move ``story_count`` by ``delta``, never below zero."""
        user.story_count = max(0, (user.story_count or 0) + delta)
        user.updated_at = utc_now()
        return await self.update(user)

    async def delete_account(self, user_id: str) -> None:
        """Delete the user and every row they own in one transaction, children first."""
        member_ids = select(FamilyMember.id).where(FamilyMember.user_id == user_id)
        statements = [
            sa_delete(FamilySession).where(FamilySession.family_member_id.in_(member_ids)),
            sa_delete(FamilyInvite).where(FamilyInvite.family_member_id.in_(member_ids)),
            sa_delete(FamilyPrompt).where(FamilyPrompt.storyteller_user_id == user_id),
            sa_delete(FamilyMember).where(FamilyMember.user_id == user_id),
            sa_delete(ActivityEvent).where(ActivityEvent.user_id == user_id),
            sa_delete(SharedAccess).where(SharedAccess.owner_user_id == user_id),
            sa_delete(ActivePrompt).where(ActivePrompt.user_id == user_id),
            sa_delete(PromptHistory).where(PromptHistory.user_id == user_id),
            sa_delete(UserPrompt).where(UserPrompt.user_id == user_id),
            sa_delete(Treasure).where(Treasure.user_id == user_id),
            sa_delete(Story).where(Story.user_id == user_id),
            sa_delete(StripeCustomer).where(StripeCustomer.user_id == user_id),
            sa_delete(User).where(User.id == user_id),
        ]
        try:
            for stmt in statements:
                await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
