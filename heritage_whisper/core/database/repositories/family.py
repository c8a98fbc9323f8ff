"""Family sharing repositories."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete as sa_delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.family import FamilyInvite, FamilyMember, FamilyPrompt, FamilySession
from .base import OwnedRepository, SQLModelRepository


class FamilyMemberRepository(OwnedRepository[FamilyMember]):
    """Repository for a storyteller's family members."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, FamilyMember)

    async def list_for_user(self, user_id: str) -> List[FamilyMember]:
        stmt = select(FamilyMember).where(FamilyMember.user_id == user_id).order_by(FamilyMember.invited_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_email(self, user_id: str, email: str) -> Optional[FamilyMember]:
        stmt = select(FamilyMember).where(FamilyMember.user_id == user_id, FamilyMember.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_notifiable(self, user_id: str) -> List[FamilyMember]:
        """Active members of one storyteller who accept notification emails."""
        stmt = select(FamilyMember).where(
            FamilyMember.user_id == user_id,
            FamilyMember.status == "active",
            FamilyMember.email_notifications == True,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_due_for_digest(self, cutoff: datetime) -> List[FamilyMember]:
        """Active members never notified, or last notified before ``cutoff``."""
        stmt = select(FamilyMember).where(
            FamilyMember.status == "active",
            FamilyMember.email_notifications == True,  # noqa: E712
            (FamilyMember.last_story_notification_sent_at.is_(None))
            | (FamilyMember.last_story_notification_sent_at < cutoff),
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class FamilyInviteRepository(SQLModelRepository[FamilyInvite]):
    """Repository for invite tokens."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, FamilyInvite)

    async def get_by_token(self, token: str) -> Optional[FamilyInvite]:
        stmt = select(FamilyInvite).where(FamilyInvite.token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def latest_for_member(self, member_id: str) -> Optional[FamilyInvite]:
        stmt = (
            select(FamilyInvite)
            .where(FamilyInvite.family_member_id == member_id)
            .order_by(FamilyInvite.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def reusable_for_member(self, member_id: str, now: datetime) -> Optional[FamilyInvite]:
        """An unused invite that is still valid."""
        stmt = (
            select(FamilyInvite)
            .where(
                FamilyInvite.family_member_id == member_id,
                FamilyInvite.used_at.is_(None),
                FamilyInvite.expires_at > now,
            )
            .order_by(FamilyInvite.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def delete_for_member(self, member_id: str) -> None:
        await self.session.execute(sa_delete(FamilyInvite).where(FamilyInvite.family_member_id == member_id))
        await self.session.commit()


class FamilySessionRepository(SQLModelRepository[FamilySession]):
    """Repository for family browser sessions."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, FamilySession)

    async def get_by_token(self, token: str) -> Optional[FamilySession]:
        stmt = select(FamilySession).where(FamilySession.token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_for_member(self, member_id: str) -> None:
        await self.session.execute(sa_delete(FamilySession).where(FamilySession.family_member_id == member_id))
        await self.session.commit()

    async def purge_expired(self, now: datetime) -> int:
        result = await self.session.execute(
            sa_delete(FamilySession).where(
                (FamilySession.expires_at < now) | (FamilySession.absolute_expires_at < now)
            )
        )
        await self.session.commit()
        return result.rowcount or 0


class FamilyPromptRepository(SQLModelRepository[FamilyPrompt]):
    """Repository for questions submitted by family contributors."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, FamilyPrompt)

    async def list_for_storyteller(self, user_id: str, status: Optional[str] = None) -> List[FamilyPrompt]:
        stmt = select(FamilyPrompt).where(FamilyPrompt.storyteller_user_id == user_id)
        if status:
            stmt = stmt.where(FamilyPrompt.status == status)
        stmt = stmt.order_by(FamilyPrompt.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_for_storyteller(self, prompt_id: str, user_id: str) -> Optional[FamilyPrompt]:
        stmt = select(FamilyPrompt).where(FamilyPrompt.id == prompt_id, FamilyPrompt.storyteller_user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_for_member(self, member_id: str) -> None:
        await self.session.execute(sa_delete(FamilyPrompt).where(FamilyPrompt.family_member_id == member_id))
        await self.session.commit()
