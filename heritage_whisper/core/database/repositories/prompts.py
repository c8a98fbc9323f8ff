"""Prompt repositories."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, select

from ..entities.prompts import ActivePrompt, PromptHistory, UserPrompt
from .base import OwnedRepository, SQLModelRepository


class ActivePromptRepository(OwnedRepository[ActivePrompt]):
    """Repository for generated prompts waiting to be shown."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ActivePrompt)

    async def next_for_user(self, user_id: str, now: datetime) -> Optional[ActivePrompt]:
        """Highest tier, then highest score, among unlocked unexpired prompts not dismissed."""
        stmt = (
            select(ActivePrompt)
            .where(
                ActivePrompt.user_id == user_id,
                ActivePrompt.is_locked == False,  # noqa: E712
                ActivePrompt.expires_at > now,
                ActivePrompt.user_status != "dismissed",
            )
            .order_by(ActivePrompt.tier.desc(), ActivePrompt.prompt_score.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_status(self, user_id: str, status: str) -> List[ActivePrompt]:
        stmt = select(ActivePrompt).where(ActivePrompt.user_id == user_id, ActivePrompt.user_status == status)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(self, user_id: str) -> List[ActivePrompt]:
        stmt = select(ActivePrompt).where(ActivePrompt.user_id == user_id).order_by(ActivePrompt.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def max_queue_position(self, user_id: str) -> int:
        stmt = select(func.max(ActivePrompt.queue_position)).where(ActivePrompt.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def existing_anchor_hashes(self, user_id: str) -> set[str]:
        stmt = select(ActivePrompt.anchor_hash).where(ActivePrompt.user_id == user_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def insert_unique(self, prompts: Sequence[ActivePrompt]) -> List[ActivePrompt]:
        """Insert prompts, skipping those whose anchor hash the user already has."""
        stored: List[ActivePrompt] = []
        seen: dict[str, set[str]] = {}
        for prompt in prompts:
            if prompt.user_id not in seen:
                seen[prompt.user_id] = await self.existing_anchor_hashes(prompt.user_id)
            if prompt.anchor_hash in seen[prompt.user_id]:
                continue
            seen[prompt.user_id].add(prompt.anchor_hash)
            self.session.add(prompt)
            stored.append(prompt)
        if stored:
            await self.session.commit()
        return stored

    async def list_expired(self, now: datetime) -> List[ActivePrompt]:
        stmt = select(ActivePrompt).where(ActivePrompt.expires_at <= now)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class PromptHistoryRepository(SQLModelRepository[PromptHistory]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PromptHistory)

    async def archive(self, prompt: ActivePrompt, *, outcome: str, story_id: Optional[str] = None) -> PromptHistory:
        """Move an active prompt into the history table."""
        entry = PromptHistory(
            user_id=prompt.user_id,
            prompt_text=prompt.prompt_text,
            anchor_hash=prompt.anchor_hash,
            anchor_entity=prompt.anchor_entity,
            anchor_year=prompt.anchor_year,
            tier=prompt.tier,
            memory_type=prompt.memory_type,
            prompt_score=prompt.prompt_score,
            shown_count=prompt.shown_count,
            outcome=outcome,
            story_id=story_id,
            created_at=prompt.created_at,
        )
        self.session.add(entry)
        await self.session.delete(prompt)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry


class UserPromptRepository(OwnedRepository[UserPrompt]):
    """Repository for catalog prompts a user saved."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, UserPrompt)

    async def find_by_text(self, user_id: str, text: str, statuses: Sequence[str]) -> Optional[UserPrompt]:
        stmt = select(UserPrompt).where(
            UserPrompt.user_id == user_id,
            UserPrompt.text == text,
            UserPrompt.status.in_(list(statuses)),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_status(self, user_id: str, status: str) -> List[UserPrompt]:
        stmt = select(UserPrompt).where(UserPrompt.user_id == user_id, UserPrompt.status == status)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def max_queue_position(self, user_id: str) -> int:
        stmt = select(func.max(UserPrompt.queue_position)).where(UserPrompt.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() or 0
