"""
Service for prompt selection, storage and the user's prompt queue.

Generated prompts live in ``active_prompts`` until they are used, skipped too
often or expire; they are then moved to ``prompt_history``. Catalog prompts a
user saves live in ``user_prompts``. Queue positions are shared across both
tables so that the queue reads as one list.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import ActivePrompt, Story, User, UserPrompt
from heritage_whisper.core.database.repositories import (
    ActivePromptRepository,
    PromptHistoryRepository,
    StoryRepository,
    UserPromptRepository,
)
from heritage_whisper.core.errors import NotFoundError
from heritage_whisper.core.models.io import (
    PromptActionRequest,
    PromptActionResponse,
    PromptRead,
    PromptSource,
    SavedPromptRead,
)
from heritage_whisper.prompts.fallback import decade_fallback
from heritage_whisper.prompts.tier1 import TIER1_EXPIRY_DAYS, generate_anchor_hash, generate_tier1_prompts
from heritage_whisper.prompts.tier3 import (
    TIER3_EXPIRY_DAYS,
    Tier3Analyzer,
    context_note_for,
    is_locked,
    is_milestone,
)

logger = logging.getLogger(__name__)

MAX_SKIPS = 3


def _read(prompt: ActivePrompt) -> PromptRead:
    return PromptRead.model_validate(prompt)


class PromptService:
    """Service for generated and catalog prompts of one storyteller."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.active = ActivePromptRepository(session)
        self.history = PromptHistoryRepository(session)
        self.saved = UserPromptRepository(session)
        self.stories = StoryRepository(session)

    # -----------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------

    async def next_prompt(self, user: User, *, now: Optional[datetime] = None) -> Optional[PromptRead]:
        """
        Pick the prompt to show next.

        The highest tier wins, then the highest score. When nothing is active and
        the storyteller's birth year is known, a decade prompt is suggested.
        """
        now = now or utc_now()
        prompt = await self.active.next_for_user(user.id, now)
        if prompt is not None:
            return _read(prompt)

        if not user.birth_year:
            return None
        years = await self.stories.list_years(user.id)
        fallback = decade_fallback(user.birth_year, years, current_year=now.year)
        if fallback is None:
            return None
        return PromptRead(
            id=None,
            prompt_text=fallback.prompt_text,
            context_note=fallback.context_note,
            anchor_entity=fallback.anchor_entity,
            anchor_year=fallback.decade,
            tier=fallback.tier,
        )

    async def skip_prompt(self, user: User, prompt_id: str) -> Tuple[bool, Optional[PromptRead]]:
        """
        Record that the storyteller skipped a prompt.

        Returns:
            ``(retired, next_prompt)``; a prompt skipped ``MAX_SKIPS`` times is archived.
        """
        prompt = await self.active.get_for_user(prompt_id, user.id)
        if prompt is None:
            raise NotFoundError("Prompt not found")

        prompt.shown_count = (prompt.shown_count or 0) + 1
        prompt.last_shown_at = utc_now()
        retired = prompt.shown_count >= MAX_SKIPS
        if retired:
            await self.history.archive(prompt, outcome="skipped")
            logger.info(f"Retired prompt {prompt_id} after {MAX_SKIPS} skips")
        else:
            await self.active.update(prompt)

        return retired, await self.next_prompt(user)

    async def mark_prompt_used(self, user_id: str, prompt_id: Optional[str], story_id: str) -> bool:
        """Archive the generated prompt a story answered. Unknown ids are ignored."""
        if not prompt_id:
            return False
        prompt = await self.active.get_for_user(prompt_id, user_id)
        if prompt is None:
            return False
        await self.history.archive(prompt, outcome="used", story_id=story_id)
        return True

    async def expire_prompts(self, *, now: Optional[datetime] = None) -> int:
        """Move every expired prompt into the history table."""
        now = now or utc_now()
        expired = await self.active.list_expired(now)
        for prompt in expired:
            await self.history.archive(prompt, outcome="expired")
        return len(expired)

    # -----------------------------------------------------------------
    # Queue and archive
    # -----------------------------------------------------------------

    async def _next_queue_position(self, user_id: str) -> int:
        return max(await self.active.max_queue_position(user_id), await self.saved.max_queue_position(user_id)) + 1

    async def queue_prompt(self, user: User, request: PromptActionRequest) -> PromptActionResponse:
        now = utc_now()
        position = await self._next_queue_position(user.id)

        if request.source == PromptSource.AI:
            prompt = await self.active.get_for_user(request.prompt_id or "", user.id)
            if prompt is None:
                raise NotFoundError("Prompt not found")
            if prompt.user_status == "queued":
                return PromptActionResponse(
                    status="already_queued", prompt_id=prompt.id, queue_position=prompt.queue_position
                )
            prompt.user_status = "queued"
            prompt.queue_position = position
            prompt.queued_at = now
            prompt.dismissed_at = None
            await self.active.update(prompt)
            return PromptActionResponse(status="queued", prompt_id=prompt.id, queue_position=position)

        existing = await self.saved.find_by_text(user.id, request.text or "", ("queued", "dismissed"))
        if existing is not None and existing.status == "queued":
            return PromptActionResponse(
                status="already_queued", prompt_id=existing.id, queue_position=existing.queue_position
            )
        if existing is None:
            existing = UserPrompt(user_id=user.id, text=request.text or "", category=request.category or "")
        existing.status = "queued"
        existing.queue_position = position
        existing.queued_at = now
        existing.dismissed_at = None
        saved = await self.saved.update(existing)
        return PromptActionResponse(status="queued", prompt_id=saved.id, queue_position=position)

    async def dismiss_prompt(self, user: User, request: PromptActionRequest) -> PromptActionResponse:
        now = utc_now()

        if request.source == PromptSource.AI:
            prompt = await self.active.get_for_user(request.prompt_id or "", user.id)
            if prompt is None:
                raise NotFoundError("Prompt not found")
            if prompt.user_status == "dismissed":
                return PromptActionResponse(status="already_dismissed", prompt_id=prompt.id)
            prompt.user_status = "dismissed"
            prompt.dismissed_at = now
            prompt.queue_position = None
            await self.active.update(prompt)
            return PromptActionResponse(status="dismissed", prompt_id=prompt.id)

        existing = await self.saved.find_by_text(user.id, request.text or "", ("queued", "dismissed"))
        if existing is not None and existing.status == "dismissed":
            return PromptActionResponse(status="already_dismissed", prompt_id=existing.id)
        if existing is None:
            existing = UserPrompt(user_id=user.id, text=request.text or "", category=request.category or "")
        existing.status = "dismissed"
        existing.dismissed_at = now
        existing.queue_position = None
        saved = await self.saved.update(existing)
        return PromptActionResponse(status="dismissed", prompt_id=saved.id)

    async def delete_saved_prompt(self, user: User, prompt_id: str) -> None:
        saved = await self.saved.get_for_user(prompt_id, user.id)
        if saved is None:
            raise NotFoundError("Prompt not found")
        saved.status = "deleted"
        saved.queue_position = None
        await self.saved.update(saved)

    async def list_queue(self, user: User) -> List[SavedPromptRead]:
        ai = await self.active.list_by_status(user.id, "queued")
        catalog = await self.saved.list_by_status(user.id, "queued")
        items = [_saved_from_active(p) for p in ai] + [_saved_from_catalog(p) for p in catalog]
        return sorted(items, key=lambda item: item.queue_position or 0)

    async def list_archive(self, user: User) -> List[SavedPromptRead]:
        ai = await self.active.list_by_status(user.id, "dismissed")
        catalog = await self.saved.list_by_status(user.id, "dismissed")
        items = [_saved_from_active(p) for p in ai] + [_saved_from_catalog(p) for p in catalog]
        return sorted(items, key=lambda item: item.dismissed_at or datetime.min, reverse=True)

    # -----------------------------------------------------------------
    # Generation
    # -----------------------------------------------------------------

    async def store_tier1_prompts(self, user_id: str, story: Story) -> List[ActivePrompt]:
        """Generate template prompts from a new story and store those with a new anchor."""
        generated = generate_tier1_prompts(story.transcription or "", story.story_year)
        if not generated:
            return []
        expires_at = utc_now() + timedelta(days=TIER1_EXPIRY_DAYS)
        rows = [
            ActivePrompt(
                user_id=user_id,
                prompt_text=prompt.text,
                context_note=prompt.context,
                anchor_entity=prompt.entity,
                anchor_year=story.story_year,
                anchor_hash=prompt.anchor_hash,
                tier=prompt.tier,
                memory_type=prompt.memory_type,
                prompt_score=prompt.prompt_score,
                score_reason=f"{prompt.memory_type} template",
                model_version="tier1-templates",
                expires_at=expires_at,
            )
            for prompt in generated
        ]
        stored = await self.active.insert_unique(rows)
        logger.info(f"Stored {len(stored)} of {len(rows)} tier 1 prompts for story {story.id}")
        return stored

    async def run_tier3_analysis(self, user: User, analyzer: Tier3Analyzer) -> List[ActivePrompt]:
        """Analyse all stories at a milestone and store the resulting prompts."""
        story_count = user.story_count or 0
        if not is_milestone(story_count):
            return []
        stories = [story for story in await self.stories.list_chronological(user.id) if story.transcription]
        analysis = await analyzer.analyze(stories, story_count)
        if not analysis.prompts:
            return []

        expires_at = utc_now() + timedelta(days=TIER3_EXPIRY_DAYS)
        rows = [
            ActivePrompt(
                user_id=user.id,
                prompt_text=draft.prompt,
                context_note=context_note_for(story_count),
                anchor_entity=draft.anchor_entity,
                anchor_hash=generate_anchor_hash(draft.intimacy_type.value, draft.anchor_entity, None),
                tier=3,
                memory_type=draft.intimacy_type.value,
                prompt_score=draft.recording_likelihood,
                score_reason=draft.reasoning or None,
                model_version=analysis.model_version,
                expires_at=expires_at,
                is_locked=is_locked(story_count, index, is_paid=user.is_paid),
            )
            for index, draft in enumerate(analysis.prompts)
        ]
        stored = await self.active.insert_unique(rows)
        logger.info(f"Stored {len(stored)} tier 3 prompts for user {user.id} at story {story_count}")
        return stored

    async def unlock_prompts(self, user_id: str, *, commit: bool = True) -> int:
        """Unlock paywalled prompts once the storyteller pays."""
        prompts = [p for p in await self.active.list_for_user(user_id) if p.is_locked]
        for prompt in prompts:
            prompt.is_locked = False
            self.session.add(prompt)
        if prompts and commit:
            await self.session.commit()
        return len(prompts)


def _saved_from_active(prompt: ActivePrompt) -> SavedPromptRead:
    return SavedPromptRead(
        id=prompt.id,
        source=PromptSource.AI,
        prompt_text=prompt.prompt_text,
        category=prompt.memory_type,
        tier=prompt.tier,
        queue_position=prompt.queue_position,
        queued_at=prompt.queued_at,
        dismissed_at=prompt.dismissed_at,
    )


def _saved_from_catalog(prompt: UserPrompt) -> SavedPromptRead:
    return SavedPromptRead(
        id=prompt.id,
        source=PromptSource.CATALOG,
        prompt_text=prompt.text,
        category=prompt.category,
        queue_position=prompt.queue_position,
        queued_at=prompt.queued_at,
        dismissed_at=prompt.dismissed_at,
    )
