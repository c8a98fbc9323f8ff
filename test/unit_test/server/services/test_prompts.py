"""Unit tests for PromptService: selection, skipping, the queue and generation."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import ActivePrompt, PromptHistory, Story, UserPrompt
from heritage_whisper.core.errors import NotFoundError
from heritage_whisper.core.models.io import PromptActionRequest, PromptSource
from heritage_whisper.prompts.tier3 import Tier3Analyzer
from heritage_whisper.server.services.prompts import MAX_SKIPS, PromptService

pytestmark = pytest.mark.asyncio

TRANSCRIPT = (
    "My father taught me to fix engines in his workshop. "
    'Coach Miller said I was stubborn, and he always told me "measure twice and cut once" before a race. '
    "I felt so proud when we won."
)


async def add_prompt(session, user, **overrides) -> ActivePrompt:
    values = dict(
        user_id=user.id,
        prompt_text="What did Coach Miller teach you?",
        anchor_hash=uuid4().hex,
        tier=1,
        prompt_score=70,
        expires_at=utc_now() + timedelta(days=7),
    )
    values.update(overrides)
    prompt = ActivePrompt(**values)
    session.add(prompt)
    await session.commit()
    await session.refresh(prompt)
    return prompt


class TestNextPrompt:
    async def test_highest_tier_then_score_wins(self, session, user):
        await add_prompt(session, user, anchor_hash="a", tier=1, prompt_score=95)
        await add_prompt(session, user, anchor_hash="b", tier=3, prompt_score=60, prompt_text="Tier three")
        await add_prompt(session, user, anchor_hash="c", tier=3, prompt_score=80, prompt_text="Best tier three")

        prompt = await PromptService(session).next_prompt(user)

        assert prompt.prompt_text == "Best tier three"

    async def test_locked_expired_and_dismissed_are_skipped(self, session, user):
        await add_prompt(session, user, anchor_hash="a", tier=3, is_locked=True)
        await add_prompt(session, user, anchor_hash="b", tier=3, expires_at=utc_now() - timedelta(days=1))
        await add_prompt(session, user, anchor_hash="c", tier=3, user_status="dismissed")
        await add_prompt(session, user, anchor_hash="d", tier=1, prompt_text="Still open")

        prompt = await PromptService(session).next_prompt(user)

        assert prompt.prompt_text == "Still open"

    async def test_decade_fallback_when_nothing_active(self, session, user):
        prompt = await PromptService(session).next_prompt(user)

        assert prompt.id is None
        assert prompt.tier == 0
        assert prompt.prompt_text == "Tell me about a typical Saturday in the 1950s."

    async def test_no_fallback_without_birth_year(self, session, user):
        user.birth_year = None

        assert await PromptService(session).next_prompt(user) is None


class TestSkipAndExpire:
    async def test_prompt_retires_after_max_skips(self, session, user):
        prompt = await add_prompt(session, user)
        service = PromptService(session)

        for _ in range(MAX_SKIPS - 1):
            retired, _ = await service.skip_prompt(user, prompt.id)
            assert retired is False
        retired, next_prompt = await service.skip_prompt(user, prompt.id)

        assert retired is True
        assert next_prompt.tier == 0
        history = (await session.execute(select(PromptHistory))).scalars().one()
        assert history.outcome == "skipped"
        assert history.shown_count == MAX_SKIPS

    async def test_skip_unknown_prompt(self, session, user):
        with pytest.raises(NotFoundError):
            await PromptService(session).skip_prompt(user, "missing")

    async def test_expire_moves_prompts_to_history(self, session, user):
        await add_prompt(session, user, anchor_hash="old", expires_at=utc_now() - timedelta(minutes=1))
        await add_prompt(session, user, anchor_hash="new")

        expired = await PromptService(session).expire_prompts()

        assert expired == 1
        remaining = (await session.execute(select(ActivePrompt))).scalars().all()
        assert [p.anchor_hash for p in remaining] == ["new"]

    async def test_mark_used_ignores_unknown_ids(self, session, user):
        service = PromptService(session)
        assert await service.mark_prompt_used(user.id, None, "story") is False
        assert await service.mark_prompt_used(user.id, "missing", "story") is False


class TestQueue:
    async def test_queue_positions_span_both_sources(self, session, user):
        prompt = await add_prompt(session, user)
        service = PromptService(session)

        first = await service.queue_prompt(user, PromptActionRequest(source=PromptSource.AI, prompt_id=prompt.id))
        second = await service.queue_prompt(
            user, PromptActionRequest(source=PromptSource.CATALOG, text="Who taught you to drive?", category="firsts")
        )
        again = await service.queue_prompt(
            user, PromptActionRequest(source=PromptSource.CATALOG, text="Who taught you to drive?", category="firsts")
        )

        assert (first.status, first.queue_position) == ("queued", 1)
        assert (second.status, second.queue_position) == ("queued", 2)
        assert again.status == "already_queued"
        queue = await service.list_queue(user)
        assert [(item.source, item.queue_position) for item in queue] == [
            (PromptSource.AI, 1),
            (PromptSource.CATALOG, 2),
        ]

    async def test_dismiss_moves_prompt_to_archive(self, session, user):
        prompt = await add_prompt(session, user)
        service = PromptService(session)
        await service.queue_prompt(user, PromptActionRequest(source=PromptSource.AI, prompt_id=prompt.id))

        result = await service.dismiss_prompt(user, PromptActionRequest(source=PromptSource.AI, prompt_id=prompt.id))
        repeat = await service.dismiss_prompt(user, PromptActionRequest(source=PromptSource.AI, prompt_id=prompt.id))

        assert result.status == "dismissed"
        assert repeat.status == "already_dismissed"
        assert await service.list_queue(user) == []
        archive = await service.list_archive(user)
        assert [item.id for item in archive] == [prompt.id]

    async def test_requeue_a_dismissed_catalog_prompt(self, session, user):
        service = PromptService(session)
        request = PromptActionRequest(source=PromptSource.CATALOG, text="What was your first job?", category="work")
        dismissed = await service.dismiss_prompt(user, request)

        queued = await service.queue_prompt(user, request)

        assert queued.prompt_id == dismissed.prompt_id
        assert queued.status == "queued"
        rows = (await session.execute(select(UserPrompt))).scalars().all()
        assert len(rows) == 1

    async def test_delete_saved_prompt(self, session, user):
        service = PromptService(session)
        queued = await service.queue_prompt(
            user, PromptActionRequest(source=PromptSource.CATALOG, text="What was your first job?", category="work")
        )

        await service.delete_saved_prompt(user, queued.prompt_id)

        assert await service.list_queue(user) == []
        with pytest.raises(NotFoundError):
            await service.delete_saved_prompt(user, "missing")


class TestGeneration:
    async def test_tier1_prompts_are_stored_once_per_anchor(self, session, user):
        story = Story(user_id=user.id, title="Workshop", transcription=TRANSCRIPT, story_year=1965)
        session.add(story)
        await session.commit()
        service = PromptService(session)

        stored = await service.store_tier1_prompts(user.id, story)
        again = await service.store_tier1_prompts(user.id, story)

        assert len(stored) == 3
        assert again == []
        assert all(p.anchor_year == 1965 and p.model_version == "tier1-templates" for p in stored)

    async def test_tier3_runs_only_at_milestones(self, session, user):
        session.add(Story(user_id=user.id, title="Denver", transcription="We drove to Denver in the snow."))
        await session.commit()
        service = PromptService(session)

        user.story_count = 5
        assert await service.run_tier3_analysis(user, Tier3Analyzer(model=None)) == []

        user.story_count = 1
        stored = await service.run_tier3_analysis(user, Tier3Analyzer(model=None))
        assert [p.prompt_text for p in stored] == ["What happened right after Denver? Who was with you?"]
        assert stored[0].tier == 3
        assert stored[0].model_version == "tier3-fallback"

    async def test_unlock_prompts(self, session, user):
        await add_prompt(session, user, anchor_hash="a", is_locked=True)
        await add_prompt(session, user, anchor_hash="b", is_locked=True)
        await add_prompt(session, user, anchor_hash="c")

        assert await PromptService(session).unlock_prompts(user.id) == 2
        locked = (await session.execute(select(ActivePrompt).where(ActivePrompt.is_locked == True))).scalars().all()  # noqa: E712
        assert locked == []
