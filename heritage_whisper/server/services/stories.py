"""
Service for stories and their photos.

Stories are always read through their owner. Photos are stored on the story
row as a JSON list; exactly one photo is the hero whenever a story has photos.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import Story, User
from heritage_whisper.core.database.repositories import StoryRepository, UserRepository
from heritage_whisper.core.errors import NotFoundError, PaymentRequiredError, PermissionDeniedError, ValidationFailedError
from heritage_whisper.core.models.io import (
    MAX_PHOTOS_PER_STORY,
    BookResponse,
    PhotoCreate,
    PhotoRead,
    PhotoUpdate,
    StoryCreate,
    StoryRead,
    StoryUpdate,
    TimelineResponse,
    TimelineSectionRead,
)
from heritage_whisper.integrations import (
    IntegrationError,
    ResendClient,
    SupabaseClient,
    resolve_storage_url,
    storage_path_from_url,
)
from heritage_whisper.prompts.tier3 import Tier3Analyzer, is_milestone
from heritage_whisper.server.core.config import settings
from heritage_whisper.storytelling.book import BookStory, StoryPhoto, build_book_layout
from heritage_whisper.storytelling.timeline import group_stories_by_decade

from .notifications import NotificationService
from .prompts import PromptService
from .rate_limit import tier3_limiter

logger = logging.getLogger(__name__)

# NOT NULL columns; an explicit null in an update leaves them unchanged.
REQUIRED_STORY_FIELDS = ("title", "duration_seconds", "include_in_book", "include_in_timeline", "is_favorite")


def _ensure_single_hero(photos: List[Dict[str, Any]], hero_id: Optional[str] = None) -> List[Dict[str, Any]]:
    if not photos:
        return photos
    if hero_id is None:
        heroes = [photo["id"] for photo in photos if photo.get("is_hero")]
        hero_id = heroes[0] if heroes else photos[0]["id"]
    for photo in photos:
        photo["is_hero"] = photo["id"] == hero_id
    return photos


def _photo_dict(data: PhotoCreate) -> Dict[str, Any]:
    return {
        "id": str(uuid4()),
        "url": data.url,
        "transform": data.transform.model_dump() if data.transform else None,
        "caption": data.caption,
        "is_hero": data.is_hero,
    }


class StoryService:
    """Service for a storyteller's stories."""

    def __init__(self, session: AsyncSession, *, supabase: Optional[SupabaseClient] = None):
        self.session = session
        self.supabase = supabase
        self.stories = StoryRepository(session)
        self.users = UserRepository(session)
        self.photos_bucket = settings.supabase.photos_bucket
        self.audio_bucket = settings.supabase.audio_bucket

    # -----------------------------------------------------------------
    # Reading
    # -----------------------------------------------------------------

    def to_read(self, story: Story) -> StoryRead:
        photos: List[PhotoRead] = []
        for photo in story.get_photos_list():
            url = resolve_storage_url(photo.get("url"), self.supabase, self.photos_bucket)
            if not url:
                continue
            photos.append(PhotoRead.model_validate({**photo, "url": url}))
        return StoryRead(
            **story.model_dump(exclude={"photos", "emotions", "photo_transform", "photo_url", "audio_url"}),
            audio_url=resolve_storage_url(story.audio_url, self.supabase, self.audio_bucket),
            photo_url=resolve_storage_url(story.photo_url, self.supabase, self.photos_bucket),
            photos=photos,
            emotions=story.get_emotions_list(),
        )

    def to_book_story(self, story: Story) -> BookStory:
        return BookStory(
            id=story.id,
            title=story.title,
            content=story.transcription or "",
            year=story.story_year,
            date=story.story_date.isoformat() if story.story_date else None,
            age=story.life_age,
            audio_url=resolve_storage_url(story.audio_url, self.supabase, self.audio_bucket),
            photos=[
                StoryPhoto(id=p.id, url=p.url, caption=p.caption, is_hero=p.is_hero)
                for p in self.to_read(story).photos
            ],
            lesson_learned=story.lesson_learned,
        )

    async def timeline(self, user: User) -> TimelineResponse:
        """
        Timeline sections of the storyteller's stories.

        Without a birth year the earliest story year anchors the timeline.
        """
        stories = await self.stories.list_for_user(user.id)
        anchor = user.birth_year or min((s.story_year for s in stories if s.story_year), default=None)
        if anchor is None:
            return TimelineResponse(birth_year=None, sections=[])
        sections = group_stories_by_decade(stories, anchor)
        return TimelineResponse(
            birth_year=user.birth_year,
            sections=[
                TimelineSectionRead(
                    id=section.id,
                    title=section.title,
                    subtitle=section.subtitle,
                    nav_label=section.nav_label,
                    decade=section.decade,
                    is_current=section.is_current,
                    story_count=section.story_count,
                    stories=[self.to_read(story) for story in section.stories],
                )
                for section in sections
            ],
        )

    async def book(self, user: User) -> BookResponse:
        stories = [s for s in await self.stories.list_for_user(user.id) if s.include_in_book]
        layout = build_book_layout([self.to_book_story(s) for s in stories], user.birth_year)
        return BookResponse(pages=layout.pages, toc_pages=layout.toc_pages, total_pages=layout.total_pages)

    async def list_stories(
        self, user: User, *, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> Tuple[List[Story], int]:
        stories = await self.stories.list_for_user(user.id, limit=limit, offset=offset)
        total = await self.stories.count_for_user(user.id)
        return stories, total

    async def get_story(self, user: User, story_id: str) -> Story:
        story = await self.stories.get_by_id(story_id)
        if story is None:
            raise NotFoundError("Story not found")
        if story.user_id != user.id:
            raise PermissionDeniedError("You do not have access to this story")
        return story

    # -----------------------------------------------------------------
    # Writing
    # -----------------------------------------------------------------

    async def create_story(self, user: User, data: StoryCreate) -> Story:
        """
        Create a story for ``user``.

        Free accounts may record ``settings.free_story_limit`` stories. The
        story count is incremented and the answered prompt is archived.
        """
        if not user.is_paid and (user.free_stories_used or 0) >= settings.free_story_limit:
            raise PaymentRequiredError(
                f"Free accounts can record {settings.free_story_limit} stories. Upgrade to keep recording."
            )

        visible = user.default_story_visibility
        story = Story(
            user_id=user.id,
            **data.model_dump(exclude={"photos", "emotions", "include_in_book", "include_in_timeline"}),
            include_in_book=visible if data.include_in_book is None else data.include_in_book,
            include_in_timeline=visible if data.include_in_timeline is None else data.include_in_timeline,
        )
        photos = [_photo_dict(photo) for photo in data.photos if not photo.url.startswith("blob:")]
        story.set_photos_list(_ensure_single_hero(photos))
        story.set_emotions_list(data.emotions)
        story = await self.stories.create(story)

        if not user.is_paid:
            user.free_stories_used = (user.free_stories_used or 0) + 1
        await self.users.adjust_story_count(user, 1)

        await PromptService(self.session).mark_prompt_used(user.id, data.source_prompt_id, story.id)
        logger.info(f"Created story {story.id} for user {user.id} (story #{user.story_count})")
        return story

    async def update_story(self, user: User, story_id: str, data: StoryUpdate) -> Story:
        story = await self.get_story(user, story_id)
        changes = data.model_dump(exclude_unset=True)
        emotions = changes.pop("emotions", None)
        for required in REQUIRED_STORY_FIELDS:
            if required in changes and changes[required] is None:
                del changes[required]
        for field, value in changes.items():
            setattr(story, field, value)
        if emotions is not None:
            story.set_emotions_list(emotions)
        story.updated_at = utc_now()
        return await self.stories.update(story)

    async def delete_story(self, user: User, story_id: str) -> None:
        story = await self.get_story(user, story_id)
        audio_path = storage_path_from_url(story.audio_url, self.audio_bucket)
        photo_paths = [
            path
            for path in (storage_path_from_url(p.get("url"), self.photos_bucket) for p in story.get_photos_list())
            if path
        ]
        await self.stories.delete(story.id)
        await self.users.adjust_story_count(user, -1)
        await self._remove_objects(self.audio_bucket, [audio_path] if audio_path else [])
        await self._remove_objects(self.photos_bucket, photo_paths)
        logger.info(f"Deleted story {story_id} for user {user.id}")

    async def _remove_objects(self, bucket: str, paths: List[str]) -> None:
        if not paths or self.supabase is None:
            return
        try:
            await self.supabase.remove(bucket, paths)
        except IntegrationError as e:
            logger.warning(f"Failed to remove {len(paths)} objects from {bucket}: {e}")

    # -----------------------------------------------------------------
    # Photos
    # -----------------------------------------------------------------

    async def add_photo(self, user: User, story_id: str, data: PhotoCreate) -> Story:
        story = await self.get_story(user, story_id)
        photos = story.get_photos_list()
        if len(photos) >= MAX_PHOTOS_PER_STORY:
            raise ValidationFailedError(f"A story can have at most {MAX_PHOTOS_PER_STORY} photos")
        if data.url.startswith("blob:"):
            raise ValidationFailedError("Upload the photo before attaching it to a story")
        photo = _photo_dict(data)
        photos.append(photo)
        story.set_photos_list(_ensure_single_hero(photos, photo["id"] if data.is_hero else None))
        story.updated_at = utc_now()
        return await self.stories.update(story)

    async def update_photo(self, user: User, story_id: str, photo_id: str, data: PhotoUpdate) -> Story:
        story = await self.get_story(user, story_id)
        photos = story.get_photos_list()
        photo = next((p for p in photos if p.get("id") == photo_id), None)
        if photo is None:
            raise NotFoundError("Photo not found")
        changes = data.model_dump(exclude_unset=True)
        if "caption" in changes:
            photo["caption"] = changes["caption"]
        if "transform" in changes:
            photo["transform"] = changes["transform"]
        hero_id = None
        if changes.get("is_hero"):
            hero_id = photo_id
        elif changes.get("is_hero") is False and photo.get("is_hero") and len(photos) > 1:
            hero_id = next(p["id"] for p in photos if p["id"] != photo_id)
        story.set_photos_list(_ensure_single_hero(photos, hero_id))
        story.updated_at = utc_now()
        return await self.stories.update(story)

    async def delete_photo(self, user: User, story_id: str, photo_id: str) -> Story:
        story = await self.get_story(user, story_id)
        photos = story.get_photos_list()
        photo = next((p for p in photos if p.get("id") == photo_id), None)
        if photo is None:
            raise NotFoundError("Photo not found")
        remaining = [p for p in photos if p.get("id") != photo_id]
        story.set_photos_list(_ensure_single_hero(remaining))
        story.updated_at = utc_now()
        story = await self.stories.update(story)
        path = storage_path_from_url(photo.get("url"), self.photos_bucket)
        await self._remove_objects(self.photos_bucket, [path] if path else [])
        return story


async def run_post_create_tasks(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    story_id: str,
    *,
    analyzer: Optional[Tier3Analyzer] = None,
    resend: Optional[ResendClient] = None,
    supabase: Optional[SupabaseClient] = None,
) -> None:
    """
    Side effects of a new story, run after the response is sent.

    Tier 1 prompts are generated from the story, Tier 3 analysis runs when the
    story count reaches a milestone (at most once per user every 5 minutes),
    and family members are notified. Each step gets its own session and
    reloads the rows, so a failure is logged and the next step still runs.
    """

    async def tier1(session: AsyncSession, user: User, story: Story) -> None:
        await PromptService(session).store_tier1_prompts(user.id, story)

    async def tier3(session: AsyncSession, user: User, story: Story) -> None:
        if analyzer is None or not is_milestone(user.story_count or 0):
            return
        if not tier3_limiter.hit(f"user:{user.id}").allowed:
            logger.warning(f"Skipping tier 3 analysis for user {user.id}: already ran in the last 5 minutes")
            return
        await PromptService(session).run_tier3_analysis(user, analyzer)

    async def notify(session: AsyncSession, user: User, story: Story) -> None:
        await NotificationService(session, resend=resend, supabase=supabase).notify_new_story(user, story)

    steps = (("Tier 1 generation", tier1), ("Tier 3 analysis", tier3), ("Story notifications", notify))
    for name, step in steps:
        async with session_factory() as session:
            user = await UserRepository(session).get_by_id(user_id)
            story = await StoryRepository(session).get_by_id(story_id)
            if user is None or story is None:
                logger.warning(f"Skipping post-create tasks: story {story_id} or user {user_id} is gone")
                return
            try:
                await step(session, user, story)
            except Exception as e:
                await session.rollback()
                logger.error(f"{name} failed for story {story_id}: {e}", exc_info=True)
