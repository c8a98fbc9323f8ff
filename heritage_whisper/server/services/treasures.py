"""Service for treasures, the keepsake photos shown in the memory box."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import Treasure, User
from heritage_whisper.core.database.repositories import StoryRepository, TreasureRepository
from heritage_whisper.core.errors import NotFoundError, ValidationFailedError
from heritage_whisper.core.models.io import TreasureCreate, TreasureRead, TreasureUpdate
from heritage_whisper.integrations import SupabaseClient, resolve_storage_url
from heritage_whisper.server.core.config import settings

logger = logging.getLogger(__name__)


class TreasureService:
    def __init__(self, session: AsyncSession, *, supabase: Optional[SupabaseClient] = None):
        self.session = session
        self.supabase = supabase
        self.treasures = TreasureRepository(session)
        self.stories = StoryRepository(session)

    def to_read(self, treasure: Treasure) -> TreasureRead:
        return TreasureRead(
            id=treasure.id,
            title=treasure.title,
            description=treasure.description,
            category=treasure.category,
            image_url=resolve_storage_url(treasure.image_url, self.supabase, settings.supabase.photos_bucket)
            or treasure.image_url,
            year=treasure.year,
            linked_story_id=treasure.linked_story_id,
            transform=treasure.get_transform(),
            created_at=treasure.created_at,
            updated_at=treasure.updated_at,
        )

    async def _check_story(self, user: User, story_id: Optional[str]) -> None:
        if story_id and await self.stories.get_for_user(story_id, user.id) is None:
            raise ValidationFailedError("Linked story not found")

    async def list_treasures(self, user: User) -> List[Treasure]:
        return await self.treasures.list_for_user(user.id)

    async def get_treasure(self, user: User, treasure_id: str) -> Treasure:
        treasure = await self.treasures.get_for_user(treasure_id, user.id)
        if treasure is None:
            raise NotFoundError("Treasure not found")
        return treasure

    async def create_treasure(self, user: User, data: TreasureCreate) -> Treasure:
        if data.image_url.startswith("blob:"):
            raise ValidationFailedError("Upload the image before saving the treasure")
        await self._check_story(user, data.linked_story_id)
        treasure = Treasure(user_id=user.id, **data.model_dump(exclude={"transform"}))
        treasure.set_transform(data.transform.model_dump() if data.transform else None)
        treasure = await self.treasures.create(treasure)
        logger.info(f"User {user.id} added treasure {treasure.id}")
        return treasure

    async def update_treasure(self, user: User, treasure_id: str, data: TreasureUpdate) -> Treasure:
        treasure = await self.get_treasure(user, treasure_id)
        changes = data.model_dump(exclude_unset=True, exclude={"transform"})
        for required in ("title", "category", "image_url"):
            if required in changes and changes[required] is None:
                del changes[required]
        if changes.get("image_url", "").startswith("blob:"):
            raise ValidationFailedError("Upload the image before saving the treasure")
        if "linked_story_id" in changes:
            await self._check_story(user, changes["linked_story_id"])
        for field, value in changes.items():
            setattr(treasure, field, value)
        if "transform" in data.model_fields_set:
            treasure.set_transform(data.transform.model_dump() if data.transform else None)
        treasure.updated_at = utc_now()
        return await self.treasures.update(treasure)

    async def delete_treasure(self, user: User, treasure_id: str) -> None:
        treasure = await self.get_treasure(user, treasure_id)
        await self.treasures.delete(treasure.id)
        logger.info(f"User {user.id} deleted treasure {treasure_id}")
