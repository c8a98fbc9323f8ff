"""
Service for the storyteller activity feed.

Recording activity is best effort: a failure is logged and never reaches the
request that triggered it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.entities import ActivityEvent
from heritage_whisper.core.database.repositories import ActivityEventRepository

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LIMIT = 100


class ActivityService:
    """Service for writing and reading activity events."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.events = ActivityEventRepository(session)

    async def log_activity_event(
        self,
        user_id: str,
        event_type: str,
        *,
        actor_id: Optional[str] = None,
        family_member_id: Optional[str] = None,
        story_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActivityEvent]:
        """
        Record one activity event.

        Returns:
            The stored event, or None when it could not be written.
        """
        event = ActivityEvent(
            user_id=user_id,
            actor_id=actor_id,
            family_member_id=family_member_id,
            story_id=story_id,
            event_type=event_type,
        )
        event.set_metadata(metadata)
        try:
            return await self.events.create(event)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning(f"Failed to log activity event {event_type} for user {user_id}: {e}")
            return None

    async def recent(self, user_id: str, limit: int = 20) -> List[ActivityEvent]:
        limit = max(1, min(limit, MAX_ACTIVITY_LIMIT))
        return await self.events.list_recent(user_id, limit=limit)
