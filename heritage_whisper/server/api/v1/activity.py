"""Activity feed endpoint."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Query

from heritage_whisper.core.models.io import ActivityEventRead
from heritage_whisper.server.services.activity import MAX_ACTIVITY_LIMIT, ActivityService
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep

router = APIRouter(tags=["activity"])


@router.get(
    "",
    response_model=List[ActivityEventRead],
    summary="Recent Activity",
    description="Recent events on the storyteller's account, such as family members joining.",
    response_description="Events, newest first.",
)
async def recent_activity(
    user: CurrentUserDep,
    session: SessionDep,
    limit: int = Query(default=20, ge=1, le=MAX_ACTIVITY_LIMIT),
) -> List[ActivityEventRead]:
    events = await ActivityService(session).recent(user.id, limit=limit)
    return [
        ActivityEventRead(
            id=event.id,
            event_type=event.event_type,
            actor_id=event.actor_id,
            family_member_id=event.family_member_id,
            story_id=event.story_id,
            metadata=event.get_metadata(),
            created_at=event.created_at,
        )
        for event in events
    ]
