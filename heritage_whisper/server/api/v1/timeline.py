"""Timeline endpoint: the storyteller's stories grouped into life sections."""

from __future__ import annotations

from fastapi import APIRouter

from heritage_whisper.core.models.io import TimelineResponse
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep, SupabaseDep
from heritage_whisper.server.services.stories import StoryService

router = APIRouter(tags=["timeline"])


@router.get(
    "",
    response_model=TimelineResponse,
    summary="Get Timeline",
    description="Stories grouped into a birth-year section and one section per decade, oldest first.",
    response_description="Timeline sections.",
    responses={
        200: {"description": "Timeline built successfully"},
        401: {"description": "Authentication required"},
    },
)
async def get_timeline(user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> TimelineResponse:
    """
    Get the timeline.

    Stories hidden from the timeline are left out. Without a birth year the
    earliest story year anchors the sections; with no dated stories the
    section list is empty.
    """
    return await StoryService(session, supabase=supabase).timeline(user)
