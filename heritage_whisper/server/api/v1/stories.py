"""
API endpoints for stories and their photos.

Every endpoint acts on the authenticated storyteller's own stories. Creating
a story schedules prompt generation and family notifications in the
background so the response is not held up by language models or email.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query, status

from heritage_whisper.core.models.io import (
    PhotoCreate,
    PhotoUpdate,
    StoryCreate,
    StoryListResponse,
    StoryRead,
    StoryUpdate,
)
from heritage_whisper.server.services.deps import (
    ApiRateLimit,
    CurrentUserDep,
    ResendDep,
    SessionDep,
    SessionFactoryDep,
    SupabaseDep,
    Tier3AnalyzerDep,
    UploadRateLimit,
)
from heritage_whisper.server.services.stories import StoryService, run_post_create_tasks

router = APIRouter(tags=["stories"])


@router.get(
    "",
    response_model=StoryListResponse,
    summary="List Stories",
    description="List the storyteller's stories, newest memory first.",
    response_description="A page of stories with the total count.",
    responses={
        200: {"description": "Stories retrieved successfully"},
        401: {"description": "Authentication required"},
    },
)
async def list_stories(
    user: CurrentUserDep,
    session: SessionDep,
    supabase: SupabaseDep,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> StoryListResponse:
    """
    List stories.

    Stories are ordered by story year (descending), then by creation time.

    - **limit**: Maximum number of stories to return.
    - **offset**: Number of stories to skip.
    """
    service = StoryService(session, supabase=supabase)
    stories, total = await service.list_stories(user, limit=limit, offset=offset)
    return StoryListResponse(stories=[service.to_read(s) for s in stories], total=total)


@router.post(
    "",
    response_model=StoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[ApiRateLimit],
    summary="Create Story",
    description="Save a recorded story. Free accounts may save a limited number of stories.",
    response_description="The created story.",
    responses={
        201: {"description": "Story created successfully"},
        402: {"description": "Free story limit reached"},
        429: {"description": "Too many requests"},
    },
)
async def create_story(
    data: StoryCreate,
    background_tasks: BackgroundTasks,
    user: CurrentUserDep,
    session: SessionDep,
    session_factory: SessionFactoryDep,
    supabase: SupabaseDep,
    resend: ResendDep,
    analyzer: Tier3AnalyzerDep,
) -> StoryRead:
    """
    Create a story.

    After the response is sent, Tier 1 prompts are generated from the story,
    Tier 3 analysis runs at story-count milestones, and family members are
    notified.

    - **title**: Story title.
    - **transcription**: Transcript text.
    - **story_year**: Year the memory happened.
    - **photos**: Up to six photos; the first becomes the hero unless one is flagged.
    - **source_prompt_id**: The prompt this story answers, if any.
    """
    service = StoryService(session, supabase=supabase)
    story = await service.create_story(user, data)
    background_tasks.add_task(
        run_post_create_tasks,
        session_factory,
        user.id,
        story.id,
        analyzer=analyzer,
        resend=resend,
        supabase=supabase,
    )
    return service.to_read(story)


@router.get(
    "/{story_id}",
    response_model=StoryRead,
    summary="Get Story",
    description="Retrieve one of the storyteller's stories.",
    response_description="The story.",
    responses={
        200: {"description": "Story found"},
        403: {"description": "The story belongs to someone else"},
        404: {"description": "Story not found"},
    },
)
async def get_story(story_id: str, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> StoryRead:
    service = StoryService(session, supabase=supabase)
    return service.to_read(await service.get_story(user, story_id))


@router.put(
    "/{story_id}",
    response_model=StoryRead,
    summary="Update Story",
    description="Update fields of a story. Omitted fields are left unchanged.",
    response_description="The updated story.",
    responses={
        200: {"description": "Story updated successfully"},
        403: {"description": "The story belongs to someone else"},
        404: {"description": "Story not found"},
    },
)
async def update_story(
    story_id: str, data: StoryUpdate, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> StoryRead:
    service = StoryService(session, supabase=supabase)
    return service.to_read(await service.update_story(user, story_id, data))


@router.delete(
    "/{story_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Story",
    description="Delete a story and its stored audio and photos.",
    responses={
        204: {"description": "Story deleted"},
        403: {"description": "The story belongs to someone else"},
        404: {"description": "Story not found"},
    },
)
async def delete_story(story_id: str, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> None:
    """
    Delete a story.

    The story count is decremented. Removing the storage objects is best
    effort and never fails the request.
    """
    await StoryService(session, supabase=supabase).delete_story(user, story_id)


# ---------------------------------------------------------------------
# Photos
# ---------------------------------------------------------------------


@router.post(
    "/{story_id}/photos",
    response_model=StoryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[UploadRateLimit],
    summary="Add Photo",
    description="Attach an uploaded photo to a story. A story holds at most six photos.",
    response_description="The story with its photos.",
    responses={
        201: {"description": "Photo added"},
        400: {"description": "Photo limit reached or the image was not uploaded"},
        404: {"description": "Story not found"},
    },
)
async def add_photo(
    story_id: str, data: PhotoCreate, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> StoryRead:
    service = StoryService(session, supabase=supabase)
    return service.to_read(await service.add_photo(user, story_id, data))


@router.put(
    "/{story_id}/photos/{photo_id}",
    response_model=StoryRead,
    summary="Update Photo",
    description="Change a photo's caption, crop transform or hero flag.",
    response_description="The story with its photos.",
    responses={
        200: {"description": "Photo updated"},
        404: {"description": "Story or photo not found"},
    },
)
async def update_photo(
    story_id: str,
    photo_id: str,
    data: PhotoUpdate,
    user: CurrentUserDep,
    session: SessionDep,
    supabase: SupabaseDep,
) -> StoryRead:
    """
    Update a photo.

    - **caption**: New caption.
    - **transform**: Zoom and position of the crop.
    - **is_hero**: Make this the hero photo. Unsetting the hero moves it to another photo.
    """
    service = StoryService(session, supabase=supabase)
    return service.to_read(await service.update_photo(user, story_id, photo_id, data))


@router.delete(
    "/{story_id}/photos/{photo_id}",
    response_model=StoryRead,
    summary="Delete Photo",
    description="Remove a photo from a story. If it was the hero, the next photo becomes the hero.",
    response_description="The story with its remaining photos.",
    responses={
        200: {"description": "Photo removed"},
        404: {"description": "Story or photo not found"},
    },
)
async def delete_photo(
    story_id: str, photo_id: str, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> StoryRead:
    service = StoryService(session, supabase=supabase)
    return service.to_read(await service.delete_photo(user, story_id, photo_id))
