"""API endpoints for treasures (keepsake photos)."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, status

from heritage_whisper.core.models.io import TreasureCreate, TreasureRead, TreasureUpdate
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep, SupabaseDep, UploadRateLimit
from heritage_whisper.server.services.treasures import TreasureService

router = APIRouter(tags=["treasures"])


@router.get(
    "",
    response_model=List[TreasureRead],
    summary="List Treasures",
    description="The storyteller's keepsake photos, newest first.",
)
async def list_treasures(user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> List[TreasureRead]:
    service = TreasureService(session, supabase=supabase)
    return [service.to_read(t) for t in await service.list_treasures(user)]


@router.post(
    "",
    response_model=TreasureRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[UploadRateLimit],
    summary="Add Treasure",
    description="Save an uploaded keepsake photo, optionally linked to a story.",
    responses={
        201: {"description": "Treasure saved"},
        400: {"description": "The image was not uploaded or the linked story does not exist"},
    },
)
async def create_treasure(
    data: TreasureCreate, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> TreasureRead:
    """
    Add a treasure.

    - **title**: Name of the keepsake.
    - **category**: heirloom, photo, document, recipe or other.
    - **image_url**: Storage path or URL of the uploaded image.
    - **linked_story_id**: Story the keepsake belongs to.
    """
    service = TreasureService(session, supabase=supabase)
    return service.to_read(await service.create_treasure(user, data))


@router.get(
    "/{treasure_id}",
    response_model=TreasureRead,
    summary="Get Treasure",
    responses={404: {"description": "Treasure not found"}},
)
async def get_treasure(
    treasure_id: str, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> TreasureRead:
    service = TreasureService(session, supabase=supabase)
    return service.to_read(await service.get_treasure(user, treasure_id))


@router.put(
    "/{treasure_id}",
    response_model=TreasureRead,
    summary="Update Treasure",
    description="Update fields of a treasure. Omitted fields are left unchanged.",
    responses={404: {"description": "Treasure not found"}},
)
async def update_treasure(
    treasure_id: str, data: TreasureUpdate, user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep
) -> TreasureRead:
    service = TreasureService(session, supabase=supabase)
    return service.to_read(await service.update_treasure(user, treasure_id, data))


@router.delete(
    "/{treasure_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Treasure",
    responses={404: {"description": "Treasure not found"}},
)
async def delete_treasure(treasure_id: str, user: CurrentUserDep, session: SessionDep) -> None:
    await TreasureService(session).delete_treasure(user, treasure_id)
