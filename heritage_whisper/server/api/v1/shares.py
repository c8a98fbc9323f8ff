"""
API endpoints for timeline share links.

``router`` holds the owner's management endpoints; ``public_router`` serves
``/shared/{token}`` without authentication.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, status

from heritage_whisper.core.models.io import ShareCreate, SharedTimelineResponse, ShareRead, ShareUpdate
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep, SupabaseDep
from heritage_whisper.server.services.shares import ShareService, to_share_read
from heritage_whisper.server.services.stories import StoryService

router = APIRouter(tags=["shares"])
public_router = APIRouter(tags=["shares"])


@router.get(
    "",
    response_model=List[ShareRead],
    summary="List Share Links",
    description="Share links created by the storyteller, newest first.",
)
async def list_shares(user: CurrentUserDep, session: SessionDep) -> List[ShareRead]:
    return [to_share_read(share) for share in await ShareService(session).list_shares(user)]


@router.post(
    "",
    response_model=ShareRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Share Link",
    description="Share the timeline with someone by email.",
    response_description="The share with its public URL.",
    responses={
        201: {"description": "Share created"},
        400: {"description": "An active share already exists for this email"},
    },
)
async def create_share(data: ShareCreate, user: CurrentUserDep, session: SessionDep) -> ShareRead:
    """
    Create a share link.

    - **email**: Who the timeline is shared with (stored lower-cased).
    - **permission_level**: ``view`` or ``edit``.
    - **expires_at**: Optional expiry; the link never expires when omitted.
    """
    return to_share_read(await ShareService(session).create_share(user, data))


@router.patch(
    "/{share_id}",
    response_model=ShareRead,
    summary="Update Share Link",
    description="Change the permission, expiry or active flag of a share.",
    responses={404: {"description": "Share not found"}},
)
async def update_share(share_id: str, data: ShareUpdate, user: CurrentUserDep, session: SessionDep) -> ShareRead:
    return to_share_read(await ShareService(session).update_share(user, share_id, data))


@router.delete(
    "/{share_id}",
    response_model=ShareRead,
    summary="Revoke Share Link",
    description="Deactivate a share link. The record is kept so the owner can see past shares.",
    responses={404: {"description": "Share not found"}},
)
async def revoke_share(share_id: str, user: CurrentUserDep, session: SessionDep) -> ShareRead:
    return to_share_read(await ShareService(session).revoke_share(user, share_id))


@public_router.get(
    "/shared/{token}",
    response_model=SharedTimelineResponse,
    summary="Open Share Link",
    description="The owner's timeline, for an active and unexpired share link. No authentication required.",
    responses={
        200: {"description": "Share opened"},
        403: {"description": "The share was revoked or has expired"},
        404: {"description": "Unknown share link"},
    },
)
async def open_share(token: str, session: SessionDep, supabase: SupabaseDep) -> SharedTimelineResponse:
    share, owner = await ShareService(session).open_share(token)
    timeline = await StoryService(session, supabase=supabase).timeline(owner)
    return SharedTimelineResponse(owner_name=owner.name, permission_level=share.permission_level, timeline=timeline)
