"""
API endpoints for the storyteller's account: profile, data export and
deletion.
"""

from __future__ import annotations

from fastapi import APIRouter, status

from heritage_whisper.core.models.io import AccountExport, ProfileUpdate, UserRead
from heritage_whisper.server.services.account import AccountService
from heritage_whisper.server.services.deps import ApiRateLimit, CurrentUserDep, SessionDep, SupabaseDep

router = APIRouter(tags=["account"])


@router.get(
    "/profile",
    response_model=UserRead,
    summary="Get Profile",
    description="The signed-in storyteller's profile, plan and counters.",
    responses={401: {"description": "Authentication required"}},
)
async def get_profile(user: CurrentUserDep) -> UserRead:
    return UserRead.model_validate(user)


@router.put(
    "/profile",
    response_model=UserRead,
    summary="Update Profile",
    description="Update profile fields and preferences. Omitted fields are left unchanged.",
    response_description="The updated profile.",
)
async def update_profile(data: ProfileUpdate, user: CurrentUserDep, session: SessionDep) -> UserRead:
    """
    Update the profile.

    - **name**: Display name.
    - **birth_year**: Anchors the timeline.
    - **bio** / **profile_photo_url**: Shown on the family view.
    - **email_notifications**: Whether family members receive story emails.
    - **default_story_visibility**: Whether new stories appear in the timeline and book.
    """
    return UserRead.model_validate(await AccountService(session).update_profile(user, data))


@router.get(
    "/export",
    response_model=AccountExport,
    dependencies=[ApiRateLimit],
    summary="Export Account Data",
    description="Download everything the storyteller owns as JSON.",
    response_description="Profile, stories, treasures, family members and shares.",
)
async def export_data(user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> AccountExport:
    return await AccountService(session, supabase=supabase).export_data(user)


@router.delete(
    "",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Account",
    description="Permanently delete the account, its stored files and every owned record.",
    responses={
        204: {"description": "Account deleted"},
        502: {"description": "The auth user could not be deleted"},
    },
)
async def delete_account(user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> None:
    await AccountService(session, supabase=supabase).delete_account(user)
