"""
API endpoints for family sharing.

Two audiences use this router:

- The storyteller (Supabase bearer token) manages members, invites and the
  questions family members suggest.
- Family members authenticate with the ``family_session`` cookie obtained
  from ``GET /family/verify``; the ``Authorization: Bearer`` header is accepted
  as a fallback for clients that cannot keep cookies.
"""

from __future__ import annotations

from typing import Annotated, List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from heritage_whisper.core.logging_config import get_logger
from heritage_whisper.core.models.io import (
    BookResponse,
    FamilyInviteCreate,
    FamilyJoinRequest,
    FamilyJoinResponse,
    FamilyMemberList,
    FamilyMemberRead,
    FamilyMemberUpdate,
    FamilyPromptCreate,
    FamilyPromptRead,
    FamilyPromptUpdate,
    FamilySessionRead,
    InviteSentResponse,
    TimelineResponse,
)
from heritage_whisper.server.core.config import settings
from heritage_whisper.server.services.deps import (
    FAMILY_SESSION_COOKIE,
    AuthRateLimit,
    CurrentUserDep,
    PromptSubmitRateLimit,
    ResendDep,
    SessionDep,
    SupabaseDep,
    client_ip,
    family_session_token,
)
from heritage_whisper.server.services.family import SESSION_ABSOLUTE_DAYS, FamilyContext, FamilyService
from heritage_whisper.server.services.notifications import NotificationService
from heritage_whisper.server.services.stories import StoryService

logger = get_logger(__name__)

router = APIRouter(tags=["family"])


def family_service(session: SessionDep, resend: ResendDep, supabase: SupabaseDep) -> FamilyService:
    return FamilyService(session, notifications=NotificationService(session, resend=resend, supabase=supabase))


FamilyServiceDep = Annotated[FamilyService, Depends(family_service)]


async def get_family_context(request: Request, service: FamilyServiceDep) -> FamilyContext:
    return await service.resolve_session(family_session_token(request))


FamilyContextDep = Annotated[FamilyContext, Depends(get_family_context)]


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        FAMILY_SESSION_COOKIE,
        token,
        max_age=SESSION_ABSOLUTE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


# ---------------------------------------------------------------------
# Family member session
# ---------------------------------------------------------------------


@router.get(
    "/verify",
    response_model=FamilySessionRead,
    dependencies=[AuthRateLimit],
    summary="Verify Invite",
    description="Exchange an invite token for a family session. The session token is set as an HttpOnly cookie.",
    response_description="Details of the new family session.",
    responses={
        200: {"description": "Session created"},
        400: {"description": "The invite has expired"},
        404: {"description": "Unknown invite token"},
    },
)
async def verify_invite(
    request: Request,
    response: Response,
    service: FamilyServiceDep,
    token: str = Query(min_length=1),
) -> FamilySessionRead:
    """
    Verify an invite token.

    The first visit activates the member. Any earlier session of the member is
    replaced by the new one.

    - **token**: The invite token from the email link.
    """
    context = await service.verify(
        token, user_agent=request.headers.get("user-agent"), ip_address=client_ip(request)
    )
    set_session_cookie(response, context.session.token)
    return context.to_read()


@router.get(
    "/session",
    response_model=FamilySessionRead,
    summary="Get Family Session",
    description="Details of the current family session.",
    responses={401: {"description": "Missing, invalid or expired session"}},
)
async def get_family_session(context: FamilyContextDep) -> FamilySessionRead:
    return context.to_read()


@router.post(
    "/session/refresh",
    response_model=FamilySessionRead,
    summary="Refresh Family Session",
    description="Extend the session by 30 days, never past its absolute expiry.",
    responses={401: {"description": "Missing, invalid or expired session"}},
)
async def refresh_family_session(request: Request, response: Response, service: FamilyServiceDep) -> FamilySessionRead:
    context = await service.refresh_session(family_session_token(request))
    set_session_cookie(response, context.session.token)
    return context.to_read()


@router.delete(
    "/session",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log Out Family Member",
    description="End the family session and clear its cookie.",
)
async def logout_family_session(request: Request, response: Response, service: FamilyServiceDep) -> None:
    await service.logout(family_session_token(request))
    response.delete_cookie(FAMILY_SESSION_COOKIE, path="/")


@router.post(
    "/join",
    response_model=FamilyJoinResponse,
    dependencies=[AuthRateLimit],
    summary="Join Family Circle",
    description="Join a storyteller's family circle through their open link. Requests are approved as viewers.",
    response_description="The member id and an access link.",
    responses={
        200: {"description": "Access granted, or the existing access link returned"},
        400: {"description": "The circle is full or the member is not active"},
        404: {"description": "Storyteller not found"},
    },
)
async def join_family(data: FamilyJoinRequest, service: FamilyServiceDep) -> FamilyJoinResponse:
    """
    Join a family circle.

    - **storyteller_id**: Id of the storyteller whose link was opened.
    - **email** / **name**: The visitor.
    - **relationship**: Normalised into spouse, partner, child, parent, sibling,
      grandparent, grandchild or other.
    """
    return await service.join(data)


# ---------------------------------------------------------------------
# Family view
# ---------------------------------------------------------------------


@router.get(
    "/view/timeline",
    response_model=TimelineResponse,
    summary="Family Timeline",
    description="The storyteller's timeline as seen by a family member.",
    responses={401: {"description": "Missing, invalid or expired session"}},
)
async def family_timeline(context: FamilyContextDep, session: SessionDep, supabase: SupabaseDep) -> TimelineResponse:
    return await StoryService(session, supabase=supabase).timeline(context.storyteller)


@router.get(
    "/view/book",
    response_model=BookResponse,
    summary="Family Book",
    description="The storyteller's memory book as seen by a family member.",
    responses={401: {"description": "Missing, invalid or expired session"}},
)
async def family_book(context: FamilyContextDep, session: SessionDep, supabase: SupabaseDep) -> BookResponse:
    return await StoryService(session, supabase=supabase).book(context.storyteller)


# ---------------------------------------------------------------------
# Members (storyteller)
# ---------------------------------------------------------------------


@router.get(
    "/members",
    response_model=FamilyMemberList,
    summary="List Family Members",
    description="Family members of the storyteller, with the member limit.",
)
async def list_members(user: CurrentUserDep, service: FamilyServiceDep) -> FamilyMemberList:
    members = await service.list_members(user)
    return FamilyMemberList(
        members=[FamilyMemberRead.model_validate(m) for m in members],
        total=len(members),
        limit=settings.family.member_limit,
    )


@router.post(
    "/members",
    response_model=InviteSentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite Family Member",
    description="Invite a family member by email. The invite link is valid for 7 days.",
    response_description="The new member, the invite link and whether the email was sent.",
    responses={
        201: {"description": "Member invited"},
        400: {"description": "Family member limit reached"},
        409: {"description": "This email is already a family member"},
    },
)
async def invite_member(data: FamilyInviteCreate, user: CurrentUserDep, service: FamilyServiceDep) -> InviteSentResponse:
    """
    Invite a family member.

    - **email**: Address the invitation is sent to.
    - **name**: Display name of the member.
    - **relationship**: How the member is related to the storyteller.
    - **permission_level**: ``viewer`` or ``contributor``.
    - **custom_message**: Personal note included in the email.
    """
    member, invite_url, email_sent = await service.invite(user, data)
    return InviteSentResponse(
        member=FamilyMemberRead.model_validate(member), invite_url=invite_url, email_sent=email_sent
    )


@router.post(
    "/members/{member_id}/resend",
    response_model=InviteSentResponse,
    summary="Resend Invite",
    description="Issue a fresh 7-day invite link and email it again.",
    responses={404: {"description": "Family member not found"}},
)
async def resend_invite(member_id: str, user: CurrentUserDep, service: FamilyServiceDep) -> InviteSentResponse:
    member, invite_url, email_sent = await service.resend_invite(user, member_id)
    return InviteSentResponse(
        member=FamilyMemberRead.model_validate(member), invite_url=invite_url, email_sent=email_sent
    )


@router.patch(
    "/members/{member_id}",
    response_model=FamilyMemberRead,
    summary="Update Family Member",
    description="Change a member's permission level or notification preference.",
    responses={404: {"description": "Family member not found"}},
)
async def update_member(
    member_id: str, data: FamilyMemberUpdate, user: CurrentUserDep, service: FamilyServiceDep
) -> FamilyMemberRead:
    return FamilyMemberRead.model_validate(await service.update_member(user, member_id, data))


@router.delete(
    "/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove Family Member",
    description="Remove a member together with their invites, sessions and suggested questions.",
    responses={404: {"description": "Family member not found"}},
)
async def remove_member(member_id: str, user: CurrentUserDep, service: FamilyServiceDep) -> None:
    await service.remove_member(user, member_id)


# ---------------------------------------------------------------------
# Suggested questions
# ---------------------------------------------------------------------


@router.post(
    "/prompts",
    response_model=FamilyPromptRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[PromptSubmitRateLimit],
    summary="Suggest Question",
    description="A contributor suggests a question for the storyteller to answer.",
    responses={
        201: {"description": "Question submitted"},
        401: {"description": "Missing, invalid or expired session"},
        403: {"description": "Only contributors can suggest questions"},
        429: {"description": "Too many questions submitted"},
    },
)
async def submit_prompt(
    data: FamilyPromptCreate, context: FamilyContextDep, service: FamilyServiceDep
) -> FamilyPromptRead:
    return FamilyPromptRead.model_validate(await service.submit_prompt(context, data))


@router.get(
    "/prompts",
    response_model=List[FamilyPromptRead],
    summary="List Suggested Questions",
    description="Questions suggested by family members, filtered by status.",
)
async def list_prompts(
    user: CurrentUserDep,
    service: FamilyServiceDep,
    prompt_status: Optional[str] = Query(default="pending", alias="status", pattern="^(pending|answered|archived)$"),
) -> List[FamilyPromptRead]:
    return [FamilyPromptRead.model_validate(p) for p in await service.list_prompts(user, prompt_status)]


@router.patch(
    "/prompts/{prompt_id}",
    response_model=FamilyPromptRead,
    summary="Update Suggested Question",
    description="Mark a suggested question as answered (with the story) or archive it.",
    responses={404: {"description": "Question not found"}},
)
async def update_prompt(
    prompt_id: str, data: FamilyPromptUpdate, user: CurrentUserDep, service: FamilyServiceDep
) -> FamilyPromptRead:
    return FamilyPromptRead.model_validate(await service.update_prompt(user, prompt_id, data))


# ---------------------------------------------------------------------
# Unsubscribe
# ---------------------------------------------------------------------


@router.get(
    "/unsubscribe",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
    summary="Unsubscribe Family Member",
    description="Turn off story notification emails from a signed email link, then redirect to the web app.",
    responses={302: {"description": "Redirect to the unsubscribe page with a status or error"}},
)
async def unsubscribe(service: FamilyServiceDep, token: Optional[str] = None) -> RedirectResponse:
    """
    Unsubscribe from notification emails.

    Redirects to ``/unsubscribe?status=success|already-unsubscribed`` or
    ``/unsubscribe?error=missing-token|invalid-token|not-found|unexpected``.
    """
    try:
        kind, value, member = await service.unsubscribe(token)
    except SQLAlchemyError as e:
        logger.error(f"Unsubscribe failed: {e}", exc_info=True)
        kind, value, member = "error", "unexpected", None
    params = {kind: value}
    if value == "success" and member is not None and member.name:
        params["name"] = member.name
    return RedirectResponse(
        f"{settings.app_url.rstrip('/')}/unsubscribe?{urlencode(params)}", status_code=status.HTTP_302_FOUND
    )
