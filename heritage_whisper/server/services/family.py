"""
Service for family sharing.

A storyteller invites family members by email. Each invite carries a
single token; opening it through ``verify`` starts a family session whose
token lives in an HttpOnly cookie. Sessions slide forward on refresh but
never outlive their absolute expiry.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import FamilyInvite, FamilyMember, FamilyPrompt, FamilySession, User
from heritage_whisper.core.database.repositories import (
    FamilyInviteRepository,
    FamilyMemberRepository,
    FamilyPromptRepository,
    FamilySessionRepository,
    UserRepository,
)
from heritage_whisper.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from heritage_whisper.core.models.io import (
    FamilyInviteCreate,
    FamilyJoinRequest,
    FamilyJoinResponse,
    FamilyMemberUpdate,
    FamilyPromptCreate,
    FamilyPromptUpdate,
    FamilySessionRead,
    PermissionLevel,
)
from heritage_whisper.notifications import verify_unsubscribe_token
from heritage_whisper.server.core.config import settings

from .activity import ActivityService
from .notifications import INVITE_EXPIRY_DAYS, NotificationService, family_access_link, new_invite_token

logger = logging.getLogger(__name__)

JOIN_INVITE_EXPIRY_DAYS = 365
SESSION_SLIDING_DAYS = 30
SESSION_ABSOLUTE_DAYS = 90

RELATIONSHIPS = ("spouse", "partner", "child", "parent", "sibling", "grandparent", "grandchild", "other")


def normalize_relationship(value: Optional[str]) -> str:
    """Map free text onto the known relationships, ``other`` when unknown."""
    cleaned = (value or "").strip().lower()
    return cleaned if cleaned in RELATIONSHIPS else "other"


def new_session_token() -> str:
    return secrets.token_hex(32)


@dataclass
class FamilyContext:
    """An authenticated family session with its member and storyteller."""

    session: FamilySession
    member: FamilyMember
    storyteller: User

    def to_read(self) -> FamilySessionRead:
        return FamilySessionRead(
            member_id=self.member.id,
            storyteller_id=self.storyteller.id,
            storyteller_name=self.storyteller.name,
            member_name=self.member.name,
            relationship=self.member.relationship,
            permission_level=self.member.permission_level,
            expires_at=self.session.expires_at,
            absolute_expires_at=self.session.absolute_expires_at,
        )


class FamilyService:
    """Service for family members, invites, sessions and submitted prompts."""

    def __init__(self, session: AsyncSession, *, notifications: Optional[NotificationService] = None):
        self.session = session
        self.members = FamilyMemberRepository(session)
        self.invites = FamilyInviteRepository(session)
        self.sessions = FamilySessionRepository(session)
        self.prompts = FamilyPromptRepository(session)
        self.users = UserRepository(session)
        self.notifications = notifications or NotificationService(session, resend=None)

    # -----------------------------------------------------------------
    # Storyteller side
    # -----------------------------------------------------------------

    async def list_members(self, user: User) -> List[FamilyMember]:
        return await self.members.list_for_user(user.id)

    async def get_member(self, user: User, member_id: str) -> FamilyMember:
        member = await self.members.get_for_user(member_id, user.id)
        if member is None:
            raise NotFoundError("Family member not found")
        return member

    async def _issue_invite(self, member: FamilyMember, days: int) -> FamilyInvite:
        return await self.invites.create(
            FamilyInvite(
                family_member_id=member.id,
                token=new_invite_token(),
                expires_at=utc_now() + timedelta(days=days),
            )
        )

    async def _send_invite_email(self, user: User, member: FamilyMember, invite: FamilyInvite) -> bool:
        return await self.notifications.send(
            "family_invite",
            member.email,
            {
                "storyteller_name": user.name,
                "member_name": member.name,
                "personal_message": member.custom_message,
                "magic_link": family_access_link(invite.token),
                "expires_on": invite.expires_at.strftime("%B %d, %Y"),
            },
        )

    async def invite(self, user: User, data: FamilyInviteCreate) -> Tuple[FamilyMember, str, bool]:
        """
        Invite a family member by email.

        Returns:
            ``(member, invite_url, email_sent)``.
        """
        limit = settings.family.member_limit
        if await self.members.count_for_user(user.id) >= limit:
            raise ValidationFailedError(f"You can invite at most {limit} family members")
        if await self.members.get_by_email(user.id, data.email) is not None:
            raise ConflictError("This email has already been invited")

        member = await self.members.create(
            FamilyMember(
                user_id=user.id,
                email=data.email,
                name=data.name,
                relationship=data.relationship,
                permission_level=data.permission_level.value,
                custom_message=data.custom_message,
            )
        )
        invite = await self._issue_invite(member, INVITE_EXPIRY_DAYS)
        email_sent = await self._send_invite_email(user, member, invite)
        logger.info(f"User {user.id} invited family member {member.id} (email sent: {email_sent})")
        return member, family_access_link(invite.token), email_sent

    async def resend_invite(self, user: User, member_id: str) -> Tuple[FamilyMember, str, bool]:
        member = await self.get_member(user, member_id)
        invite = await self._issue_invite(member, INVITE_EXPIRY_DAYS)
        email_sent = await self._send_invite_email(user, member, invite)
        return member, family_access_link(invite.token), email_sent

    async def update_member(self, user: User, member_id: str, data: FamilyMemberUpdate) -> FamilyMember:
        member = await self.get_member(user, member_id)
        if data.permission_level is not None:
            member.permission_level = data.permission_level.value
        if data.email_notifications is not None:
            member.email_notifications = data.email_notifications
        return await self.members.update(member)

    async def remove_member(self, user: User, member_id: str) -> None:
        member = await self.get_member(user, member_id)
        await self.sessions.delete_for_member(member.id)
        await self.invites.delete_for_member(member.id)
        await self.prompts.delete_for_member(member.id)
        await self.members.delete(member.id)
        logger.info(f"User {user.id} removed family member {member.id}")

    # -----------------------------------------------------------------
    # Joining and verification
    # -----------------------------------------------------------------

    async def join(self, data: FamilyJoinRequest) -> FamilyJoinResponse:
        """Grant viewer access through a storyteller's open join link."""
        storyteller = await self.users.get_by_id(data.storyteller_id)
        if storyteller is None:
            raise NotFoundError("Invalid invitation link")

        existing = await self.members.get_by_email(storyteller.id, data.email)
        if existing is not None:
            if existing.status == "active":
                invite = await self.invites.latest_for_member(existing.id)
                if invite is not None:
                    return FamilyJoinResponse(
                        member_id=existing.id,
                        token=invite.token,
                        status="existing",
                        magic_link=family_access_link(invite.token),
                    )
            raise ValidationFailedError("This email already has a pending invitation")

        if await self.members.count_for_user(storyteller.id) >= settings.family.member_limit:
            raise ValidationFailedError("This storyteller has reached their family member limit")

        member = await self.members.create(
            FamilyMember(
                user_id=storyteller.id,
                email=data.email,
                name=data.name.strip(),
                relationship=normalize_relationship(data.relationship),
                permission_level=PermissionLevel.VIEWER.value,
                status="active",
            )
        )
        invite = await self._issue_invite(member, JOIN_INVITE_EXPIRY_DAYS)
        return FamilyJoinResponse(
            member_id=member.id,
            token=invite.token,
            status="granted",
            magic_link=family_access_link(invite.token),
        )

    async def verify(
        self, token: str, *, user_agent: Optional[str] = None, ip_address: Optional[str] = None
    ) -> FamilyContext:
        """
        Exchange an invite token for a new family session.

        The first use activates the member and records a ``family_member_joined``
        event; later uses only count the access. Older sessions of the member
        are replaced.
        """
        now = utc_now()
        invite = await self.invites.get_by_token(token)
        if invite is None:
            raise NotFoundError("Invalid or expired invite link")
        if invite.expires_at < now:
            raise ValidationFailedError("This invite link has expired")
        member = await self.members.get_by_id(invite.family_member_id)
        if member is None:
            raise NotFoundError("Family member not found")
        storyteller = await self.users.get_by_id(member.user_id)
        if storyteller is None:
            raise NotFoundError("Storyteller not found")

        first_use = invite.used_at is None
        if first_use:
            invite.used_at = now
            await self.invites.update(invite)
            member.status = "active"
            member.first_accessed_at = member.first_accessed_at or now
            member.access_count = 1
        else:
            member.access_count = (member.access_count or 0) + 1
        member.last_accessed_at = now
        member = await self.members.update(member)
        if first_use:
            await ActivityService(self.session).log_activity_event(
                storyteller.id,
                "family_member_joined",
                family_member_id=member.id,
                metadata={"email": member.email, "name": member.name, "relationship": member.relationship},
            )

        await self.sessions.delete_for_member(member.id)
        family_session = await self.sessions.create(
            FamilySession(
                family_member_id=member.id,
                token=new_session_token(),
                user_agent=user_agent,
                ip_address=ip_address,
                expires_at=now + timedelta(days=SESSION_SLIDING_DAYS),
                absolute_expires_at=now + timedelta(days=SESSION_ABSOLUTE_DAYS),
                last_active_at=now,
            )
        )
        purged = await self.sessions.purge_expired(now)
        if purged:
            logger.debug(f"Purged {purged} expired family sessions")
        return FamilyContext(session=family_session, member=member, storyteller=storyteller)

    # -----------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------

    async def resolve_session(self, token: Optional[str], *, now: Optional[datetime] = None) -> FamilyContext:
        now = now or utc_now()
        if not token:
            raise AuthenticationError("Family session required")
        family_session = await self.sessions.get_by_token(token)
        if family_session is None:
            raise AuthenticationError("Invalid family session")
        if family_session.expires_at < now or family_session.absolute_expires_at < now:
            await self.sessions.delete(family_session.id)
            raise AuthenticationError("Family session expired")
        member = await self.members.get_by_id(family_session.family_member_id)
        if member is None or member.status == "suspended":
            raise AuthenticationError("Family access has been revoked")
        storyteller = await self.users.get_by_id(member.user_id)
        if storyteller is None:
            raise AuthenticationError("Storyteller not found")
        return FamilyContext(session=family_session, member=member, storyteller=storyteller)

    async def refresh_session(self, token: Optional[str], *, now: Optional[datetime] = None) -> FamilyContext:
        """Slide the expiry forward by 30 days, capped at the absolute expiry."""
        now = now or utc_now()
        context = await self.resolve_session(token, now=now)
        family_session = context.session
        family_session.expires_at = min(
            now + timedelta(days=SESSION_SLIDING_DAYS), family_session.absolute_expires_at
        )
        family_session.last_active_at = now
        context.session = await self.sessions.update(family_session)
        return context

    async def logout(self, token: Optional[str]) -> None:
        if not token:
            return
        family_session = await self.sessions.get_by_token(token)
        if family_session is not None:
            await self.sessions.delete(family_session.id)

    # -----------------------------------------------------------------
    # Family prompts
    # -----------------------------------------------------------------

    async def submit_prompt(self, context: FamilyContext, data: FamilyPromptCreate) -> FamilyPrompt:
        if context.member.permission_level != PermissionLevel.CONTRIBUTOR.value:
            raise PermissionDeniedError("Only contributors can suggest questions")
        prompt = await self.prompts.create(
            FamilyPrompt(
                storyteller_user_id=context.storyteller.id,
                family_member_id=context.member.id,
                prompt_text=data.prompt_text.strip(),
                context=data.context,
            )
        )
        await ActivityService(self.session).log_activity_event(
            context.storyteller.id,
            "family_prompt_submitted",
            family_member_id=context.member.id,
            metadata={"prompt_id": prompt.id},
        )
        return prompt

    async def list_prompts(self, user: User, status: Optional[str] = "pending") -> List[FamilyPrompt]:
        return await self.prompts.list_for_storyteller(user.id, status)

    async def update_prompt(self, user: User, prompt_id: str, data: FamilyPromptUpdate) -> FamilyPrompt:
        prompt = await self.prompts.get_for_storyteller(prompt_id, user.id)
        if prompt is None:
            raise NotFoundError("Prompt not found")
        prompt.status = data.status
        if data.status == "answered":
            prompt.answered_story_id = data.answered_story_id
            prompt.answered_at = utc_now()
        return await self.prompts.update(prompt)

    # -----------------------------------------------------------------
    # Unsubscribe
    # -----------------------------------------------------------------

    async def unsubscribe(self, token: Optional[str]) -> Tuple[str, str, Optional[FamilyMember]]:
        """
        Turn off notification emails for the member named by a signed token.

        Returns:
            ``(kind, value, member)`` where kind is ``status`` or ``error``.
        """
        if not token:
            return "error", "missing-token", None
        member_id = verify_unsubscribe_token(token, settings.family.unsubscribe_secret)
        if member_id is None:
            return "error", "invalid-token", None
        member = await self.members.get_by_id(member_id)
        if member is None:
            return "error", "not-found", None
        if not member.email_notifications:
            return "status", "already-unsubscribed", member
        member.email_notifications = False
        member = await self.members.update(member)
        logger.info(f"Family member {member.id} unsubscribed from story notifications")
        return "status", "success", member
