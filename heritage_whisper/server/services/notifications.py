"""
Service for family notification emails.

Every send is best effort: rendering or delivery failures are logged and
counted, never raised to the caller. Without a Resend client nothing is sent.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import FamilyInvite, FamilyMember, Story, User
from heritage_whisper.core.database.repositories import (
    FamilyInviteRepository,
    FamilyMemberRepository,
    StoryRepository,
    UserRepository,
)
from heritage_whisper.core.monitoring import log_email_sent
from heritage_whisper.integrations import (
    EmailMessage,
    IntegrationError,
    ResendClient,
    SupabaseClient,
    resolve_storage_url,
    storage_path_from_url,
)
from heritage_whisper.notifications import EmailRenderError, first_sentence, render_email, unsubscribe_url
from heritage_whisper.server.core.config import settings

logger = logging.getLogger(__name__)

INVITE_EXPIRY_DAYS = 7
DIGEST_INTERVAL_HOURS = 24
DIGEST_LOOKBACK_DAYS = 7
SIGNED_PHOTO_EXPIRY_SECONDS = 7 * 24 * 60 * 60


def new_invite_token() -> str:
    """64 hex characters."""
    return secrets.token_hex(32)


def family_access_link(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/family/access?token={token}"


@dataclass
class DigestReport:
    total_family_members: int = 0
    emails_sent: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


class NotificationService:
    """Sends invitation, new-story and digest emails to family members."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        resend: Optional[ResendClient],
        supabase: Optional[SupabaseClient] = None,
    ):
        self.session = session
        self.resend = resend
        self.supabase = supabase
        self.members = FamilyMemberRepository(session)
        self.invites = FamilyInviteRepository(session)
        self.stories = StoryRepository(session)
        self.users = UserRepository(session)

    @property
    def enabled(self) -> bool:
        return self.resend is not None

    async def send(self, template: str, to: str, context: Dict[str, Any]) -> bool:
        """Render ``template`` and deliver it to ``to``. Returns whether Resend accepted it."""
        if self.resend is None:
            logger.info(f"Skipping {template} email to {to}: Resend is not configured")
            return False
        try:
            rendered = render_email(template, context)
            await self.resend.send(
                EmailMessage(
                    to=[to],
                    subject=rendered.subject,
                    html=rendered.html,
                    text=rendered.text,
                    tags=[{"name": "template", "value": template}],
                )
            )
        except (EmailRenderError, IntegrationError) as e:
            logger.error(f"Failed to send {template} email to {to}: {e}")
            log_email_sent(template, 1, False)
            return False
        log_email_sent(template, 1, True)
        return True

    async def invite_token_for(self, member: FamilyMember, *, now: Optional[datetime] = None) -> str:
        """Reuse the member's unused invite or issue a fresh 7-day one."""
        now = now or utc_now()
        invite = await self.invites.reusable_for_member(member.id, now)
        if invite is not None:
            return invite.token
        invite = await self.invites.create(
            FamilyInvite(
                family_member_id=member.id,
                token=new_invite_token(),
                expires_at=now + timedelta(days=INVITE_EXPIRY_DAYS),
            )
        )
        return invite.token

    async def hero_photo_url(self, story: Story) -> Optional[str]:
        """Signed URL of the story's hero photo, valid for a week."""
        photos = story.get_photos_list()
        hero = next((p for p in photos if p.get("is_hero")), photos[0] if photos else None)
        url = hero.get("url") if hero else story.photo_url
        path = storage_path_from_url(url, settings.supabase.photos_bucket)
        if path and self.supabase is not None:
            try:
                return await self.supabase.create_signed_url(
                    settings.supabase.photos_bucket, path, expires_in=SIGNED_PHOTO_EXPIRY_SECONDS
                )
            except IntegrationError as e:
                logger.warning(f"Failed to sign hero photo for story {story.id}: {e}")
                return None
        return resolve_storage_url(url, self.supabase, settings.supabase.photos_bucket)

    def _unsubscribe_link(self, member: FamilyMember) -> str:
        return unsubscribe_url(settings.api_url, member.id, settings.family.unsubscribe_secret)

    async def _stamp(self, member: FamilyMember, when: datetime) -> None:
        member.last_story_notification_sent_at = when
        await self.members.update(member)

    # -----------------------------------------------------------------
    # New story
    # -----------------------------------------------------------------

    async def notify_new_story(self, storyteller: User, story: Story) -> int:
        """Email every active family member who accepts notifications. Returns the number sent."""
        if not self.enabled:
            logger.info("Skipping story emails: Resend is not configured")
            return 0
        members = await self.members.list_notifiable(storyteller.id)
        if not members:
            logger.info(f"No family members to notify about story {story.id}")
            return 0

        hero_url = await self.hero_photo_url(story)
        sentence = first_sentence(story.transcription)
        storyteller_name = storyteller.name or "Your family member"

        sent = 0
        for member in members:
            token = await self.invite_token_for(member)
            delivered = await self.send(
                "new_story",
                member.email,
                {
                    "storyteller_name": storyteller_name,
                    "member_name": member.name or member.email.split("@")[0],
                    "story_title": story.title,
                    "story_year": story.story_year,
                    "hero_photo_url": hero_url,
                    "first_sentence": sentence,
                    "view_link": family_access_link(token),
                    "unsubscribe_link": self._unsubscribe_link(member),
                },
            )
            if delivered:
                sent += 1
                await self._stamp(member, utc_now())
        logger.info(f"Story notifications for {story.id}: {sent} sent, {len(members) - sent} failed")
        return sent

    # -----------------------------------------------------------------
    # Daily digest
    # -----------------------------------------------------------------

    async def send_daily_digests(self, *, now: Optional[datetime] = None) -> DigestReport:
        """
        Send one digest per family member not notified in the last day.

        Stories created since the member's last notification (or the last week
        for members never notified) are listed. Members of storytellers who
        turned email off are skipped.
        """
        now = now or utc_now()
        report = DigestReport()
        if not self.enabled:
            logger.warning("Skipping daily digest: Resend is not configured")
            return report

        members = await self.members.list_due_for_digest(now - timedelta(hours=DIGEST_INTERVAL_HOURS))
        report.total_family_members = len(members)
        storytellers: Dict[str, Optional[User]] = {}

        for member in members:
            if member.user_id not in storytellers:
                storytellers[member.user_id] = await self.users.get_by_id(member.user_id)
            storyteller = storytellers[member.user_id]
            if storyteller is None or not storyteller.email_notifications:
                report.skipped += 1
                continue

            since = member.last_story_notification_sent_at or now - timedelta(days=DIGEST_LOOKBACK_DAYS)
            stories = await self.stories.list_created_since(storyteller.id, since)
            if not stories:
                report.skipped += 1
                continue

            delivered = await self.send(
                "daily_digest",
                member.email,
                {
                    "storyteller_name": storyteller.name or "Your family member",
                    "member_name": member.name,
                    "story_count": len(stories),
                    "stories": [{"title": s.title or "Untitled Story", "year": s.story_year} for s in stories],
                    "hero_photo_url": await self.hero_photo_url(stories[0]),
                    "view_link": family_access_link(await self.invite_token_for(member, now=now)),
                    "unsubscribe_link": self._unsubscribe_link(member),
                },
            )
            if not delivered:
                report.errors.append(f"Failed to send to {member.email}")
                continue
            await self._stamp(member, now)
            report.emails_sent += 1

        logger.info(
            f"Daily digest: {report.emails_sent} sent, {report.skipped} skipped, "
            f"{len(report.errors)} errors of {report.total_family_members} members"
        )
        return report
