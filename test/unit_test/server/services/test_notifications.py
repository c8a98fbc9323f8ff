"""Unit tests for NotificationService: story emails and the daily digest."""

from datetime import timedelta

import pytest
from sqlmodel import select

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import FamilyInvite, FamilyMember, Story
from heritage_whisper.server.services.notifications import INVITE_EXPIRY_DAYS, NotificationService

pytestmark = pytest.mark.asyncio


async def add_member(session, user, email, **overrides) -> FamilyMember:
    overrides.setdefault("status", "active")
    member = FamilyMember(user_id=user.id, email=email, name=email.split("@")[0].title(), **overrides)
    session.add(member)
    await session.commit()
    return member


async def add_story(session, user, title, **overrides) -> Story:
    story = Story(user_id=user.id, title=title, **overrides)
    session.add(story)
    await session.commit()
    return story


class TestSend:
    async def test_send_without_resend_is_skipped(self, session):
        sent = await NotificationService(session, resend=None).send("welcome", "a@example.com", {"name": "A"})

        assert sent is False

    async def test_failed_delivery_returns_false(self, session, resend):
        resend.fail_for = "a@example.com"

        sent = await NotificationService(session, resend=resend).send("welcome", "a@example.com", {"name": "A"})

        assert sent is False


class TestInviteTokens:
    async def test_unused_invite_is_reused(self, session, user, resend):
        member = await add_member(session, user, "sam@example.com")
        service = NotificationService(session, resend=resend)

        first = await service.invite_token_for(member)
        second = await service.invite_token_for(member)

        assert first == second
        invite = (await session.execute(select(FamilyInvite))).scalars().one()
        assert invite.expires_at > utc_now() + timedelta(days=INVITE_EXPIRY_DAYS - 1)

    async def test_used_invite_gets_replaced(self, session, user, resend):
        member = await add_member(session, user, "sam@example.com")
        service = NotificationService(session, resend=resend)
        first = await service.invite_token_for(member)
        invite = (await session.execute(select(FamilyInvite))).scalars().one()
        invite.used_at = utc_now()
        session.add(invite)
        await session.commit()

        assert await service.invite_token_for(member) != first


class TestNewStory:
    async def test_only_active_notifiable_members_are_emailed(self, session, user, resend):
        sam = await add_member(session, user, "sam@example.com")
        await add_member(session, user, "quiet@example.com", email_notifications=False)
        await add_member(session, user, "pending@example.com", status="pending")
        story = await add_story(
            session, user, "The Blue Bicycle", story_year=1958, transcription="I saved for a whole summer. Then more."
        )

        sent = await NotificationService(session, resend=resend).notify_new_story(user, story)

        assert sent == 1
        assert [m.to for m in resend.sent] == [["sam@example.com"]]
        assert "I saved for a whole summer." in resend.sent[0].text
        assert "/family/access?token=" in resend.sent[0].html
        await session.refresh(sam)
        assert sam.last_story_notification_sent_at is not None

    async def test_failed_member_is_not_stamped(self, session, user, resend):
        member = await add_member(session, user, "sam@example.com")
        story = await add_story(session, user, "Boxing")
        resend.fail_for = "sam@example.com"

        sent = await NotificationService(session, resend=resend).notify_new_story(user, story)

        assert sent == 0
        await session.refresh(member)
        assert member.last_story_notification_sent_at is None

    async def test_disabled_without_resend(self, session, user):
        await add_member(session, user, "sam@example.com")
        story = await add_story(session, user, "Boxing")

        assert await NotificationService(session, resend=None).notify_new_story(user, story) == 0


class TestDailyDigest:
    async def test_digest_report(self, session, user, resend):
        now = utc_now()
        await add_member(session, user, "due@example.com")
        await add_member(session, user, "recent@example.com", last_story_notification_sent_at=now - timedelta(hours=2))
        await add_member(session, user, "idle@example.com", last_story_notification_sent_at=now - timedelta(days=2))
        await add_story(session, user, "Boxing", created_at=now - timedelta(days=3))
        await add_story(session, user, "Denver", created_at=now - timedelta(hours=1))

        report = await NotificationService(session, resend=resend).send_daily_digests(now=now)

        assert report.total_family_members == 2
        assert report.emails_sent == 2
        assert report.skipped == 0
        assert report.errors == []
        subjects = resend.subjects()
        assert len(subjects) == 2

    async def test_members_without_new_stories_are_skipped(self, session, user, resend):
        now = utc_now()
        await add_member(session, user, "idle@example.com", last_story_notification_sent_at=now - timedelta(days=2))
        await add_story(session, user, "Old", created_at=now - timedelta(days=5))

        report = await NotificationService(session, resend=resend).send_daily_digests(now=now)

        assert (report.total_family_members, report.emails_sent, report.skipped) == (1, 0, 1)

    async def test_storyteller_who_opted_out_is_skipped(self, session, user, resend):
        user.email_notifications = False
        session.add(user)
        await session.commit()
        await add_member(session, user, "due@example.com")
        await add_story(session, user, "Boxing")

        report = await NotificationService(session, resend=resend).send_daily_digests()

        assert (report.emails_sent, report.skipped) == (0, 1)
        assert resend.sent == []

    async def test_failures_are_collected(self, session, user, resend):
        await add_member(session, user, "due@example.com")
        await add_story(session, user, "Boxing")
        resend.fail_for = "due@example.com"

        report = await NotificationService(session, resend=resend).send_daily_digests()

        assert report.errors == ["Failed to send to due@example.com"]
        assert report.emails_sent == 0

    async def test_disabled_without_resend(self, session):
        report = await NotificationService(session, resend=None).send_daily_digests()

        assert report.total_family_members == 0
