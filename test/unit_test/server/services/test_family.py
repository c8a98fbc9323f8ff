"""Unit tests for FamilyService: invites, joining, sessions, prompts and unsubscribe."""

from datetime import timedelta

import pytest
from sqlmodel import select

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import (
    ActivityEvent,
    FamilyInvite,
    FamilyMember,
    FamilyPrompt,
    FamilySession,
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
    FamilyPromptCreate,
    FamilyPromptUpdate,
    PermissionLevel,
)
from heritage_whisper.notifications import create_unsubscribe_token
from heritage_whisper.server.core.config import settings
from heritage_whisper.server.services.family import SESSION_ABSOLUTE_DAYS, FamilyService
from heritage_whisper.server.services.notifications import NotificationService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(session, resend) -> FamilyService:
    return FamilyService(session, notifications=NotificationService(session, resend=resend))


async def invite_member(service, user, email="sam@example.com", level=PermissionLevel.VIEWER):
    return await service.invite(user, FamilyInviteCreate(email=email, name="Sam", permission_level=level))


class TestInvite:
    async def test_invite_creates_member_and_sends_email(self, service, user, resend):
        member, link, email_sent = await invite_member(service, user, email="Sam@Example.com")

        assert member.email == "sam@example.com"
        assert member.status == "pending"
        assert link.startswith("http://localhost:3000/family/access?token=")
        assert email_sent is True
        assert resend.subjects() == ["Margaret has invited you to view their life stories"]
        assert resend.sent[0].to == ["sam@example.com"]

    async def test_invite_without_resend_still_creates_member(self, session, user):
        member, _, email_sent = await invite_member(FamilyService(session), user)

        assert member.id
        assert email_sent is False

    async def test_duplicate_email_conflicts(self, service, user):
        await invite_member(service, user)

        with pytest.raises(ConflictError):
            await invite_member(service, user)

    async def test_member_limit(self, service, user, monkeypatch):
        monkeypatch.setattr(settings, "family_member_limit", 1)
        await invite_member(service, user)

        with pytest.raises(ValidationFailedError):
            await invite_member(service, user, email="alex@example.com")

    async def test_resend_invite_issues_new_token(self, service, user):
        member, first_link, _ = await invite_member(service, user)

        _, second_link, _ = await service.resend_invite(user, member.id)

        assert second_link != first_link

    async def test_remove_member_deletes_dependents(self, service, session, user):
        member, link, _ = await invite_member(service, user, level=PermissionLevel.CONTRIBUTOR)
        context = await service.verify(link.split("token=")[1])
        await service.submit_prompt(context, FamilyPromptCreate(prompt_text="What was your first car?"))

        await service.remove_member(user, member.id)

        for entity in (FamilyMember, FamilyInvite, FamilySession, FamilyPrompt):
            assert (await session.execute(select(entity))).scalars().all() == []


class TestJoin:
    async def test_new_email_is_granted_viewer_access(self, service, user):
        response = await service.join(
            FamilyJoinRequest(storyteller_id=user.id, email="kim@example.com", name=" Kim ", relationship="Daughter")
        )

        member = await service.get_member(user, response.member_id)
        assert response.status == "granted"
        assert member.status == "active"
        assert member.permission_level == "viewer"
        assert member.name == "Kim"
        assert member.relationship == "other"
        invite = (await service.session.execute(select(FamilyInvite))).scalars().one()
        assert invite.expires_at > utc_now() + timedelta(days=360)

    async def test_active_member_gets_existing_link(self, service, user):
        granted = await service.join(FamilyJoinRequest(storyteller_id=user.id, email="kim@example.com", name="Kim"))

        again = await service.join(FamilyJoinRequest(storyteller_id=user.id, email="kim@example.com", name="Kim"))

        assert again.status == "existing"
        assert again.token == granted.token

    async def test_pending_member_cannot_join(self, service, user):
        await invite_member(service, user)

        with pytest.raises(ValidationFailedError):
            await service.join(FamilyJoinRequest(storyteller_id=user.id, email="sam@example.com", name="Sam"))

    async def test_unknown_storyteller(self, service):
        with pytest.raises(NotFoundError):
            await service.join(FamilyJoinRequest(storyteller_id="nobody", email="kim@example.com", name="Kim"))


class TestVerifyAndSessions:
    async def test_first_use_activates_member(self, service, session, user):
        _, link, _ = await invite_member(service, user)

        context = await service.verify(link.split("token=")[1], user_agent="pytest")

        assert context.member.status == "active"
        assert context.member.access_count == 1
        assert context.storyteller.id == user.id
        events = (await session.execute(select(ActivityEvent))).scalars().all()
        assert [e.event_type for e in events] == ["family_member_joined"]

    async def test_reuse_counts_access_and_replaces_session(self, service, session, user):
        _, link, _ = await invite_member(service, user)
        token = link.split("token=")[1]
        first = await service.verify(token)

        second = await service.verify(token)

        assert second.member.access_count == 2
        sessions = (await session.execute(select(FamilySession))).scalars().all()
        assert [s.token for s in sessions] == [second.session.token]
        assert first.session.token != second.session.token

    async def test_expired_invite(self, service, session, user):
        member, link, _ = await invite_member(service, user)
        invite = (await session.execute(select(FamilyInvite))).scalars().one()
        invite.expires_at = utc_now() - timedelta(minutes=1)
        session.add(invite)
        await session.commit()

        with pytest.raises(ValidationFailedError):
            await service.verify(link.split("token=")[1])

    async def test_unknown_invite(self, service):
        with pytest.raises(NotFoundError):
            await service.verify("not-a-token")

    async def test_resolve_rejects_missing_unknown_and_expired(self, service, user):
        _, link, _ = await invite_member(service, user)
        context = await service.verify(link.split("token=")[1])

        with pytest.raises(AuthenticationError):
            await service.resolve_session(None)
        with pytest.raises(AuthenticationError):
            await service.resolve_session("unknown")
        with pytest.raises(AuthenticationError):
            await service.resolve_session(context.session.token, now=utc_now() + timedelta(days=31))

    async def test_suspended_member_is_rejected(self, service, user):
        _, link, _ = await invite_member(service, user)
        context = await service.verify(link.split("token=")[1])
        context.member.status = "suspended"
        await service.members.update(context.member)

        with pytest.raises(AuthenticationError):
            await service.resolve_session(context.session.token)

    async def test_refresh_is_capped_at_absolute_expiry(self, service, user):
        _, link, _ = await invite_member(service, user)
        context = await service.verify(link.split("token=")[1])
        absolute = context.session.absolute_expires_at

        later = utc_now() + timedelta(days=SESSION_ABSOLUTE_DAYS - 5)
        context.session.expires_at = later + timedelta(days=1)
        await service.sessions.update(context.session)
        refreshed = await service.refresh_session(context.session.token, now=later)

        assert refreshed.session.expires_at == absolute

    async def test_logout_deletes_session(self, service, user):
        _, link, _ = await invite_member(service, user)
        context = await service.verify(link.split("token=")[1])

        await service.logout(context.session.token)
        await service.logout(None)

        with pytest.raises(AuthenticationError):
            await service.resolve_session(context.session.token)


class TestFamilyPrompts:
    async def test_viewer_cannot_submit(self, service, user):
        _, link, _ = await invite_member(service, user)
        context = await service.verify(link.split("token=")[1])

        with pytest.raises(PermissionDeniedError):
            await service.submit_prompt(context, FamilyPromptCreate(prompt_text="Tell us about Grandpa"))

    async def test_contributor_prompt_is_listed_and_answered(self, service, user):
        _, link, _ = await invite_member(service, user, level=PermissionLevel.CONTRIBUTOR)
        context = await service.verify(link.split("token=")[1])
        prompt = await service.submit_prompt(
            context, FamilyPromptCreate(prompt_text="  Tell us about Grandpa  ", context="For the reunion")
        )

        assert prompt.prompt_text == "Tell us about Grandpa"
        assert [p.id for p in await service.list_prompts(user)] == [prompt.id]

        answered = await service.update_prompt(
            user, prompt.id, FamilyPromptUpdate(status="answered", answered_story_id="story-1")
        )
        assert answered.answered_story_id == "story-1"
        assert answered.answered_at is not None
        assert await service.list_prompts(user) == []

    async def test_update_unknown_prompt(self, service, user):
        with pytest.raises(NotFoundError):
            await service.update_prompt(user, "missing", FamilyPromptUpdate(status="archived"))


class TestUnsubscribe:
    async def test_missing_and_invalid_tokens(self, service):
        assert (await service.unsubscribe(None))[:2] == ("error", "missing-token")
        assert (await service.unsubscribe("garbage"))[:2] == ("error", "invalid-token")

    async def test_unknown_member(self, service):
        token = create_unsubscribe_token("no-such-member", settings.family.unsubscribe_secret)

        assert (await service.unsubscribe(token))[:2] == ("error", "not-found")

    async def test_unsubscribe_then_already_unsubscribed(self, service, user):
        member, _, _ = await invite_member(service, user)
        token = create_unsubscribe_token(member.id, settings.family.unsubscribe_secret)

        kind, status, updated = await service.unsubscribe(token)
        again = await service.unsubscribe(token)

        assert (kind, status) == ("status", "success")
        assert updated.email_notifications is False
        assert again[:2] == ("status", "already-unsubscribed")
