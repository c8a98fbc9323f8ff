from datetime import datetime, timedelta

import pytest

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from heritage_whisper.core.models.io import ShareCreate, SharePermission, ShareUpdate
from heritage_whisper.server.services.shares import ShareService, share_url, to_share_read

pytestmark = pytest.mark.asyncio


class TestShareService:
    async def test_create_share(self, session, user):
        share = await ShareService(session).create_share(
            user, ShareCreate(email="Cousin@Example.com", permission_level=SharePermission.EDIT)
        )

        assert share.shared_with_email == "cousin@example.com"
        assert share.permission_level == "edit"
        assert share.is_active is True
        assert len(share.share_token) == 32
        assert to_share_read(share).share_url == f"http://localhost:3000/shared/{share.share_token}"

    async def test_second_active_share_for_same_email_is_rejected(self, session, user):
        service = ShareService(session)
        await service.create_share(user, ShareCreate(email="cousin@example.com"))

        with pytest.raises(ValidationFailedError):
            await service.create_share(user, ShareCreate(email="cousin@example.com"))

    async def test_revoked_share_can_be_recreated(self, session, user):
        service = ShareService(session)
        first = await service.create_share(user, ShareCreate(email="cousin@example.com"))
        await service.revoke_share(user, first.id)

        second = await service.create_share(user, ShareCreate(email="cousin@example.com"))

        assert second.share_token != first.share_token
        assert len(await service.list_shares(user)) == 2

    async def test_update_only_given_fields(self, session, user):
        service = ShareService(session)
        expires = utc_now() + timedelta(days=10)
        share = await service.create_share(user, ShareCreate(email="cousin@example.com", expires_at=expires))

        updated = await service.update_share(user, share.id, ShareUpdate(permission_level=SharePermission.EDIT))
        assert (updated.permission_level, updated.expires_at) == ("edit", expires)

        cleared = await service.update_share(user, share.id, ShareUpdate(expires_at=None))
        assert cleared.expires_at is None

    async def test_aware_expiry_is_stored_as_naive_utc(self, session, user):
        service = ShareService(session)

        share = await service.create_share(
            user, ShareCreate(email="cousin@example.com", expires_at="2030-06-01T12:00:00+02:00")
        )
        updated = await service.update_share(user, share.id, ShareUpdate(expires_at="2020-01-01T08:30:00Z"))

        assert share.expires_at == datetime(2030, 6, 1, 10, 0)
        assert updated.expires_at == datetime(2020, 1, 1, 8, 30)
        assert updated.expires_at.tzinfo is None
        with pytest.raises(PermissionDeniedError):
            await service.open_share(updated.share_token)

    async def test_unknown_share(self, session, user):
        with pytest.raises(NotFoundError):
            await ShareService(session).revoke_share(user, "missing")


class TestOpenShare:
    async def test_open_records_access(self, session, user):
        service = ShareService(session)
        share = await service.create_share(user, ShareCreate(email="cousin@example.com"))

        opened, owner = await service.open_share(share.share_token)

        assert owner.id == user.id
        assert opened.last_accessed_at is not None

    async def test_unknown_token(self, session):
        with pytest.raises(NotFoundError):
            await ShareService(session).open_share("nope")

    async def test_revoked_share(self, session, user):
        service = ShareService(session)
        share = await service.create_share(user, ShareCreate(email="cousin@example.com"))
        await service.revoke_share(user, share.id)

        with pytest.raises(PermissionDeniedError):
            await service.open_share(share.share_token)

    async def test_expired_share(self, session, user):
        service = ShareService(session)
        share = await service.create_share(
            user, ShareCreate(email="cousin@example.com", expires_at=utc_now() + timedelta(hours=1))
        )

        with pytest.raises(PermissionDeniedError):
            await service.open_share(share.share_token, now=utc_now() + timedelta(hours=2))


def test_share_url_strips_trailing_slash(monkeypatch):
    from heritage_whisper.server.core.config import settings

    monkeypatch.setattr(settings, "app_url", "https://heritagewhisper.com/")

    assert share_url("abc") == "https://heritagewhisper.com/shared/abc"
