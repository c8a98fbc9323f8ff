"""Service for timeline share links."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import SharedAccess, User
from heritage_whisper.core.database.repositories import SharedAccessRepository, UserRepository
from heritage_whisper.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from heritage_whisper.core.models.io import ShareCreate, ShareRead, ShareUpdate
from heritage_whisper.server.core.config import settings

logger = logging.getLogger(__name__)


def new_share_token() -> str:
    """32 URL-safe characters."""
    return secrets.token_urlsafe(24)


def share_url(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/shared/{token}"


def to_share_read(share: SharedAccess) -> ShareRead:
    read = ShareRead.model_validate(share)
    read.share_url = share_url(share.share_token)
    return read


class ShareService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.shares = SharedAccessRepository(session)
        self.users = UserRepository(session)

    async def list_shares(self, user: User) -> List[SharedAccess]:
        return await self.shares.list_for_owner(user.id)

    async def create_share(self, user: User, data: ShareCreate) -> SharedAccess:
        if await self.shares.get_active_for_email(user.id, data.email) is not None:
            raise ValidationFailedError("An active share already exists for this email")
        share = await self.shares.create(
            SharedAccess(
                owner_user_id=user.id,
                shared_with_email=data.email,
                permission_level=data.permission_level.value,
                share_token=new_share_token(),
                expires_at=data.expires_at,
            )
        )
        logger.info(f"User {user.id} shared their timeline ({share.permission_level})")
        return share

    async def _owned(self, user: User, share_id: str) -> SharedAccess:
        share = await self.shares.get_for_user(share_id, user.id)
        if share is None:
            raise NotFoundError("Share not found")
        return share

    async def update_share(self, user: User, share_id: str, data: ShareUpdate) -> SharedAccess:
        share = await self._owned(user, share_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("permission_level") is not None:
            share.permission_level = data.permission_level.value
        if "expires_at" in changes:
            share.expires_at = data.expires_at
        if changes.get("is_active") is not None:
            share.is_active = data.is_active
        return await self.shares.update(share)

    async def revoke_share(self, user: User, share_id: str) -> SharedAccess:
        share = await self._owned(user, share_id)
        share.is_active = False
        return await self.shares.update(share)

    async def open_share(self, token: str, *, now: Optional[datetime] = None) -> Tuple[SharedAccess, User]:
        """
        Resolve a public share token to the share and its owner.

        Raises:
            NotFoundError: Unknown token or owner.
            PermissionDeniedError: The share was revoked or has expired.
        """
        now = now or utc_now()
        share = await self.shares.get_by_token(token)
        if share is None:
            raise NotFoundError("Share link not found")
        if not share.is_active:
            raise PermissionDeniedError("This share link has been revoked")
        if share.expires_at is not None and share.expires_at < now:
            raise PermissionDeniedError("This share link has expired")
        owner = await self.users.get_by_id(share.owner_user_id)
        if owner is None:
            raise NotFoundError("Share link not found")
        share.last_accessed_at = now
        share = await self.shares.update(share)
        return share, owner
