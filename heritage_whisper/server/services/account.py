"""
Service for the storyteller's own account: profile, data export, PDF export
and deletion.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from heritage_whisper.core.database.base import utc_now
from heritage_whisper.core.database.entities import User
from heritage_whisper.core.database.repositories import (
    FamilyMemberRepository,
    SharedAccessRepository,
    StoryRepository,
    TreasureRepository,
    UserRepository,
)
from heritage_whisper.core.models.io import AccountExport, FamilyMemberRead, ProfileUpdate, UserRead
from heritage_whisper.integrations import (
    IntegrationError,
    IntegrationNotConfiguredError,
    PDFShiftClient,
    SupabaseClient,
    storage_path_from_url,
)
from heritage_whisper.server.core.config import settings

from .stories import StoryService
from .treasures import TreasureService

logger = logging.getLogger(__name__)

PRINT_PATH = "/book/print"
PRINT_READY_SELECTOR = "[data-print-ready]"


def mask_email(email: Optional[str]) -> Optional[str]:
    """Hide a third party's address: ``j***@example.com``."""
    if not email:
        return email
    local, _, domain = email.partition("@")
    if not local or not domain:
        return email
    return f"{local[0]}***@{domain}"


def mask_token(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    return f"{token[:4]}…"


class AccountService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        supabase: Optional[SupabaseClient] = None,
        pdfshift: Optional[PDFShiftClient] = None,
    ):
        self.session = session
        self.supabase = supabase
        self.pdfshift = pdfshift
        self.users = UserRepository(session)
        self.stories = StoryRepository(session)
        self.treasures = TreasureRepository(session)
        self.members = FamilyMemberRepository(session)
        self.shares = SharedAccessRepository(session)

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        for field, value in changes.items():
            setattr(user, field, value)
        user.updated_at = utc_now()
        return await self.users.update(user)

    async def export_data(self, user: User) -> AccountExport:
        """
        Build the JSON archive of everything the storyteller owns.

        Family members' emails and share tokens are masked since they belong to
        or grant access to other people.
        """
        story_service = StoryService(self.session, supabase=self.supabase)
        treasure_service = TreasureService(self.session, supabase=self.supabase)
        stories = await self.stories.list_chronological(user.id)
        treasures = await self.treasures.list_for_user(user.id)
        members = await self.members.list_for_user(user.id)
        shares = await self.shares.list_for_owner(user.id)

        family_members = []
        for member in members:
            entry = FamilyMemberRead.model_validate(member).model_dump(mode="json")
            entry["email"] = mask_email(member.email)
            family_members.append(entry)

        now = utc_now()
        user.data_exports_count = (user.data_exports_count or 0) + 1
        user.last_data_export_at = now
        user.updated_at = now
        user = await self.users.update(user)
        logger.info(f"User {user.id} exported their data ({len(stories)} stories)")

        return AccountExport(
            exported_at=now,
            profile=UserRead.model_validate(user),
            stories=[story_service.to_read(s).model_dump(mode="json") for s in stories],
            treasures=[treasure_service.to_read(t).model_dump(mode="json") for t in treasures],
            family_members=family_members,
            shares=[
                {
                    "id": share.id,
                    "shared_with_email": mask_email(share.shared_with_email),
                    "permission_level": share.permission_level,
                    "share_token": mask_token(share.share_token),
                    "is_active": share.is_active,
                    "expires_at": share.expires_at.isoformat() if share.expires_at else None,
                    "created_at": share.created_at.isoformat(),
                }
                for share in shares
            ],
        )

    def print_url(self, user: User) -> str:
        return f"{settings.app_url.rstrip('/')}{PRINT_PATH}?{urlencode({'userId': user.id})}"

    async def export_pdf(self, user: User) -> bytes:
        """Render the print view of the user's book through PDFShift."""
        if self.pdfshift is None:
            raise IntegrationNotConfiguredError("PDFShift")
        pdf = await self.pdfshift.render_url(self.print_url(user), wait_for_selector=PRINT_READY_SELECTOR)
        now = utc_now()
        user.pdf_exports_count = (user.pdf_exports_count or 0) + 1
        user.last_pdf_export_at = now
        user.updated_at = now
        await self.users.update(user)
        logger.info(f"User {user.id} exported a PDF ({len(pdf)} bytes)")
        return pdf

    async def _remove_storage(self, user: User) -> None:
        audio_bucket = settings.supabase.audio_bucket
        photos_bucket = settings.supabase.photos_bucket
        audio: List[str] = []
        photos: List[str] = []
        for story in await self.stories.list_chronological(user.id):
            path = storage_path_from_url(story.audio_url, audio_bucket)
            if path:
                audio.append(path)
            for photo in story.get_photos_list():
                path = storage_path_from_url(photo.get("url"), photos_bucket)
                if path:
                    photos.append(path)
        for treasure in await self.treasures.list_for_user(user.id):
            path = storage_path_from_url(treasure.image_url, photos_bucket)
            if path:
                photos.append(path)
        path = storage_path_from_url(user.profile_photo_url, photos_bucket)
        if path:
            photos.append(path)

        for bucket, paths in ((audio_bucket, audio), (photos_bucket, photos)):
            if not paths:
                continue
            try:
                await self.supabase.remove(bucket, paths)
            except IntegrationError as e:
                logger.warning(f"Failed to remove {len(paths)} objects from {bucket} for user {user.id}: {e}")

    async def delete_account(self, user: User) -> None:
        """
        Permanently delete the account.

        Storage objects go first (best effort), then every owned row, then the
        Supabase auth user.
        """
        user_id = user.id
        if self.supabase is not None:
            await self._remove_storage(user)
        await self.users.delete_account(user_id)
        if self.supabase is not None:
            await self.supabase.delete_user(user_id)
        logger.info(f"Deleted account {user_id}")
