"""
Family sharing I/O models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .types import Email


class PermissionLevel(str, Enum):
    VIEWER = "viewer"
    CONTRIBUTOR = "contributor"


class FamilyInviteCreate(BaseModel):
    """Schema for inviting a family member."""

    email: Email
    name: Optional[str] = Field(default=None, max_length=120)
    relationship: Optional[str] = Field(default=None, max_length=60)
    permission_level: PermissionLevel = PermissionLevel.VIEWER
    custom_message: Optional[str] = Field(default=None, max_length=1000)


class FamilyMemberUpdate(BaseModel):
    permission_level: Optional[PermissionLevel] = None
    email_notifications: Optional[bool] = None


class FamilyMemberRead(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    relationship: Optional[str] = None
    status: str
    permission_level: str
    email_notifications: bool
    invited_at: datetime
    first_accessed_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0

    class Config:
        from_attributes = True


class FamilyMemberList(BaseModel):
    members: List[FamilyMemberRead]
    total: int
    limit: int


class FamilyJoinRequest(BaseModel):
    """Public request to join a storyteller's family circle through an open link."""

    storyteller_id: str
    email: Email
    name: str = Field(min_length=1, max_length=120)
    relationship: Optional[str] = Field(default=None, max_length=60)


class FamilyJoinResponse(BaseModel):
    member_id: str
    token: str
    status: str
    magic_link: str


class InviteSentResponse(BaseModel):
    member: FamilyMemberRead
    invite_url: str
    email_sent: bool


class FamilySessionRead(BaseModel):
    """Session details returned to the family viewer."""

    member_id: str
    storyteller_id: str
    storyteller_name: str
    member_name: Optional[str] = None
    relationship: Optional[str] = None
    permission_level: str
    expires_at: datetime
    absolute_expires_at: datetime


class FamilyPromptCreate(BaseModel):
    prompt_text: str = Field(min_length=5, max_length=500)
    context: Optional[str] = Field(default=None, max_length=1000)


class FamilyPromptRead(BaseModel):
    id: str
    storyteller_user_id: str
    family_member_id: str
    prompt_text: str
    context: Optional[str] = None
    status: str
    answered_story_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FamilyPromptUpdate(BaseModel):
    status: str = Field(pattern="^(answered|archived)$")
    answered_story_id: Optional[str] = None
