"""
Account I/O models.

Profile reads and updates for the authenticated storyteller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    """Schema for reading the storyteller profile."""

    id: str
    email: str
    name: str
    birth_year: Optional[int] = None
    bio: Optional[str] = None
    profile_photo_url: Optional[str] = None
    story_count: int = 0
    free_stories_used: int = 0
    is_paid: bool = False
    subscription_status: str = "none"
    email_notifications: bool = True
    weekly_digest: bool = True
    default_story_visibility: bool = True
    pdf_exports_count: int = 0
    data_exports_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Schema for updating the storyteller profile. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    birth_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    bio: Optional[str] = Field(default=None, max_length=2000)
    profile_photo_url: Optional[str] = None
    email_notifications: Optional[bool] = None
    weekly_digest: Optional[bool] = None
    default_story_visibility: Optional[bool] = None


class AccountExport(BaseModel):
    """JSON archive of everything a storyteller owns."""

    exported_at: datetime
    profile: UserRead
    stories: List[Dict[str, Any]]
    treasures: List[Dict[str, Any]]
    family_members: List[Dict[str, Any]]
    shares: List[Dict[str, Any]]


class ActivityEventRead(BaseModel):
    id: str
    event_type: str
    actor_id: Optional[str] = None
    family_member_id: Optional[str] = None
    story_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
