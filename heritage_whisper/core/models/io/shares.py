"""
Share link I/O models.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .stories import TimelineResponse
from .types import Email, UtcDatetime


class SharePermission(str, Enum):
    VIEW = "view"
    EDIT = "edit"


class ShareCreate(BaseModel):
    email: Email
    permission_level: SharePermission = SharePermission.VIEW
    expires_at: Optional[UtcDatetime] = None


class ShareUpdate(BaseModel):
    permission_level: Optional[SharePermission] = None
    expires_at: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


class ShareRead(BaseModel):
    id: str
    shared_with_email: str
    permission_level: str
    share_token: str
    expires_at: Optional[datetime] = None
    is_active: bool
    last_accessed_at: Optional[datetime] = None
    created_at: datetime
    share_url: Optional[str] = None

    class Config:
        from_attributes = True


class SharedTimelineResponse(BaseModel):
    """What a share link opens: the owner's timeline."""

    owner_name: str
    permission_level: str
    timeline: TimelineResponse
