"""Share link entity."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class SharedAccess(Base, table=True):
    """Timeline access granted to an email address through a share link.

    Table: shared_access
    """

    __tablename__ = "shared_access"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    owner_user_id: str = Field(foreign_key="users.id", index=True)
    shared_with_email: str
    permission_level: str = Field(default="view", description="view or edit")
    share_token: str = Field(unique=True, index=True)
    expires_at: Optional[datetime] = Field(default=None)
    is_active: bool = Field(default=True)
    last_accessed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
