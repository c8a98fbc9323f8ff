"""
Family sharing entity models.

Family members are invited by a storyteller and reach the storyteller's
stories through invite links. Opening a link creates a family session whose
token is kept in an HttpOnly cookie.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class FamilyMember(Base, table=True):
    """A person the storyteller shares stories with.

    Table: family_members
    """

    __tablename__ = "family_members"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, description="Storyteller")
    email: str = Field(index=True)
    name: Optional[str] = Field(default=None)
    relationship: Optional[str] = Field(default=None)
    status: str = Field(default="pending", description="pending, active, suspended")
    permission_level: str = Field(default="viewer", description="viewer or contributor")
    email_notifications: bool = Field(default=True)
    custom_message: Optional[str] = Field(default=None)

    invited_at: datetime = Field(default_factory=utc_now)
    first_accessed_at: Optional[datetime] = Field(default=None)
    last_accessed_at: Optional[datetime] = Field(default=None)
    access_count: int = Field(default=0)
    last_story_notification_sent_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class FamilyInvite(Base, table=True):
    """Single invite token for a family member.

    Table: family_invites
    """

    __tablename__ = "family_invites"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_member_id: str = Field(foreign_key="family_members.id", index=True)
    token: str = Field(unique=True, index=True)
    expires_at: datetime
    used_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class FamilySession(Base, table=True):
    """Authenticated browser session of a family member.

    ``expires_at`` slides forward on refresh, ``absolute_expires_at`` never moves.

    Table: family_sessions
    """

    __tablename__ = "family_sessions"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    family_member_id: str = Field(foreign_key="family_members.id", index=True)
    token: str = Field(unique=True, index=True)
    user_agent: Optional[str] = Field(default=None)
    ip_address: Optional[str] = Field(default=None)
    expires_at: datetime
    absolute_expires_at: datetime
    last_active_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)


class FamilyPrompt(Base, table=True):
    """Question a contributor submitted for the storyteller to answer.

    Table: family_prompts
    """

    __tablename__ = "family_prompts"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    storyteller_user_id: str = Field(foreign_key="users.id", index=True)
    family_member_id: str = Field(foreign_key="family_members.id")
    prompt_text: str
    context: Optional[str] = Field(default=None)
    status: str = Field(default="pending", description="pending, answered, archived")
    answered_story_id: Optional[str] = Field(default=None)
    answered_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
