"""
User entity models.

A user row mirrors a Supabase Auth account (same id) and carries the
storyteller's profile, preferences and plan counters.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class UserBase(Base):
    """Base fields for a storyteller."""

    email: str = Field(index=True, unique=True, description="Login email")
    name: str = Field(default="User", description="Display name")
    birth_year: Optional[int] = Field(default=None, description="Year of birth, anchors the timeline")
    bio: Optional[str] = Field(default=None)
    profile_photo_url: Optional[str] = Field(default=None)

    email_notifications: bool = Field(default=True, description="Storyteller allows family notification emails")
    weekly_digest: bool = Field(default=True)
    default_story_visibility: bool = Field(default=True, description="New stories appear in timeline and book")


class User(UserBase, table=True):
    """Persistent storyteller account.

    Table: users
    """

    __tablename__ = "users"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)

    story_count: int = Field(default=0)
    free_stories_used: int = Field(default=0)
    is_paid: bool = Field(default=False)
    subscription_status: str = Field(default="none", description="none, active, past_due, canceled, expired")

    pdf_exports_count: int = Field(default=0)
    last_pdf_export_at: Optional[datetime] = Field(default=None)
    data_exports_count: int = Field(default=0)
    last_data_export_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, paid={self.is_paid})"
