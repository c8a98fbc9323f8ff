"""
Prompt entity models.

- ``ActivePrompt``: AI generated prompts waiting to be shown (tiers 1 and 3).
- ``PromptHistory``: archive of prompts that were used, skipped or expired.
- ``UserPrompt``: catalog prompts a user queued or dismissed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, new_id, utc_now


class ActivePrompt(Base, table=True):
    """Generated prompt currently offered to a user.

    ``anchor_hash`` identifies the memory a prompt is about so that the same
    anchor is never stored twice for one user.

    Table: active_prompts
    """

    __tablename__ = "active_prompts"
    __table_args__ = (
        UniqueConstraint("user_id", "anchor_hash", name="uq_active_prompts_user_anchor"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    prompt_text: str
    context_note: Optional[str] = Field(default=None)
    anchor_entity: Optional[str] = Field(default=None)
    anchor_year: Optional[int] = Field(default=None)
    anchor_hash: str
    tier: int = Field(description="0 fallback, 1 per-story template, 3 milestone analysis")
    memory_type: Optional[str] = Field(default=None)
    prompt_score: Optional[int] = Field(default=None, ge=0, le=100)
    score_reason: Optional[str] = Field(default=None)
    model_version: Optional[str] = Field(default=None)
    expires_at: datetime
    is_locked: bool = Field(default=False, description="Hidden until the user pays")
    shown_count: int = Field(default=0)
    last_shown_at: Optional[datetime] = Field(default=None)
    user_status: str = Field(default="available", description="available, queued, dismissed")
    queue_position: Optional[int] = Field(default=None)
    queued_at: Optional[datetime] = Field(default=None)
    dismissed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class PromptHistory(Base, table=True):
    """Retired prompt.

    Table: prompt_history
    """

    __tablename__ = "prompt_history"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    prompt_text: str
    anchor_hash: Optional[str] = Field(default=None)
    anchor_entity: Optional[str] = Field(default=None)
    anchor_year: Optional[int] = Field(default=None)
    tier: Optional[int] = Field(default=None)
    memory_type: Optional[str] = Field(default=None)
    prompt_score: Optional[int] = Field(default=None)
    shown_count: Optional[int] = Field(default=None)
    outcome: str = Field(description="used, skipped, expired")
    story_id: Optional[str] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)
    resolved_at: datetime = Field(default_factory=utc_now)


class UserPrompt(Base, table=True):
    """Catalog prompt a user saved.

    Table: user_prompts
    """

    __tablename__ = "user_prompts"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    text: str
    category: str
    source: str = Field(default="catalog", description="catalog or ai")
    status: str = Field(default="ready", description="ready, queued, dismissed, recorded, deleted")
    queue_position: Optional[int] = Field(default=None)
    queued_at: Optional[datetime] = Field(default=None)
    dismissed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
