"""
Prompt I/O models.

Covers generated prompts (tiers 0, 1 and 3), the curated catalog and
in-recording follow-up questions.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class PromptSource(str, Enum):
    AI = "ai"
    CATALOG = "catalog"


class PromptRead(BaseModel):
    """A prompt offered to the storyteller. ``id`` is null for decade fallbacks."""

    id: Optional[str] = None
    prompt_text: str
    context_note: Optional[str] = None
    anchor_entity: Optional[str] = None
    anchor_year: Optional[int] = None
    tier: int
    memory_type: Optional[str] = None
    prompt_score: Optional[int] = None
    is_locked: bool = False
    shown_count: int = 0
    user_status: str = "available"
    queue_position: Optional[int] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NextPromptResponse(BaseModel):
    prompt: Optional[PromptRead] = None


class SkipPromptResponse(BaseModel):
    retired: bool = Field(description="The prompt was archived after being skipped too often")
    next_prompt: Optional[PromptRead] = None


class PromptActionRequest(BaseModel):
    """Queue or dismiss a prompt from either source.

    AI prompts are referenced by ``prompt_id``; catalog prompts carry their
    ``text`` and ``category``.
    """

    source: PromptSource
    prompt_id: Optional[str] = None
    text: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = None

    @model_validator(mode="after")
    def _check_reference(self) -> "PromptActionRequest":
        if self.source == PromptSource.AI and not self.prompt_id:
            raise ValueError("prompt_id is required for ai prompts")
        if self.source == PromptSource.CATALOG and not (self.text and self.category):
            raise ValueError("text and category are required for catalog prompts")
        return self


class PromptActionResponse(BaseModel):
    success: bool = True
    status: str = Field(description="queued, dismissed, already_queued or already_dismissed")
    prompt_id: str
    queue_position: Optional[int] = None


class SavedPromptRead(BaseModel):
    """A queued or dismissed prompt of either source."""

    id: str
    source: PromptSource
    prompt_text: str
    category: Optional[str] = None
    tier: Optional[int] = None
    queue_position: Optional[int] = None
    queued_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None


class SavedPromptList(BaseModel):
    prompts: List[SavedPromptRead]
    total: int


class CatalogItemRead(BaseModel):
    id: str
    text: str
    sensitivity: str


class CatalogCategoryRead(BaseModel):
    name: str
    sensitive: bool
    items: List[CatalogItemRead]


class CatalogResponse(BaseModel):
    categories: List[CatalogCategoryRead]


class FollowUpRequest(BaseModel):
    transcript: str = Field(default="", max_length=50000)
    used_prompts: List[str] = Field(default_factory=list, description="Questions already asked in this session")


class FollowUpResponse(BaseModel):
    question: str
    category: Optional[str] = None
