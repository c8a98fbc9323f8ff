"""
Treasure (keepsake photo) I/O models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .stories import PhotoTransform


class TreasureCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: str = Field(default="other", pattern="^(heirloom|photo|document|recipe|other)$")
    image_url: str
    year: Optional[int] = Field(default=None, ge=1800, le=2100)
    linked_story_id: Optional[str] = None
    transform: Optional[PhotoTransform] = None


class TreasureUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, pattern="^(heirloom|photo|document|recipe|other)$")
    image_url: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1800, le=2100)
    linked_story_id: Optional[str] = None
    transform: Optional[PhotoTransform] = None


class TreasureRead(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    category: str
    image_url: str
    year: Optional[int] = None
    linked_story_id: Optional[str] = None
    transform: Optional[PhotoTransform] = None
    created_at: datetime
    updated_at: datetime
