"""
Story I/O models for API requests and responses.

Photos and emotions are JSON text on the entity; these schemas expose them
as typed lists.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from heritage_whisper.storytelling.book import BookPage
from heritage_whisper.storytelling.book.layout import TocPage

from .types import UtcDatetime

MAX_PHOTOS_PER_STORY = 6


class PhotoTransform(BaseModel):
    zoom: float = Field(default=1.0, ge=0.1, le=10.0)
    position: Dict[str, float] = Field(default_factory=lambda: {"x": 0.0, "y": 0.0})


class PhotoRead(BaseModel):
    id: str
    url: str
    transform: Optional[PhotoTransform] = None
    caption: Optional[str] = None
    is_hero: bool = False


class PhotoCreate(BaseModel):
    """Schema for attaching a photo to a story."""

    url: str = Field(description="Storage path or absolute URL of the uploaded image")
    caption: Optional[str] = Field(default=None, max_length=500)
    transform: Optional[PhotoTransform] = None
    is_hero: bool = False


class PhotoUpdate(BaseModel):
    caption: Optional[str] = Field(default=None, max_length=500)
    transform: Optional[PhotoTransform] = None
    is_hero: Optional[bool] = None


class StoryCreate(BaseModel):
    """Schema for creating a story."""

    title: str = Field(min_length=1, max_length=200, description="Story title")
    transcription: Optional[str] = Field(default=None, description="Transcript text")
    audio_url: Optional[str] = Field(default=None, description="Storage path or URL of the recording")
    duration_seconds: int = Field(default=0, ge=0)
    wisdom_clip_text: Optional[str] = None
    wisdom_clip_url: Optional[str] = None
    story_year: Optional[int] = Field(default=None, description="Year the memory happened")
    story_date: Optional[UtcDatetime] = None
    life_age: Optional[int] = Field(default=None, ge=0, le=130)
    lesson_learned: Optional[str] = None
    photo_url: Optional[str] = None
    photos: List[PhotoCreate] = Field(default_factory=list, max_length=MAX_PHOTOS_PER_STORY)
    emotions: List[str] = Field(default_factory=list)
    pivotal_category: Optional[str] = None
    include_in_book: Optional[bool] = Field(default=None, description="Defaults to the user's visibility preference")
    include_in_timeline: Optional[bool] = Field(
        default=None, description="Defaults to the user's visibility preference"
    )
    is_favorite: bool = False
    source_prompt_id: Optional[str] = Field(default=None, description="Active prompt this story answers")


class StoryUpdate(BaseModel):
    """Schema for updating a story. Omitted fields are left unchanged."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    transcription: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    wisdom_clip_text: Optional[str] = None
    wisdom_clip_url: Optional[str] = None
    story_year: Optional[int] = None
    story_date: Optional[UtcDatetime] = None
    life_age: Optional[int] = Field(default=None, ge=0, le=130)
    lesson_learned: Optional[str] = None
    photo_url: Optional[str] = None
    emotions: Optional[List[str]] = None
    pivotal_category: Optional[str] = None
    include_in_book: Optional[bool] = None
    include_in_timeline: Optional[bool] = None
    is_favorite: Optional[bool] = None


class StoryRead(BaseModel):
    """Schema for reading a story from the API."""

    id: str
    user_id: str
    title: str
    transcription: Optional[str] = None
    audio_url: Optional[str] = None
    duration_seconds: int = 0
    wisdom_clip_text: Optional[str] = None
    wisdom_clip_url: Optional[str] = None
    story_year: Optional[int] = None
    story_date: Optional[datetime] = None
    life_age: Optional[int] = None
    lesson_learned: Optional[str] = None
    photo_url: Optional[str] = None
    photos: List[PhotoRead] = Field(default_factory=list)
    emotions: List[str] = Field(default_factory=list)
    pivotal_category: Optional[str] = None
    include_in_book: bool = True
    include_in_timeline: bool = True
    is_favorite: bool = False
    source_prompt_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class StoryListResponse(BaseModel):
    stories: List[StoryRead]
    total: int


class TimelineSectionRead(BaseModel):
    id: str
    title: str
    subtitle: str
    nav_label: str
    decade: Optional[int] = None
    is_current: bool = False
    story_count: int
    stories: List[StoryRead]


class TimelineResponse(BaseModel):
    birth_year: Optional[int] = None
    sections: List[TimelineSectionRead]


class BookResponse(BaseModel):
    """Print layout of the memory book."""

    pages: List[BookPage]
    toc_pages: List[TocPage]
    total_pages: int
