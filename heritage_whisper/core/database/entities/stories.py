"""
Story entity models.

A story is one recorded memory: audio, transcription, the year it happened,
an optional lesson learned and up to six photos. Photos and emotions are
stored as JSON text so the schema runs on both Postgres and SQLite.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Field

from ..base import Base, dump_json, load_json, new_id, utc_now


class StoryBase(Base):
    """Base fields for a story."""

    title: str = Field(description="Story title")
    transcription: Optional[str] = Field(default=None, description="Formatted transcript text")
    audio_url: Optional[str] = Field(default=None)
    duration_seconds: int = Field(default=0)
    wisdom_clip_text: Optional[str] = Field(default=None)
    wisdom_clip_url: Optional[str] = Field(default=None)
    story_year: Optional[int] = Field(default=None, index=True)
    story_date: Optional[datetime] = Field(default=None)
    life_age: Optional[int] = Field(default=None)
    lesson_learned: Optional[str] = Field(default=None)
    photo_url: Optional[str] = Field(default=None, description="Legacy single photo")
    pivotal_category: Optional[str] = Field(default=None)
    include_in_book: bool = Field(default=True)
    include_in_timeline: bool = Field(default=True)
    is_favorite: bool = Field(default=False)
    source_prompt_id: Optional[str] = Field(default=None)


class Story(StoryBase, table=True):
    """Persistent story.

    Table: stories
    """

    __tablename__ = "stories"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)

    photos: str = Field(default="[]", description="JSON array of photo objects")
    emotions: str = Field(default="[]", description="JSON array of emotion labels")
    photo_transform: Optional[str] = Field(default=None, description="JSON {zoom, position} for the legacy photo")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def get_photos_list(self) -> List[Dict[str, Any]]:
        """Get photos as a list of dicts."""
        return load_json(self.photos, [])

    def set_photos_list(self, photos: List[Dict[str, Any]]) -> None:
        """Set photos from a list of dicts."""
        self.photos = dump_json(photos)

    def get_emotions_list(self) -> List[str]:
        return load_json(self.emotions, [])

    def set_emotions_list(self, emotions: List[str]) -> None:
        self.emotions = dump_json(emotions)

    def get_photo_transform(self) -> Optional[Dict[str, Any]]:
        return load_json(self.photo_transform, None)

    def set_photo_transform(self, transform: Optional[Dict[str, Any]]) -> None:
        self.photo_transform = dump_json(transform) if transform is not None else None

    def __repr__(self) -> str:
        return f"Story(id={self.id}, title={self.title!r}, year={self.story_year})"
