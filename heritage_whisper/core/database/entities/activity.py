"""Activity feed entity."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Field

from ..base import Base, dump_json, load_json, new_id, utc_now


class ActivityEvent(Base, table=True):
    """Something that happened on a storyteller's account.

    Table: activity_events
    """

    __tablename__ = "activity_events"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True, description="Storyteller the event belongs to")
    actor_id: Optional[str] = Field(default=None)
    family_member_id: Optional[str] = Field(default=None)
    story_id: Optional[str] = Field(default=None)
    event_type: str = Field(description="story_recorded, story_viewed, family_member_joined, ...")
    event_metadata: str = Field(default="{}", description="JSON object with event details")
    created_at: datetime = Field(default_factory=utc_now, index=True)

    def get_metadata(self) -> Dict[str, Any]:
        return load_json(self.event_metadata, {})

    def set_metadata(self, metadata: Optional[Dict[str, Any]]) -> None:
        self.event_metadata = dump_json(metadata or {})
