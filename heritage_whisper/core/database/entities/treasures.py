"""Treasure (keepsake photo) entity."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Field

from ..base import Base, dump_json, load_json, new_id, utc_now


class TreasureBase(Base):
    title: str
    description: Optional[str] = Field(default=None)
    category: str = Field(default="other", description="heirloom, photo, document, recipe, other")
    image_url: str
    year: Optional[int] = Field(default=None)
    linked_story_id: Optional[str] = Field(default=None)


class Treasure(TreasureBase, table=True):
    """A photographed keepsake.

    Table: treasures
    """

    __tablename__ = "treasures"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    transform: Optional[str] = Field(default=None, description="JSON {zoom, position}")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    def get_transform(self) -> Optional[Dict[str, Any]]:
        return load_json(self.transform, None)

    def set_transform(self, transform: Optional[Dict[str, Any]]) -> None:
        self.transform = dump_json(transform) if transform is not None else None
