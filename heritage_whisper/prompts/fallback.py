"""Decade prompts used when a storyteller has no active prompt left."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel

from ..storytelling.years import decade_of, lived_decades

DECADE_TEMPLATES: tuple[str, ...] = (
    "Tell me about a typical Saturday in the {decade}s.",
    "What was your favorite thing about the {decade}s?",
    "What do you remember most about {decade}?",
    "Tell me a story from the {decade}s that makes you smile.",
    "What was happening in your life in {decade}?",
)


class DecadePrompt(BaseModel):
    prompt_text: str
    context_note: str
    anchor_entity: str
    decade: int
    tier: int = 0


def decade_fallback(
    birth_year: int, recorded_years: Iterable[Optional[int]], *, current_year: Optional[int] = None
) -> Optional[DecadePrompt]:
    """Pick a lived decade, preferring the earliest one without stories."""
    decades = lived_decades(birth_year, current_year or datetime.now().year)
    if not decades:
        return None
    recorded = {decade_of(year) for year in recorded_years if year}
    unrecorded = [decade for decade in decades if decade not in recorded]
    decade = unrecorded[0] if unrecorded else decades[0]
    template = DECADE_TEMPLATES[(decade // 10) % len(DECADE_TEMPLATES)]
    return DecadePrompt(
        prompt_text=template.format(decade=decade),
        context_note=f"A memory from the {decade}s",
        anchor_entity=f"{decade}s",
        decade=decade,
    )
