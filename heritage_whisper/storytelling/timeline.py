"""
Timeline sections.

Stories are grouped into sections the way the timeline screen shows them:
family history before the storyteller was born, the birth year itself, then
one chapter per decade of life.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Protocol, Sequence

from .years import age_range_label, decade_display_name, decade_label, decade_of, normalize_year


class TimelineStory(Protocol):
    story_year: Optional[int]
    created_at: datetime
    include_in_timeline: bool


@dataclass
class TimelineSection:
    id: str
    title: str
    subtitle: str
    nav_label: str
    sort_year: int
    decade: Optional[int] = None
    is_current: bool = False
    stories: List[Any] = field(default_factory=list)

    @property
    def story_count(self) -> int:
        return len(self.stories)


def _story_sort_key(story: TimelineStory):
    return (normalize_year(story.story_year) or 0, story.created_at or datetime.min)


def group_stories_by_decade(
    stories: Sequence[TimelineStory], birth_year: int, *, current_year: Optional[int] = None
) -> List[TimelineSection]:
    """Build the ordered timeline sections for one storyteller.

    Args:
        stories: Stories of the storyteller; those excluded from the timeline are skipped.
        birth_year: The storyteller's birth year.
        current_year: Override for "now", used to flag the current decade.

    Returns:
        Sections ordered chronologically. The birth-year section is always present.
    """
    birth = normalize_year(birth_year) or birth_year
    current_decade = decade_of(current_year or datetime.now().year)

    before_birth: List[TimelineStory] = []
    birth_stories: List[TimelineStory] = []
    by_decade: dict[int, List[TimelineStory]] = {}

    for story in stories:
        if not story.include_in_timeline:
            continue
        year = normalize_year(story.story_year)
        if year is None:
            continue
        if year < birth:
            before_birth.append(story)
        elif year == birth:
            birth_stories.append(story)
        else:
            by_decade.setdefault(decade_of(year), []).append(story)

    sections: List[TimelineSection] = []

    if before_birth:
        before_birth.sort(key=_story_sort_key)
        sections.append(
            TimelineSection(
                id="before-birth",
                title="Before I Was Born",
                subtitle="Family History • Stories of those who came before",
                nav_label="TOP",
                sort_year=normalize_year(before_birth[0].story_year) or birth - 1,
                stories=before_birth,
            )
        )

    birth_stories.sort(key=_story_sort_key)
    sections.append(
        TimelineSection(
            id="birth-year",
            title="The Year I was Born",
            subtitle=f"{birth} • The Beginning",
            nav_label=str(birth),
            sort_year=birth,
            decade=decade_of(birth),
            stories=birth_stories,
        )
    )

    for decade in sorted(by_decade):
        decade_stories = sorted(by_decade[decade], key=_story_sort_key)
        is_current = decade == current_decade
        suffix = " • Current" if is_current else ""
        sections.append(
            TimelineSection(
                id=decade_label(decade),
                title=decade_display_name(decade),
                subtitle=f"{age_range_label(decade, birth)} • Life Chapter{suffix}",
                nav_label=str(decade),
                sort_year=max(decade, birth + 1),
                decade=decade,
                is_current=is_current,
                stories=decade_stories,
            )
        )

    sections.sort(key=lambda section: section.sort_year)
    return sections
