"""
Flowing book pagination.

Text is measured with a fixed characters-per-line estimate. A story that fits
``SINGLE_PAGE_LINES`` together with its lesson is a single page; longer stories
start on a page shared with the photos and continue on text-only pages, split
at sentence boundaries. Each decade opens on a left (even) page.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

LINE_HEIGHT = 28
FIRST_PAGE_LINES = 530 // LINE_HEIGHT
CONTINUATION_LINES = 880 // LINE_HEIGHT
PHOTO_VISUAL_WEIGHT = 8
TARGET_FIRST_PAGE_LINES = 9
CHARS_PER_LINE = 65
SINGLE_PAGE_LINES = 12

SENTENCE_SEARCH_WINDOW = 200
WORD_SEARCH_WINDOW = 50

ABBREVIATIONS = frozenset(
    {
        "Dr.", "Mrs.", "Mr.", "Ms.", "Prof.", "Sr.", "Jr.",
        "Inc.", "Ltd.", "Co.", "Corp.", "vs.", "etc.", "i.e.", "e.g.",
        "Jan.", "Feb.", "Mar.", "Apr.", "Aug.", "Sept.", "Oct.", "Nov.", "Dec.",
    }
)


class PageType(str, Enum):
    INTRO = "intro"
    TABLE_OF_CONTENTS = "table-of-contents"
    DECADE_MARKER = "decade-marker"
    BLANK = "blank"
    STORY_START = "story-start"
    STORY_CONTINUATION = "story-continuation"
    STORY_END = "story-end"
    STORY_COMPLETE = "story-complete"


class StoryPhoto(BaseModel):
    id: str
    url: str
    caption: Optional[str] = None
    is_hero: bool = False


class BookStory(BaseModel):
    """Story as the book needs it."""

    id: str
    title: str
    content: str = ""
    year: Optional[int] = None
    date: Optional[str] = None
    age: Optional[int] = None
    audio_url: Optional[str] = None
    photos: List[StoryPhoto] = Field(default_factory=list)
    lesson_learned: Optional[str] = None


class BookPage(BaseModel):
    type: PageType
    page_number: int
    story_id: Optional[str] = None

    decade: Optional[str] = None
    decade_title: Optional[str] = None
    age_range: Optional[str] = None
    stories_in_decade: Optional[int] = None

    title: Optional[str] = None
    year: Optional[int] = None
    date: Optional[str] = None
    age: Optional[int] = None
    audio_url: Optional[str] = None
    photos: List[StoryPhoto] = Field(default_factory=list)
    text: Optional[str] = None
    lesson_learned: Optional[str] = None

    @property
    def is_left_page(self) -> bool:
        return self.page_number % 2 == 0

    @property
    def is_right_page(self) -> bool:
        return not self.is_left_page


class DecadeGroup(BaseModel):
    decade: str
    title: str
    age_range: Optional[str] = None
    stories: List[BookStory] = Field(default_factory=list)


def estimate_lines(text: Optional[str]) -> int:
    """Number of printed lines ``text`` needs at ``CHARS_PER_LINE``."""
    if not text or not text.strip():
        return 0
    return math.ceil(len(text) / CHARS_PER_LINE)


def _is_sentence_boundary(text: str, position: int) -> bool:
    if text[position] not in ".!?":
        return False
    if position + 1 < len(text) and not text[position + 1].isspace():
        return False
    if text[position] == ".":
        preceding = text[max(0, position - 20) : position].split()
        if preceding and f"{preceding[-1]}." in ABBREVIATIONS:
            return False
        if position >= 2 and text[position - 1] == "." and text[position - 2] == ".":
            return False
    return True


def _find_word_boundary(text: str, target: int) -> int:
    for i in range(target, max(target - WORD_SEARCH_WINDOW, -1), -1):
        if i < len(text) and text[i].isspace():
            return i + 1
    for i in range(target, min(target + WORD_SEARCH_WINDOW, len(text))):
        if text[i].isspace():
            return i
    return target


def find_split_position(text: str, start: int, target_lines: int) -> int:
    """End offset of a chunk of roughly ``target_lines`` lines starting at ``start``.

    Prefers the sentence end closest to the target, then a word boundary, then
    a hard cut.
    """
    target = start + target_lines * CHARS_PER_LINE
    if target >= len(text):
        return len(text)

    best: Optional[int] = None
    search_start = max(start, target - SENTENCE_SEARCH_WINDOW)
    search_end = min(len(text), target + SENTENCE_SEARCH_WINDOW)
    for i in range(search_start, search_end):
        if _is_sentence_boundary(text, i):
            end = i + 1
            if best is None or abs(end - target) < abs(best - target):
                best = end

    if best is None or best <= start:
        best = _find_word_boundary(text, target)
    return best if best > start else target


def split_at_sentence_boundary(text: str, target_lines: int) -> Tuple[str, str]:
    """Split ``text`` into a head of about ``target_lines`` lines and the rest."""
    end = find_split_position(text, 0, target_lines)
    return text[:end].strip(), text[end:].strip()


def balanced_split(total_lines: int, lesson_lines: int) -> int:
    """Lines of text to put on a story's first page so both pages of the spread look even."""
    if total_lines <= 15:
        return min(total_lines, 10)

    right_lines = (total_lines - TARGET_FIRST_PAGE_LINES) + lesson_lines
    left_visual_lines = PHOTO_VISUAL_WEIGHT + TARGET_FIRST_PAGE_LINES

    if right_lines > left_visual_lines * 1.5:
        extra = math.ceil((right_lines - left_visual_lines) / 2)
        return min(12, TARGET_FIRST_PAGE_LINES + extra)

    if left_visual_lines > right_lines * 1.5:
        return max(6, TARGET_FIRST_PAGE_LINES - 2)

    return TARGET_FIRST_PAGE_LINES


def _story_page(story: BookStory, page_type: PageType, page_number: int, **fields) -> BookPage:
    return BookPage(type=page_type, page_number=page_number, story_id=story.id, **fields)


def paginate_story(story: BookStory, start_page: int) -> List[BookPage]:
    """Lay out one story starting at ``start_page``."""
    content = story.content or ""
    text_lines = estimate_lines(content)
    lesson_lines = estimate_lines(story.lesson_learned)
    header = dict(
        title=story.title,
        year=story.year,
        date=story.date,
        age=story.age,
        audio_url=story.audio_url,
        photos=story.photos,
    )

    if text_lines + lesson_lines <= SINGLE_PAGE_LINES:
        return [
            _story_page(
                story,
                PageType.STORY_COMPLETE,
                start_page,
                text=content,
                lesson_learned=story.lesson_learned,
                **header,
            )
        ]

    first_end = find_split_position(content, 0, balanced_split(text_lines, lesson_lines))
    pages = [
        _story_page(story, PageType.STORY_START, start_page, text=content[:first_end].strip(), **header)
    ]

    position = first_end
    page_number = start_page + 1
    while position < len(content) and content[position:].strip():
        remaining_lines = estimate_lines(content[position:])
        is_last = remaining_lines <= CONTINUATION_LINES
        end = len(content) if is_last else find_split_position(content, position, CONTINUATION_LINES)
        pages.append(
            _story_page(
                story,
                PageType.STORY_END if is_last else PageType.STORY_CONTINUATION,
                page_number,
                text=content[position:end].strip(),
                lesson_learned=story.lesson_learned if is_last else None,
            )
        )
        position = end
        page_number += 1

    if pages[-1].type == PageType.STORY_START:
        # Everything landed on the first page; keep the lesson with it.
        pages[-1] = pages[-1].model_copy(update={"type": PageType.STORY_COMPLETE, "lesson_learned": story.lesson_learned})
    return pages


def decade_marker(group: DecadeGroup, page_number: int) -> BookPage:
    return BookPage(
        type=PageType.DECADE_MARKER,
        page_number=page_number,
        decade=group.decade,
        decade_title=group.title,
        age_range=group.age_range,
        stories_in_decade=len(group.stories),
    )


def paginate_book(decade_groups: Sequence[DecadeGroup], start_page: int = 1) -> List[BookPage]:
    """Paginate decades in order, each opening with a marker on a left page."""
    pages: List[BookPage] = []
    page_number = start_page
    for group in decade_groups:
        if page_number % 2 == 1:
            pages.append(BookPage(type=PageType.BLANK, page_number=page_number))
            page_number += 1
        pages.append(decade_marker(group, page_number))
        page_number += 1
        for story in group.stories:
            story_pages = paginate_story(story, page_number)
            pages.extend(story_pages)
            page_number += len(story_pages)
    return pages


def get_page_spreads(pages: Sequence[BookPage]) -> List[Tuple[BookPage, Optional[BookPage]]]:
    """Pair pages two by two for a desktop spread view."""
    return [(pages[i], pages[i + 1] if i + 1 < len(pages) else None) for i in range(0, len(pages), 2)]


def find_story_pages(pages: Sequence[BookPage], story_id: str) -> List[BookPage]:
    return [page for page in pages if page.story_id == story_id]


def get_story_page_range(pages: Sequence[BookPage], story_id: str) -> Optional[Tuple[int, int]]:
    numbers = [page.page_number for page in find_story_pages(pages, story_id)]
    if not numbers:
        return None
    return min(numbers), max(numbers)
