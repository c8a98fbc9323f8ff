"""
Print layout: intro page, table of contents, then one page per story.

Page 1 is the intro page and the table of contents starts on page 2. The
table of contents is measured first so that every story page number is known
when the contents are written. Each decade opens with a marker on a left
(even) page; a blank page fills the gap when needed.
Stories without a usable year are left out of the book.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..years import age_range_label, decade_display_name, decade_label, decade_of, normalize_year
from .pagination import BookPage, BookStory, DecadeGroup, PageType, decade_marker

logger = logging.getLogger(__name__)

TOC_TITLE_HEIGHT = 80
TOC_DECADE_HEADER_HEIGHT = 70
TOC_STORY_ROW_HEIGHT = 45
TOC_AVAILABLE_HEIGHT = 620

INTRO_PAGE = 1
TOC_START_PAGE = 2


class TocStory(BaseModel):
    story_id: str
    title: str
    year: Optional[int] = None
    page_number: int = 0


class TocEntry(BaseModel):
    decade: str
    decade_title: str
    stories: List[TocStory] = Field(default_factory=list)


class TocPage(BaseModel):
    page_number: int
    entries: List[TocEntry] = Field(default_factory=list)


class BookLayout(BaseModel):
    pages: List[BookPage]
    toc_pages: List[TocPage]

    @property
    def total_pages(self) -> int:
        return len(self.pages) + len(self.toc_pages)


def group_by_decade(stories: Sequence[BookStory], birth_year: Optional[int] = None) -> List[DecadeGroup]:
    """Group dated stories into decades, oldest first, stories ordered by year.

    With ``birth_year`` each group also carries the storyteller's age range.
    """
    buckets: Dict[int, List[BookStory]] = {}
    for story in stories:
        year = normalize_year(story.year)
        if year is None:
            logger.warning(f"Story {story.id} left out of the book: no story year")
            continue
        buckets.setdefault(decade_of(year), []).append(story)
    return [
        DecadeGroup(
            decade=decade_label(decade),
            title=decade_display_name(decade),
            age_range=age_range_label(decade, birth_year) if birth_year else None,
            stories=sorted(buckets[decade], key=lambda s: normalize_year(s.year) or 0),
        )
        for decade in sorted(buckets)
    ]


def paginate_table_of_contents(entries: Sequence[TocEntry], start_page: int = TOC_START_PAGE) -> List[TocPage]:
    """Flow table of contents entries over as many pages as they need.

    A decade header only starts on a page that can also hold one of its
    stories. Decades that do not fit are continued on the next page under an
    untitled header.
    """
    pages: List[TocPage] = []
    current: List[TocEntry] = []
    height = TOC_TITLE_HEIGHT
    rows_per_page = TOC_AVAILABLE_HEIGHT // TOC_STORY_ROW_HEIGHT

    def flush() -> None:
        nonlocal current, height
        pages.append(TocPage(page_number=start_page + len(pages), entries=current))
        current = []
        height = 0

    for entry in entries:
        if current and height + TOC_DECADE_HEADER_HEIGHT + TOC_STORY_ROW_HEIGHT > TOC_AVAILABLE_HEIGHT:
            flush()

        remaining = list(entry.stories)
        room = max(1, (TOC_AVAILABLE_HEIGHT - height - TOC_DECADE_HEADER_HEIGHT) // TOC_STORY_ROW_HEIGHT)
        chunk, remaining = remaining[:room], remaining[room:]
        current.append(TocEntry(decade=entry.decade, decade_title=entry.decade_title, stories=chunk))
        height += TOC_DECADE_HEADER_HEIGHT + len(chunk) * TOC_STORY_ROW_HEIGHT

        while remaining:
            flush()
            chunk, remaining = remaining[:rows_per_page], remaining[rows_per_page:]
            current.append(TocEntry(decade=entry.decade, decade_title="", stories=chunk))
            height = len(chunk) * TOC_STORY_ROW_HEIGHT

    if current or not pages:
        flush()
    return pages


def build_book_layout(stories: Sequence[BookStory], birth_year: Optional[int] = None) -> BookLayout:
    """Lay out the printable book for stories already filtered to those included in the book."""
    groups = group_by_decade(stories, birth_year)
    entries = [
        TocEntry(
            decade=group.decade,
            decade_title=group.title,
            stories=[TocStory(story_id=s.id, title=s.title, year=s.year) for s in group.stories],
        )
        for group in groups
    ]

    toc_page_count = len(paginate_table_of_contents(entries))
    pages: List[BookPage] = [BookPage(type=PageType.INTRO, page_number=INTRO_PAGE)]
    page_number = TOC_START_PAGE + toc_page_count
    page_of_story: Dict[str, int] = {}

    for group in groups:
        if page_number % 2 == 1:
            pages.append(BookPage(type=PageType.BLANK, page_number=page_number))
            page_number += 1
        pages.append(decade_marker(group, page_number))
        page_number += 1
        for story in group.stories:
            pages.append(
                BookPage(
                    type=PageType.STORY_COMPLETE,
                    page_number=page_number,
                    story_id=story.id,
                    title=story.title,
                    year=story.year,
                    date=story.date,
                    age=story.age,
                    audio_url=story.audio_url,
                    photos=story.photos,
                    text=story.content,
                    lesson_learned=story.lesson_learned,
                )
            )
            page_of_story[story.id] = page_number
            page_number += 1

    for entry in entries:
        for toc_story in entry.stories:
            toc_story.page_number = page_of_story[toc_story.story_id]

    return BookLayout(pages=pages, toc_pages=paginate_table_of_contents(entries))
