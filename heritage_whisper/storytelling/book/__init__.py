"""
Book pagination.

- ``pagination``: flowing layout where long stories continue across pages.
- ``layout``: print layout with an intro page, a table of contents and one
  page per story.
"""

from .layout import BookLayout, TocEntry, TocStory, build_book_layout
from .pagination import (
    BookPage,
    BookStory,
    DecadeGroup,
    PageType,
    StoryPhoto,
    find_story_pages,
    get_page_spreads,
    get_story_page_range,
    paginate_book,
    paginate_story,
)

__all__ = [
    "BookLayout",
    "BookPage",
    "BookStory",
    "DecadeGroup",
    "PageType",
    "StoryPhoto",
    "TocEntry",
    "TocStory",
    "build_book_layout",
    "find_story_pages",
    "get_page_spreads",
    "get_story_page_range",
    "paginate_book",
    "paginate_story",
]
