"""Memory book endpoint: print-ready page layout of the storyteller's stories."""

from __future__ import annotations

from fastapi import APIRouter

from heritage_whisper.core.models.io import BookResponse
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep, SupabaseDep
from heritage_whisper.server.services.stories import StoryService

router = APIRouter(tags=["book"])


@router.get(
    "",
    response_model=BookResponse,
    summary="Get Book Layout",
    description="Paginate the stories included in the book into print pages with a table of contents.",
    response_description="Pages, table-of-contents pages and the page count.",
    responses={
        200: {"description": "Book laid out successfully"},
        401: {"description": "Authentication required"},
    },
)
async def get_book(user: CurrentUserDep, session: SessionDep, supabase: SupabaseDep) -> BookResponse:
    return await StoryService(session, supabase=supabase).book(user)
