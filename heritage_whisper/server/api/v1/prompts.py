"""
API endpoints for storytelling prompts.

Generated prompts (tiers 0, 1 and 3) and curated catalog prompts share the
queue and archive; ``source`` tells them apart.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from heritage_whisper.core.models.io import (
    CatalogCategoryRead,
    CatalogItemRead,
    CatalogResponse,
    NextPromptResponse,
    PromptActionRequest,
    PromptActionResponse,
    SavedPromptList,
    SkipPromptResponse,
)
from heritage_whisper.prompts.catalog import CatalogGates, build_catalog
from heritage_whisper.server.services.deps import CurrentUserDep, SessionDep
from heritage_whisper.server.services.prompts import PromptService

router = APIRouter(tags=["prompts"])


@router.get(
    "/next",
    response_model=NextPromptResponse,
    summary="Next Prompt",
    description="The prompt to show next: highest tier first, then highest score, with a decade fallback.",
    response_description="The next prompt, or null when there is nothing to suggest.",
)
async def next_prompt(user: CurrentUserDep, session: SessionDep) -> NextPromptResponse:
    """
    Get the next prompt.

    Locked prompts are never suggested. They stay stored until a paid
    subscription unlocks them.
    """
    return NextPromptResponse(prompt=await PromptService(session).next_prompt(user))


@router.post(
    "/{prompt_id}/skip",
    response_model=SkipPromptResponse,
    summary="Skip Prompt",
    description="Skip a generated prompt. A prompt skipped three times is retired.",
    response_description="Whether the prompt was retired, and the next prompt.",
    responses={
        200: {"description": "Prompt skipped"},
        404: {"description": "Prompt not found"},
    },
)
async def skip_prompt(prompt_id: str, user: CurrentUserDep, session: SessionDep) -> SkipPromptResponse:
    retired, upcoming = await PromptService(session).skip_prompt(user, prompt_id)
    return SkipPromptResponse(retired=retired, next_prompt=upcoming)


@router.post(
    "/queue",
    response_model=PromptActionResponse,
    summary="Queue Prompt",
    description="Save a generated or catalog prompt to the queue of prompts to record later.",
    response_description="The queued prompt's id and queue position.",
    responses={
        200: {"description": "Prompt queued"},
        404: {"description": "Prompt not found"},
        422: {"description": "Missing prompt reference"},
    },
)
async def queue_prompt(
    request: PromptActionRequest, user: CurrentUserDep, session: SessionDep
) -> PromptActionResponse:
    """
    Queue a prompt.

    - **source**: ``ai`` or ``catalog``.
    - **prompt_id**: Id of the generated prompt (``ai``).
    - **text** / **category**: The catalog prompt (``catalog``).
    """
    return await PromptService(session).queue_prompt(user, request)


@router.post(
    "/dismiss",
    response_model=PromptActionResponse,
    summary="Dismiss Prompt",
    description="Move a generated or catalog prompt to the archive of dismissed prompts.",
    response_description="The dismissed prompt's id.",
    responses={
        200: {"description": "Prompt dismissed"},
        404: {"description": "Prompt not found"},
    },
)
async def dismiss_prompt(
    request: PromptActionRequest, user: CurrentUserDep, session: SessionDep
) -> PromptActionResponse:
    return await PromptService(session).dismiss_prompt(user, request)


@router.get(
    "/queue",
    response_model=SavedPromptList,
    summary="List Queued Prompts",
    description="Queued prompts of both sources, in queue order.",
)
async def list_queue(user: CurrentUserDep, session: SessionDep) -> SavedPromptList:
    prompts = await PromptService(session).list_queue(user)
    return SavedPromptList(prompts=prompts, total=len(prompts))


@router.get(
    "/archive",
    response_model=SavedPromptList,
    summary="List Dismissed Prompts",
    description="Dismissed prompts of both sources, most recent first.",
)
async def list_archive(user: CurrentUserDep, session: SessionDep) -> SavedPromptList:
    prompts = await PromptService(session).list_archive(user)
    return SavedPromptList(prompts=prompts, total=len(prompts))


@router.delete(
    "/saved/{prompt_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Saved Prompt",
    description="Delete a queued or dismissed catalog prompt.",
    responses={
        204: {"description": "Prompt deleted"},
        404: {"description": "Prompt not found"},
    },
)
async def delete_saved_prompt(prompt_id: str, user: CurrentUserDep, session: SessionDep) -> None:
    await PromptService(session).delete_saved_prompt(user, prompt_id)


@router.get(
    "/catalog",
    response_model=CatalogResponse,
    summary="Prompt Catalog",
    description="Curated sentence starters grouped by category, filtered by what the storyteller has shared.",
    response_description="Visible catalog categories.",
)
async def get_catalog(user: CurrentUserDep, gates: CatalogGates = Depends()) -> CatalogResponse:
    """
    Get the prompt catalog.

    Categories about children, college, siblings, a spouse or pets are only
    returned when the matching query flag is true. Sensitive categories are
    flagged.
    """
    return CatalogResponse(
        categories=[
            CatalogCategoryRead(
                name=category.name,
                sensitive=category.sensitive,
                items=[
                    CatalogItemRead(id=item.id, text=item.text, sensitivity=item.sensitivity.value)
                    for item in category.items
                ],
            )
            for category in build_catalog(gates)
        ]
    )
