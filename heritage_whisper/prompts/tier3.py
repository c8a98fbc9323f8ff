"""Tier 3 prompts: multi-story analysis run at story-count milestones.

The analyzer asks a language model for "intimacy" prompts, questions that
show the storyteller their stories were really heard. Four intimacy types
are requested:

- ``caught_that``: quotes an exact phrase back to the storyteller.
- ``see_pattern``: names a behaviour repeated across stories.
- ``notice_absence``: asks about someone or something never mentioned.
- ``understand_cost``: acknowledges the trade-off behind a choice.

Every model prompt goes through ``validate_prompt_quality``. When nothing
survives, or when no model is configured, a deterministic fallback anchored
on the first story is used instead.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field
from pydantic_ai import Agent

from .quality import validate_prompt_quality
from .sanitization import sanitize_entity, sanitize_for_llm

logger = logging.getLogger(__name__)

MILESTONES: tuple[int, ...] = (1, 2, 3, 4, 7, 10, 15, 20, 30, 50, 100)
PAYWALL_MILESTONE = 3
TIER3_EXPIRY_DAYS = 30
FALLBACK_MODEL_VERSION = "tier3-fallback"


class IntimacyType(str, Enum):
    CAUGHT_THAT = "caught_that"
    SEE_PATTERN = "see_pattern"
    NOTICE_ABSENCE = "notice_absence"
    UNDERSTAND_COST = "understand_cost"


class Tier3PromptDraft(BaseModel):
    """One prompt proposed by the analysis."""

    prompt: str = Field(description="The exact prompt text, at most 30 words")
    intimacy_type: IntimacyType
    anchor_entity: str = Field(description="Specific name or phrase from the stories")
    recording_likelihood: int = Field(ge=0, le=100, description="How likely the storyteller is to record an answer")
    reasoning: str = Field(default="", description="Why this prompt will make them want to record")


class Tier3Analysis(BaseModel):
    prompts: List[Tier3PromptDraft] = Field(default_factory=list)
    model_version: str = FALLBACK_MODEL_VERSION
    used_fallback: bool = False


class AnalyzableStory(Protocol):
    transcription: Optional[str]
    lesson_learned: Optional[str]
    story_year: Optional[int]


def is_milestone(story_count: int) -> bool:
    return story_count in MILESTONES


def prompt_count_for(story_count: int) -> int:
    """Number of prompts to request for a given story count."""
    if 1 <= story_count <= 3:
        return 4
    if 4 <= story_count <= 20:
        return 3
    if 30 <= story_count <= 50:
        return 2
    return 1


def analysis_phase(story_count: int) -> str:
    if story_count == PAYWALL_MILESTONE:
        return "paywall"
    if 4 <= story_count <= 10:
        return "patterns"
    if story_count > 10:
        return "deep_patterns"
    return "early"


def context_note_for(story_count: int) -> str:
    if story_count == 1:
        return "Based on your first story"
    return f"Based on patterns across {story_count} stories"


def is_locked(story_count: int, index: int, *, is_paid: bool) -> bool:
    """At the paywall milestone only the first prompt is open to free users."""
    return story_count == PAYWALL_MILESTONE and index > 0 and not is_paid


_PHASE_STRATEGY = {
    "early": (
        "EARLY STORIES: expand what they have shared. Prefer 'caught that' prompts using their exact "
        "phrases and gentle 'notice the absence' prompts about who else was there."
    ),
    "paywall": (
        "THIRD STORY: mix all four intimacy types to show range. Lead with the strongest pattern you "
        "found and reference details that prove you read everything."
    ),
    "patterns": (
        "PATTERN RECOGNITION: favour 'see your pattern' and 'understand the cost'. Reference two or "
        "more stories in one prompt when possible."
    ),
    "deep_patterns": (
        "DEEP PATTERNS: expertly mix all four types, connect choices across decades and surface "
        "unspoken rules. They should feel seen, not analyzed."
    ),
}


def build_system_prompt(story_count: int, prompt_count: int) -> str:
    phase = analysis_phase(story_count)
    return (
        "You are HeritageWhisper's listening engine. Prove you were really listening.\n"
        f"Generate {prompt_count} prompts of these intimacy types: caught_that (quote an exact phrase), "
        "see_pattern (name a repeated behaviour), notice_absence (ask about who or what is missing), "
        "understand_cost (acknowledge a trade-off).\n"
        "Rules: at most 30 words per prompt; no story titles; no generic nouns such as girl, boy, man, "
        "woman, house, room or chair; no therapy-speak; no yes/no questions; use exact names and phrases "
        "from the stories; sound like a caring friend.\n"
        f"Strategy: {_PHASE_STRATEGY[phase]}"
    )


def build_user_prompt(stories: Sequence[AnalyzableStory]) -> str:
    parts: List[str] = []
    for index, story in enumerate(stories, start=1):
        lines = [f"Story {index}:"]
        if story.story_year:
            lines.append(f"Year: {story.story_year}")
        lines.append(sanitize_for_llm(story.transcription or ""))
        if story.lesson_learned:
            lines.append(f"Lesson Learned: {sanitize_for_llm(story.lesson_learned)}")
        parts.append("\n".join(lines))
    return "Analyze these stories with intimacy and insight:\n\n" + "\n\n---\n\n".join(parts)


def fallback_prompt(stories: Sequence[AnalyzableStory], story_count: int) -> Tier3PromptDraft:
    transcript = (stories[0].transcription or "") if stories else ""
    match = re.search(r"\b([A-Z][a-z]{2,})\b", transcript)
    anchor = match.group(1) if match else "that time"
    if story_count == 1:
        text = f"What happened right after {anchor}? Who was with you?"
    else:
        text = f"You keep returning to {anchor} in your stories. What makes that memory stick?"
    return Tier3PromptDraft(
        prompt=text,
        intimacy_type=IntimacyType.CAUGHT_THAT,
        anchor_entity=anchor,
        recording_likelihood=60,
        reasoning="Fallback prompt referencing story anchor",
    )


class Tier3Analyzer:
    """Milestone analysis over all of a storyteller's stories.

    The analyzer supports two modes:

    - ``model=None``: only the deterministic fallback prompt is produced.
    - ``model!=None``: a Pydantic AI agent returns structured prompt drafts,
      which are then filtered by the quality gate.
    """

    def __init__(self, *, model: Any | None = None, model_version: Optional[str] = None) -> None:
        self._model = model
        self._model_version = model_version or getattr(model, "model_name", None) or "tier3-intimacy"

    async def analyze(self, stories: Sequence[AnalyzableStory], story_count: int) -> Tier3Analysis:
        if not stories:
            return Tier3Analysis()

        if self._model is None:
            logger.info("No tier 3 model configured, using fallback prompt")
            return Tier3Analysis(prompts=[fallback_prompt(stories, story_count)], used_fallback=True)

        prompt_count = prompt_count_for(story_count)
        agent: Agent = Agent(
            self._model,
            output_type=List[Tier3PromptDraft],
            system_prompt=build_system_prompt(story_count, prompt_count),
        )
        result = await agent.run(build_user_prompt(stories))
        drafts: List[Tier3PromptDraft] = list(result.output)[:prompt_count]

        kept: List[Tier3PromptDraft] = []
        for draft in drafts:
            if validate_prompt_quality(draft.prompt):
                draft.anchor_entity = sanitize_entity(draft.anchor_entity) or draft.anchor_entity
                kept.append(draft)
            else:
                logger.info("Rejected tier 3 prompt %r", draft.prompt)
        if len(kept) < len(drafts):
            logger.warning("Quality filter rejected %d tier 3 prompts", len(drafts) - len(kept))

        if not kept:
            logger.warning("All tier 3 prompts rejected, using fallback")
            return Tier3Analysis(prompts=[fallback_prompt(stories, story_count)], used_fallback=True)
        return Tier3Analysis(prompts=kept, model_version=self._model_version)
