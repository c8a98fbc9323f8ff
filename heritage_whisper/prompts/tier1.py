"""Tier 1 prompts: template follow-ups generated right after a story is saved.

Each template family targets one kind of anchor (a person, place, object or
emotion) found in the transcript. Template choice is a stable function of
the anchor so a story always yields the same prompts.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import BaseModel

from .entities import extract_entities
from .quality import score_prompt_quality, validate_prompt_quality, word_count
from .sanitization import normalize_entity

logger = logging.getLogger(__name__)

MAX_TIER1_PROMPTS = 3
MAX_PERSON_PROMPTS = 2
TIER1_CONTEXT_NOTE = "Based on what you shared"
TIER1_EXPIRY_DAYS = 7


@dataclass(frozen=True)
class RelationshipTemplate:
    trigger: str
    memory_type: str
    priority: int
    patterns: Sequence[str]


PERSON_TEMPLATE = RelationshipTemplate(
    trigger="person",
    memory_type="person_expansion",
    priority=95,
    patterns=(
        "{person} mattered to you. What did they teach you that truly stuck?",
        "When did you first see {person} differently than before?",
        "What is a line {person} said that you still hear today?",
        "Who else was with you the day {person} changed your mind?",
        "What did {person} believe about you that turned out to be true?",
        "When did you realize {person} was right about you?",
        "What part of {person} do you see in yourself now?",
        "Who did {person} remind you of back then?",
        "What would {person} say if they could see you today?",
        "When did you stop trying to impress {person}?",
    ),
)

PLACE_TEMPLATE = RelationshipTemplate(
    trigger="place",
    memory_type="place_memory",
    priority=88,
    patterns=(
        "{place} keeps showing up in your stories. Who shared that place with you?",
        "When did {place} stop feeling the same to you?",
        "What happened at {place} that you rarely talk about?",
        "Who taught you about {place} without meaning to?",
        "What did you leave behind at {place}?",
        "When did you realize you'd never return to {place}?",
    ),
)

OBJECT_TEMPLATE = RelationshipTemplate(
    trigger="object",
    memory_type="object_as_bridge",
    priority=85,
    patterns=(
        "{object} didn't appear from nowhere. Who handed it to you, and why?",
        "When did {object} start meaning more than you expected?",
        "What did {object} cost you that wasn't about money?",
        "Who else touched {object} before it came to you?",
    ),
)

EMOTION_TEMPLATE = RelationshipTemplate(
    trigger="emotion",
    memory_type="emotion_link",
    priority=80,
    patterns=(
        "You felt {emotion}. When did that feeling first teach you who you are?",
        "Who helped you carry that {emotion} back then?",
        "What did feeling {emotion} make you decide about yourself?",
        "When was the last time you felt that {emotion} and didn't tell anyone?",
    ),
)


class Tier1Prompt(BaseModel):
    text: str
    context: str = TIER1_CONTEXT_NOTE
    entity: str
    memory_type: str
    anchor_hash: str
    tier: int = 1
    prompt_score: int
    priority: int
    word_count: int


def generate_anchor_hash(memory_type: str, entity: str, year: Optional[int]) -> str:
    """Stable identity of a prompt anchor, used to avoid duplicate prompts per user."""
    key = f"{memory_type}|{normalize_entity(entity)}|{year if year else 'NA'}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def _address_listener(entity: str) -> str:
    # "my father" reads as "your father" inside a question to the storyteller
    return re.sub(r"^(?:my|our)\b", lambda m: "your" if m.group(0).islower() else "Your", entity, flags=re.IGNORECASE)


def _build(template: RelationshipTemplate, entity: str, year: Optional[int]) -> Optional[Tier1Prompt]:
    normalized = normalize_entity(entity)
    start = int(hashlib.sha1(normalized.encode("utf-8")).hexdigest(), 16) % len(template.patterns)
    display = _address_listener(entity)
    for offset in range(len(template.patterns)):
        pattern = template.patterns[(start + offset) % len(template.patterns)]
        text = pattern.replace("{" + template.trigger + "}", display)
        text = text[0].upper() + text[1:]
        if not validate_prompt_quality(text):
            logger.debug("Rejected tier 1 prompt %r", text)
            continue
        return Tier1Prompt(
            text=text,
            entity=entity,
            memory_type=template.memory_type,
            anchor_hash=generate_anchor_hash(template.memory_type, entity, year),
            prompt_score=score_prompt_quality(text),
            priority=template.priority,
            word_count=word_count(text),
        )
    return None


def generate_tier1_prompts(transcript: str, year: Optional[int] = None) -> List[Tier1Prompt]:
    """Generate up to three template prompts anchored on entities in ``transcript``.

    Args:
        transcript: The story transcript.
        year: The story year, folded into the anchor hash.

    Returns:
        Prompts that passed the quality gate, highest priority first.
    """
    entities = extract_entities(transcript)
    prompts: List[Tier1Prompt] = []

    for person in entities.people[:MAX_PERSON_PROMPTS]:
        prompt = _build(PERSON_TEMPLATE, person, year)
        if prompt:
            prompts.append(prompt)

    for template, candidates in (
        (PLACE_TEMPLATE, entities.places),
        (OBJECT_TEMPLATE, entities.objects),
        (EMOTION_TEMPLATE, entities.emotions),
    ):
        if candidates and len(prompts) < MAX_TIER1_PROMPTS:
            prompt = _build(template, candidates[0], year)
            if prompt:
                prompts.append(prompt)

    prompts.sort(key=lambda p: p.priority, reverse=True)
    logger.info("Generated %d tier 1 prompts", len(prompts))
    return prompts
