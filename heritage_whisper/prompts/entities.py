"""Rule-based entity extraction from story transcripts.

The extractor looks for people, places, objects, emotions and memorable
phrases using regular expressions. Every surface form is passed through
``is_worthy_entity`` so that generic nouns never reach a prompt template.
"""

from __future__ import annotations

import logging
import re
from typing import List

from pydantic import BaseModel, Field

from .quality import is_worthy_entity
from .sanitization import sanitize_for_llm

logger = logging.getLogger(__name__)

_NAME_BEFORE_VERB = re.compile(
    r"\b([A-Z][a-z]{2,}(?:\s+[A-Z][a-z]+)?)\s+"
    r"(?:said|told|taught|showed|gave|asked|wanted|helped|loved|knew|met|called)"
)
_PRONOUNS = frozenset({"She", "He", "They", "We", "It"})

_POSSESSIVE_ROLE = re.compile(
    r"\b(?:my|his|her|their|our)\s+"
    r"(?:father|mother|dad|mom|brother|sister|son|daughter|grandfather|grandmother|grandpa|grandma|"
    r"spouse|husband|wife|partner)\b",
    re.IGNORECASE,
)
_TITLED_NAME = re.compile(r"\b(?:Coach|Teacher|Doctor|Professor|Captain|Pastor|Father|Mother|Boss)(?:\s+[A-Z][a-z]+)?\b")

_POSSESSIVE_PLACE = re.compile(
    r"\b(?:[A-Z][a-z]+(?:'s|(?:\s+[A-Z][a-z]+)?'s)?|(?:my|his|her|their|our)\s+(?:[A-Z][a-z]+(?:'s)?|father|mother|dad|mom))"
    r"\s+(?:workshop|office|cabin|shop|studio|garage|barn|house|home)\b",
    re.IGNORECASE,
)
_NAMED_LOCATION = re.compile(r"\b(?:at|in|to|from|near)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3})\b")

_POSSESSIVE_OBJECT = re.compile(
    r"\b(?:my|his|her|their|our)\s+"
    r"(?:[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?|(?:old|blue|red|green)\s+[A-Z][a-z]+|"
    r"workbench|toolbox|truck|car|bike|ring|watch|camera)\b",
    re.IGNORECASE,
)
_BODY_AND_CLOTHING = frozenset(
    {
        "chest", "knees", "legs", "arms", "hands", "feet", "head", "eyes", "ears",
        "nose", "mouth", "back", "shoulders", "fingers", "toes", "neck", "face",
        "heart", "stomach", "belly", "hips", "ankle", "wrist", "elbow", "knee",
        "shirt", "pants", "shoes", "socks", "dress", "coat", "jacket", "hat",
    }
)
_FAMILY_ROLES = frozenset({"father", "mother", "dad", "mom", "brother", "sister", "son", "daughter"})

EMOTION_WORDS: tuple[str, ...] = (
    "scared",
    "afraid",
    "proud",
    "ashamed",
    "excited",
    "nervous",
    "anxious",
    "relieved",
    "disappointed",
    "grateful",
    "angry",
    "sad",
    "happy",
    "lonely",
    "loved",
    "betrayed",
    "confused",
    "determined",
    "hopeful",
    "heartbroken",
    "overwhelmed",
)

_QUOTED = re.compile(r"[\"“”']([^\"“”']{10,50})[\"“”']")
_MEMORABLE = re.compile(
    r"\b(?:never forget|always remember|still [a-z]+|can't forget|will never)\s+([^.!?]{10,40})[.!?]",
    re.IGNORECASE,
)


class UniquePhrase(BaseModel):
    text: str
    context: str


class ExtractedEntities(BaseModel):
    people: List[str] = Field(default_factory=list)
    places: List[str] = Field(default_factory=list)
    objects: List[str] = Field(default_factory=list)
    emotions: List[str] = Field(default_factory=list)
    unique_phrases: List[UniquePhrase] = Field(default_factory=list)


def _add_unique(bucket: List[str], value: str) -> None:
    if value not in bucket:
        bucket.append(value)


def extract_entities(transcript: str) -> ExtractedEntities:
    """Extract prompt anchors from a transcript, in order of first appearance."""
    text = sanitize_for_llm(transcript)
    result = ExtractedEntities()

    for match in _NAME_BEFORE_VERB.finditer(text):
        name = match.group(1)
        if name not in _PRONOUNS and is_worthy_entity(name):
            _add_unique(result.people, name)
    for match in _POSSESSIVE_ROLE.finditer(text):
        if is_worthy_entity(match.group(0)):
            _add_unique(result.people, match.group(0))
    for match in _TITLED_NAME.finditer(text):
        if is_worthy_entity(match.group(0)):
            _add_unique(result.people, match.group(0))

    for match in _POSSESSIVE_PLACE.finditer(text):
        place = match.group(0).strip()
        if is_worthy_entity(place) and place not in result.people:
            _add_unique(result.places, place)
    for match in _NAMED_LOCATION.finditer(text):
        location = match.group(1).strip()
        if len(location.split()) >= 2 and is_worthy_entity(location) and location not in result.people:
            _add_unique(result.places, location)

    for match in _POSSESSIVE_OBJECT.finditer(text):
        obj = match.group(0).strip()
        words = obj.split()
        second = words[1].lower() if len(words) > 1 else ""
        if second in _BODY_AND_CLOTHING:
            logger.debug("Skipping body part or clothing %r", obj)
            continue
        if second not in _FAMILY_ROLES and is_worthy_entity(obj) and obj not in result.people:
            _add_unique(result.objects, obj)

    lowered = text.lower()
    result.emotions = [emotion for emotion in EMOTION_WORDS if emotion in lowered]

    for match in _QUOTED.finditer(text):
        quote = match.group(1).strip()
        if 10 <= len(quote) <= 50:
            start = max(0, match.start() - 30)
            result.unique_phrases.append(
                UniquePhrase(text=quote, context=text[start : match.start() + len(quote) + 30])
            )
    for match in _MEMORABLE.finditer(text):
        result.unique_phrases.append(UniquePhrase(text=match.group(1).strip(), context=match.group(0)))

    logger.debug(
        "Extracted entities: people=%d places=%d objects=%d emotions=%d phrases=%d",
        len(result.people),
        len(result.places),
        len(result.objects),
        len(result.emotions),
        len(result.unique_phrases),
    )
    return result
