"""Text hygiene for anything that is sent to a language model.

Story transcripts are user-authored, so they are scrubbed of role markers,
instruction overrides and template syntax before they are embedded in a
model prompt. Entity helpers normalise names so that "Katie" and "Katy" are
recognised as the same anchor.
"""

from __future__ import annotations

import logging
import math
import re

logger = logging.getLogger(__name__)

MAX_PROMPT_TEXT_LENGTH = 10000
MAX_ENTITY_LENGTH = 100

_INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bsystem\s*:", re.IGNORECASE),
    re.compile(r"\bassistant\s*:", re.IGNORECASE),
    re.compile(r"\buser\s*:", re.IGNORECASE),
    re.compile(r"\bignore\s+(?:all\s+)?previous\b", re.IGNORECASE),
    re.compile(r"\bdisregard\s+(?:all\s+)?previous\b", re.IGNORECASE),
    re.compile(r"\bforget\s+(?:all\s+)?previous\b", re.IGNORECASE),
    re.compile(r"\boverride\s+(?:all\s+)?previous\b", re.IGNORECASE),
    re.compile(r"\b(?:new|actual|real)\s+instructions?\b", re.IGNORECASE),
    re.compile(r"\{\{.*?\}\}", re.DOTALL),
    re.compile(r"\$\{[^}]*\}"),
    re.compile(r"\[SYSTEM\]", re.IGNORECASE),
    re.compile(r"\[/?INST\]", re.IGNORECASE),
)

_UNSAFE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"ignore\s+previous", re.IGNORECASE),
    re.compile(r"\{\{.*?\}\}"),
    re.compile(r"\[SYSTEM\]", re.IGNORECASE),
)

_ENTITY_KEYWORDS = re.compile(r"\b(?:system|root|admin)\b", re.IGNORECASE)


def sanitize_for_llm(text: str | None) -> str:
    """Remove prompt-injection constructs from user text.

    Args:
        text: Raw transcript, lesson or other user-authored text.

    Returns:
        The scrubbed text, with runs of blank lines collapsed and the result
        capped at ``MAX_PROMPT_TEXT_LENGTH`` characters.
    """
    if not text:
        return ""
    cleaned = text
    for pattern in _INJECTION_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = re.sub(r"\n{4,}", "\n\n\n", cleaned)
    if len(cleaned) > MAX_PROMPT_TEXT_LENGTH:
        logger.debug("Truncating LLM input from %d characters", len(cleaned))
        cleaned = cleaned[:MAX_PROMPT_TEXT_LENGTH]
    return cleaned.strip()


def sanitize_entity(entity: str | None) -> str:
    if not entity:
        return ""
    cleaned = _ENTITY_KEYWORDS.sub("", entity)
    cleaned = re.sub(r"[{}$]", "", cleaned)
    return cleaned[:MAX_ENTITY_LENGTH].strip()


def is_safe_for_llm(text: str | None) -> bool:
    """Return True when no known injection marker remains in ``text``."""
    if not text:
        return False
    if len(text) > MAX_PROMPT_TEXT_LENGTH:
        return False
    return not any(pattern.search(text) for pattern in _UNSAFE_PATTERNS)


def normalize_entity(entity: str | None) -> str:
    """Canonical form of an entity used for duplicate detection and anchor hashes."""
    if not entity:
        return ""
    value = entity.lower().strip()
    value = re.sub(r"[^a-z0-9\s]", "", value)
    value = re.sub(r"\s+", " ", value)
    value = re.sub(r"ie$", "y", value)
    value = re.sub(r"ey$", "y", value)
    value = re.sub(r"i$", "y", value)
    return re.sub(r"^the\s+", "", value)


def _levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def entities_match(first: str | None, second: str | None) -> bool:
    """Fuzzy entity comparison tolerating one edit per five characters."""
    a = normalize_entity(first)
    b = normalize_entity(second)
    if not a or not b:
        return False
    if a == b:
        return True
    threshold = math.ceil(max(len(a), len(b)) / 5)
    return _levenshtein(a, b) <= threshold
