"""Quality gates for generated memory prompts.

Two layers are applied:

- ``is_worthy_entity`` / ``validate_prompt_quality`` are hard gates used while
  generating prompts. A prompt that fails them is never stored.
- ``assess_prompt`` produces a graded report with issue types and a 0..100
  score, used to filter batches and to explain rejections.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_PROMPT_WORDS = 30
MAX_ASSESSED_WORDS = 35

GENERIC_WORDS = frozenset(
    {"girl", "boy", "man", "woman", "house", "room", "chair", "place", "thing", "person", "kid", "child"}
)

BANNED_PHRASES: tuple[str, ...] = (
    "in your story about",
    "tell me more",
    "what else",
    "how did that make you feel",
    "what's the clearest memory",
)

_GENERIC_SUBJECT = re.compile(r"\b(?:girl|boy|man|woman|house|room|chair)\b")
_YES_NO_START = re.compile(r"^(?:did|was|were|is|are|do|does|have|has)\b", re.IGNORECASE)
_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_POSSESSIVE = re.compile(r"(?:^|\s)(?:(?:my|his|her|their|our)\s+[a-z][a-z]+|\w+'s\b)", re.IGNORECASE)
_PROPER_NAME = re.compile(r"^[A-Z][a-z]+(?:\s[A-Z][a-z]+)*$")
_DEPTH_WORDS = re.compile(
    r"\b(?:felt|learned|realized|chose|trade|cost|price|sacrifice\w*|courage|never|still|first|teach|taught)\b",
    re.IGNORECASE,
)


def word_count(text: str) -> int:
    return len(text.split())


def is_worthy_entity(entity: Optional[str]) -> bool:
    """Return True when ``entity`` is specific enough to anchor a prompt.

    Generic nouns ("girl", "the house") are rejected; possessives, proper
    names and multi-word phrases are accepted.
    """
    if not entity:
        return False
    text = entity.strip()
    if not text:
        return False
    core = _LEADING_ARTICLE.sub("", text)
    if core.lower() in GENERIC_WORDS:
        return False
    if _POSSESSIVE.search(text):
        return True
    if _PROPER_NAME.match(text):
        return True
    if len(core.split()) >= 2:
        return True
    # single lowercase noun such as "workshop"
    return len(core) >= 3 and core.isalpha()


def validate_prompt_quality(prompt: Optional[str]) -> bool:
    """Hard gate applied to every generated prompt before storage."""
    if not prompt or not prompt.strip():
        return False
    if word_count(prompt) > MAX_PROMPT_WORDS:
        return False
    lower = prompt.lower()
    if _GENERIC_SUBJECT.search(lower):
        return False
    if any(phrase in lower for phrase in BANNED_PHRASES):
        return False
    if _YES_NO_START.match(prompt.strip()):
        return False
    return True


def _has_mid_sentence_proper_noun(prompt: str) -> bool:
    tokens = re.findall(r"[\w']+|[.!?]", prompt)
    sentence_start = True
    for token in tokens:
        if token in {".", "!", "?"}:
            sentence_start = True
            continue
        if not sentence_start and token[0].isupper() and token != "I":
            return True
        sentence_start = False
    return False


def score_prompt_quality(
    prompt: str,
    *,
    uses_exact_phrase: bool = False,
    references_multiple_stories: bool = False,
    asks_about_absence: bool = False,
) -> int:
    """Score a prompt from 0 to 100; 50 is a neutral prompt."""
    score = 50
    if uses_exact_phrase:
        score += 20
    if references_multiple_stories:
        score += 15
    if asks_about_absence:
        score += 15
    if _has_mid_sentence_proper_noun(prompt):
        score += 10
    score += min(10, 5 * len(_DEPTH_WORDS.findall(prompt)))

    lower = prompt.lower()
    if _GENERIC_SUBJECT.search(lower):
        score -= 25
    if any(phrase in lower for phrase in BANNED_PHRASES):
        score -= 30
    if word_count(prompt) > MAX_PROMPT_WORDS:
        score -= 10
    return max(0, min(100, score))


# =====================================================================
# Graded assessment
# =====================================================================


class QualityIssueType(str, Enum):
    BROKEN = "broken"
    GENERIC = "generic"
    LONG = "long"
    VAGUE = "vague"
    THERAPY = "therapy"
    YES_NO = "yes_no"


ISSUE_PENALTIES: dict[QualityIssueType, int] = {
    QualityIssueType.BROKEN: 100,
    QualityIssueType.GENERIC: 40,
    QualityIssueType.VAGUE: 30,
    QualityIssueType.THERAPY: 20,
    QualityIssueType.LONG: 15,
    QualityIssueType.YES_NO: 10,
}


class QualityIssue(BaseModel):
    type: QualityIssueType
    reason: str


class QualityReport(BaseModel):
    prompt: str
    issues: List[QualityIssue] = Field(default_factory=list)
    score: int = Field(ge=0, le=100)
    passed: bool


_GENERIC_PATTERNS = (
    re.compile(r"tell me more", re.IGNORECASE),
    re.compile(r"what else", re.IGNORECASE),
    re.compile(r"how did that make you feel", re.IGNORECASE),
    re.compile(r"can you elaborate", re.IGNORECASE),
    re.compile(r"would you like to share", re.IGNORECASE),
    re.compile(r"^what was it like", re.IGNORECASE),
)

_THERAPY_WORDS = re.compile(
    r"\b(?:journey|growth|resilience|shaped you|impacted|healing|process|transform\w*|inner|deeper meaning)\b",
    re.IGNORECASE,
)

_YES_NO_QUESTION = re.compile(r"^(?:did you|was it|were you|have you|can you|would you|do you)\b", re.IGNORECASE)

_BROKEN_PATTERNS = (
    re.compile(r"\s+(?:the|a|an)\s+(?:said|told|was|were|had|have)\b", re.IGNORECASE),
    re.compile(r"something\s+[^a-zA-Z'\"]"),
    re.compile(r"\s{2,}"),
    re.compile(r"\b(?:impress|mention|talk|speak|discuss)\s+(?:the|a|an)\s+(?:said|told)", re.IGNORECASE),
    re.compile(r"\b(?:the|a|an)\s+(?:tell|say|speak|talk)\s*\?", re.IGNORECASE),
)

_SPECIFICITY_MARKERS = (
    "you mentioned",
    "you said",
    "you felt",
    "you described",
    "when you",
    "after",
    "before",
    "during",
)


def _lacks_specificity(prompt: str) -> bool:
    lower = prompt.lower()
    if any(marker in lower for marker in _SPECIFICITY_MARKERS):
        return False
    if re.search(r"[A-Z][a-z]+", prompt):
        return False
    return not re.search(r"[\"']", prompt)


def find_quality_issues(prompt: str) -> List[QualityIssue]:
    issues: List[QualityIssue] = []
    if any(pattern.search(prompt) for pattern in _BROKEN_PATTERNS):
        issues.append(QualityIssue(type=QualityIssueType.BROKEN, reason="Prompt has broken entity extraction"))
    if any(pattern.search(prompt.strip()) for pattern in _GENERIC_PATTERNS):
        issues.append(QualityIssue(type=QualityIssueType.GENERIC, reason="Prompt is too generic or vague"))
    words = word_count(prompt)
    if words > MAX_ASSESSED_WORDS:
        issues.append(
            QualityIssue(
                type=QualityIssueType.LONG, reason=f"Prompt is too long ({words} words, max {MAX_ASSESSED_WORDS})"
            )
        )
    if _lacks_specificity(prompt):
        issues.append(
            QualityIssue(type=QualityIssueType.VAGUE, reason="Prompt lacks specific references to the stories")
        )
    if _THERAPY_WORDS.search(prompt):
        issues.append(QualityIssue(type=QualityIssueType.THERAPY, reason="Prompt uses therapy jargon"))
    if _YES_NO_QUESTION.match(prompt.strip()):
        issues.append(QualityIssue(type=QualityIssueType.YES_NO, reason="Prompt is a yes/no question"))
    return issues


def _passes(issues: Iterable[QualityIssue]) -> bool:
    kinds = [issue.type for issue in issues]
    if QualityIssueType.BROKEN in kinds:
        return False
    if not kinds:
        return True
    if len(kinds) == 1:
        return kinds[0] not in (QualityIssueType.GENERIC, QualityIssueType.VAGUE)
    return False


def assess_prompt(prompt: str) -> QualityReport:
    """Grade ``prompt`` and decide whether it is good enough to show."""
    issues = find_quality_issues(prompt)
    score = 100 - sum(ISSUE_PENALTIES[issue.type] for issue in issues)
    return QualityReport(prompt=prompt, issues=issues, score=max(0, score), passed=_passes(issues))


def is_quality_prompt(prompt: str) -> bool:
    return assess_prompt(prompt).passed


def filter_quality_prompts(prompts: Iterable[str]) -> List[str]:
    kept: List[str] = []
    for prompt in prompts:
        report = assess_prompt(prompt)
        if report.passed:
            kept.append(prompt)
        else:
            logger.debug("Rejected prompt %r: %s", prompt, [issue.type.value for issue in report.issues])
    return kept


def is_valid_entity(entity: Optional[str]) -> bool:
    """Reject grammatical fragments produced by a bad extraction."""
    if not entity:
        return False
    text = entity.strip()
    if len(text) < 3:
        return False
    if re.fullmatch(r"(?:the|a|an|to|from|with|of|in|on|at|by|for)", text, re.IGNORECASE):
        return False
    if re.search(r"\s+(?:the|a|an)$", text, re.IGNORECASE):
        return False
    if re.fullmatch(r"(?:said|told|was|were|had|have|did|does|do|been|being)", text, re.IGNORECASE):
        return False
    if not text[0].isalpha():
        return False
    return not re.search(r"\s+(?:and|or|but|so|yet)\s*$", text, re.IGNORECASE)
