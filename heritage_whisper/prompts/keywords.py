"""Keyword-driven follow-up questions asked while a story is being recorded."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

RECENT_WORD_WINDOW = 50


@dataclass(frozen=True)
class KeywordPrompt:
    keywords: Sequence[str]
    prompt: str
    category: str


KEYWORD_PROMPTS: tuple[KeywordPrompt, ...] = (
    KeywordPrompt(("decided", "choice", "chose", "decision"), "What was happening inside you when you made that choice?", "choice"),
    KeywordPrompt(("scared", "afraid", "fear", "frightened"), "How did you find the courage to face that fear?", "emotion"),
    KeywordPrompt(("learned", "lesson", "realized", "understood"), "What would you tell someone facing the same situation?", "wisdom"),
    KeywordPrompt(
        ("smell", "taste", "sound", "felt like", "looked like"),
        "Can you paint that scene for me? What details stay with you?",
        "sensory",
    ),
    KeywordPrompt(("mother", "father", "mom", "dad", "parent"), "What did they teach you without using words?", "relationship"),
    KeywordPrompt(("changed", "different", "transformed", "never the same"), "What ended and what began in that moment?", "choice"),
    KeywordPrompt(("proud", "accomplished", "achieved", "succeeded"), "What price did you pay for that achievement?", "wisdom"),
    KeywordPrompt(("lost", "gone", "died", "passed"), "What do you carry forward from them?", "emotion"),
    KeywordPrompt(("friend", "friendship", "best friend", "companion"), "How did that friendship shape who you became?", "relationship"),
    KeywordPrompt(("mistake", "wrong", "regret", "failed"), "What gift came disguised in that failure?", "wisdom"),
    KeywordPrompt(("love", "loved", "fell in love", "heart"), "What did love teach you about yourself?", "emotion"),
    KeywordPrompt(("home", "house", "neighborhood", "place"), "What made that place feel like home to you?", "sensory"),
    KeywordPrompt(("child", "children", "kids", "baby"), "What surprised you most about becoming a parent?", "relationship"),
    KeywordPrompt(("work", "job", "career", "boss"), "What did that work reveal about your character?", "wisdom"),
    KeywordPrompt(("moment", "suddenly", "instant", "that day"), "What was different about you after that moment?", "choice"),
)

FALLBACK_FOLLOW_UPS: tuple[str, ...] = (
    "Tell me more about that feeling.",
    "What details do you remember most vividly?",
    "How did that experience change you?",
    "What would you want others to know about this?",
    "Can you describe what that moment felt like?",
)


def last_words(transcript: str, count: int = RECENT_WORD_WINDOW) -> str:
    return " ".join(transcript.split()[-count:]).lower()


def find_matching_prompt(transcript: str, used: Iterable[str] = ()) -> Optional[KeywordPrompt]:
    """First keyword prompt whose keywords appear in the last words of ``transcript``."""
    recent = last_words(transcript)
    used_set = set(used)
    for candidate in KEYWORD_PROMPTS:
        if candidate.prompt in used_set:
            continue
        if any(keyword in recent for keyword in candidate.keywords):
            return candidate
    return None


def fallback_follow_up(used: Iterable[str] = ()) -> str:
    used_set = set(used)
    for prompt in FALLBACK_FOLLOW_UPS:
        if prompt not in used_set:
            return prompt
    return FALLBACK_FOLLOW_UPS[0]


def follow_up_question(transcript: str, used: Iterable[str] = ()) -> tuple[str, Optional[str]]:
    """Return ``(question, category)``; category is None for a fallback question."""
    used = list(used)
    match = find_matching_prompt(transcript, used)
    if match:
        return match.prompt, match.category
    return fallback_follow_up(used), None
