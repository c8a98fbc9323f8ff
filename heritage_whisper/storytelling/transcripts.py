"""Transcript clean-up for recorded stories.

``TranscriptAssistant`` wraps a Pydantic AI model for three text tasks:
formatting a raw transcription, suggesting a lesson learned, and cleaning a
quick-story transcript. Without a model, or when a model call fails, the
local fallbacks below are used so a recording is never lost.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

from pydantic_ai import Agent

from ..prompts.sanitization import sanitize_for_llm

logger = logging.getLogger(__name__)

SENTENCES_PER_PARAGRAPH = 4

FILLER_WORDS = re.compile(r"\b(?:um+|uh+|uhm|ah|er)\b[,]?\s*", re.IGNORECASE)
FILLER_PHRASES = re.compile(r"(?:,\s*)?\byou know\b,?\s*", re.IGNORECASE)
CORRECTION_MARKERS = re.compile(r"\b(?:I mean|wait,|scratch that)", re.IGNORECASE)
_DUPLICATE_WORD = re.compile(r"\b(\w+)(\s+\1\b)+", re.IGNORECASE)
_EMPHASIS_WORDS = frozenset({"very", "really", "so", "much", "far", "long"})
_NUMBER = r"(?:\d{1,4}|one|two|three|four|five|six|seven|eight|nine|ten)"
# "1975 wait 1976", "five actually six"
_INLINE_CORRECTION = re.compile(
    rf"\b{_NUMBER}[,]?\s+(?:I mean|wait|actually|no)[,]?\s+({_NUMBER})\b", re.IGNORECASE
)

FORMAT_SYSTEM_PROMPT = (
    "You format spoken-word transcriptions of personal life stories. Add punctuation, capitalisation and "
    "paragraph breaks. Remove filler words and false starts. Never change the speaker's vocabulary, facts or "
    "tone. Return only the formatted story."
)

LESSON_SYSTEM_PROMPT = (
    "You read a personal life story and suggest the lesson the storyteller learned, written in their own "
    "first-person voice in one or two sentences. Return only the lesson."
)

ENHANCE_SYSTEM_PROMPT = (
    "You are a transcript editor that cleans spoken language while preserving the speaker's authentic voice. "
    "Fix self-corrections and false starts ('1975, wait 1976' becomes '1976'), remove unintentional duplicate "
    "words but keep emphasis such as 'really really', remove filler words (um, uh, you know, filler 'like'), "
    "add punctuation and capitalisation, and break the text into paragraphs at natural topic shifts. Keep "
    "colloquialisms and emotional expressions. Return only the cleaned transcript."
)


def _remove_duplicates(text: str) -> str:
    def _collapse(match: re.Match[str]) -> str:
        word = match.group(1)
        return match.group(0) if word.lower() in _EMPHASIS_WORDS else word

    return _DUPLICATE_WORD.sub(_collapse, text)


def needs_enhancement(text: str) -> bool:
    """Detect transcripts with duplicates, corrections, fillers or no punctuation."""
    if not text or not text.strip():
        return False
    if _remove_duplicates(text) != text:
        return True
    if CORRECTION_MARKERS.search(text) or FILLER_WORDS.search(text) or FILLER_PHRASES.search(text):
        return True
    words = len(text.split())
    return words > 12 and not re.search(r"[.!?]", text)


def _split_sentences(text: str) -> List[str]:
    parts = re.split(r"(?<=[.!?])\s+", text.strip())
    return [part for part in parts if part]


def _capitalize_sentence(sentence: str) -> str:
    sentence = sentence.strip()
    if not sentence:
        return sentence
    sentence = sentence[0].upper() + sentence[1:]
    sentence = re.sub(r"\bi\b", "I", sentence)
    if sentence[-1] not in ".!?":
        sentence += "."
    return sentence


def local_enhance(text: str) -> str:
    """Deterministic clean-up used when no model is available."""
    if not text or not text.strip():
        return ""
    cleaned = re.sub(r"\s+", " ", text).strip()
    cleaned = _INLINE_CORRECTION.sub(lambda m: m.group(1), cleaned)
    cleaned = FILLER_PHRASES.sub(" ", cleaned)
    cleaned = FILLER_WORDS.sub("", cleaned)
    cleaned = _remove_duplicates(cleaned)
    cleaned = re.sub(r"\s{2,}", " ", cleaned).strip()

    sentences = [_capitalize_sentence(sentence) for sentence in _split_sentences(cleaned)]
    paragraphs = [
        " ".join(sentences[index : index + SENTENCES_PER_PARAGRAPH])
        for index in range(0, len(sentences), SENTENCES_PER_PARAGRAPH)
    ]
    return "\n\n".join(paragraphs)


class TranscriptAssistant:
    """LLM helper for transcript formatting, lessons and quick-story clean-up.

    Args:
        model: A Pydantic AI model, or ``None`` to use local fallbacks only.
    """

    def __init__(self, *, model: Any | None = None) -> None:
        self._model = model

    @property
    def enabled(self) -> bool:
        return self._model is not None

    async def _run(self, system_prompt: str, text: str) -> str:
        agent: Agent = Agent(self._model, output_type=str, system_prompt=system_prompt)
        result = await agent.run(sanitize_for_llm(text))
        return result.output.strip()

    async def format_transcript(self, raw: str) -> str:
        if not self.enabled or not raw.strip():
            return raw
        try:
            formatted = await self._run(FORMAT_SYSTEM_PROMPT, raw)
        except Exception as e:
            logger.warning(f"Transcript formatting failed, keeping raw text: {e}")
            return raw
        return formatted or raw

    async def suggest_lesson(self, transcript: str) -> Optional[str]:
        if not self.enabled or not transcript.strip():
            return None
        try:
            lesson = await self._run(LESSON_SYSTEM_PROMPT, transcript)
        except Exception as e:
            logger.warning(f"Lesson suggestion failed: {e}")
            return None
        return lesson or None

    async def enhance(self, transcript: str) -> str:
        if not self.enabled:
            return local_enhance(transcript)
        try:
            enhanced = await self._run(ENHANCE_SYSTEM_PROMPT, transcript)
        except Exception as e:
            logger.warning(f"Transcript enhancement failed, using local clean-up: {e}")
            return local_enhance(transcript)
        return enhanced or local_enhance(transcript)
