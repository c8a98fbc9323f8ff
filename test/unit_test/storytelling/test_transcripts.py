import pytest
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from heritage_whisper.storytelling.transcripts import TranscriptAssistant, local_enhance, needs_enhancement


@pytest.mark.parametrize(
    "text, expected",
    [
        ("I went to the store.", False),
        ("I went to the the store.", True),
        ("It was really really hot.", False),
        ("Um, we drove north.", True),
        ("We moved in 1975, I mean 1976.", True),
        ("we drove all day and all night until we finally reached the coast and saw the sea", True),
        ("", False),
    ],
)
def test_needs_enhancement(text, expected):
    assert needs_enhancement(text) is expected


def test_local_enhance_cleans_spoken_text():
    raw = "um so i went to the the store in 1975, wait 1976 you know"
    assert local_enhance(raw) == "So I went to the store in 1976."


def test_local_enhance_paragraphs():
    raw = " ".join(f"Sentence {n}." for n in range(1, 7))
    assert local_enhance(raw) == "Sentence 1. Sentence 2. Sentence 3. Sentence 4.\n\nSentence 5. Sentence 6."


def test_local_enhance_empty():
    assert local_enhance("   ") == ""


class TestTranscriptAssistant:
    @pytest.mark.asyncio
    async def test_without_model_uses_fallbacks(self):
        assistant = TranscriptAssistant()
        assert not assistant.enabled
        assert await assistant.format_transcript("raw text") == "raw text"
        assert await assistant.suggest_lesson("a story") is None
        assert await assistant.enhance("um hello") == "Hello."

    @pytest.mark.asyncio
    async def test_with_model(self):
        assistant = TranscriptAssistant(model=TestModel(custom_output_text="  Formatted story.  "))
        assert await assistant.format_transcript("formatted story") == "Formatted story."
        assert await assistant.suggest_lesson("a story") == "Formatted story."
        assert await assistant.enhance("um hello") == "Formatted story."

    @pytest.mark.asyncio
    async def test_model_failure_falls_back(self):
        def failing(messages, info: AgentInfo):
            raise RuntimeError("model down")

        assistant = TranscriptAssistant(model=FunctionModel(failing))
        assert await assistant.format_transcript("raw text") == "raw text"
        assert await assistant.suggest_lesson("a story") is None
        assert await assistant.enhance("um hello") == "Hello."
