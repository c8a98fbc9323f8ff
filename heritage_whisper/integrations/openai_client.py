"""OpenAI access for speech-to-text and for Pydantic AI text models.

Transcription goes through the official ``openai`` SDK. Text tasks
(formatting, lessons, Tier 3 analysis) use Pydantic AI models built by
``create_text_model`` from the same credentials.
"""

from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError
from pydantic_ai import ModelSettings
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIResponsesModel
from pydantic_ai.providers.openai import OpenAIProvider

from ..core.monitoring import log_llm_call
from .errors import IntegrationNotConfiguredError, TranscriptionError

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}


def filename_for(mime_type: Optional[str]) -> str:
    base = (mime_type or "audio/webm").split(";", 1)[0].strip().lower()
    return f"recording.{_EXTENSIONS.get(base, 'webm')}"


class TranscriptionClient:
    """Speech-to-text through the OpenAI audio API.

    Args:
        api_key: OpenAI API key.
        model: Transcription model name.
        base_url: Optional custom API base URL.
        client: Injectable SDK client, mainly for tests.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model: str = "whisper-1",
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if client is None and not api_key:
            raise IntegrationNotConfiguredError("OpenAI")
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def transcribe(self, audio: bytes, *, mime_type: Optional[str] = None) -> str:
        if not audio:
            raise TranscriptionError("Audio payload is empty", status_code=400)
        if len(audio) > MAX_AUDIO_BYTES:
            raise TranscriptionError("Audio file exceeds 25 MB", status_code=400)
        base_mime = (mime_type or "audio/webm").split(";", 1)[0]
        try:
            logger.debug("Transcribing %d bytes of %s", len(audio), base_mime)
            result = await self._client.audio.transcriptions.create(
                model=self.model,
                file=(filename_for(mime_type), audio, base_mime),
            )
        except OpenAIError as e:
            raise TranscriptionError(
                f"Transcription failed: {e}", status_code=getattr(e, "status_code", None), details=str(e)
            ) from e
        log_llm_call(model=self.model, purpose="transcription")
        return (result.text or "").strip()


def create_text_model(
    model_name: str,
    *,
    api_key: Optional[str],
    base_url: Optional[str] = None,
    temperature: float = 0.7,
    max_tokens: int = 2000,
) -> Optional[Model]:
    """Build a Pydantic AI OpenAI model, or None when no API key is configured."""
    if not api_key:
        logger.debug("No OpenAI API key configured, text model %s disabled", model_name)
        return None
    model_settings = ModelSettings(temperature=temperature, max_tokens=max_tokens)
    provider = OpenAIProvider(api_key=api_key, base_url=base_url)
    logger.debug(f"Creating OpenAI model: {model_name} with Pydantic AI")
    return OpenAIResponsesModel(model_name, provider=provider, settings=model_settings)
