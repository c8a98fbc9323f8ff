"""
Transcription and transcript endpoints.

``POST /transcribe`` accepts either a multipart upload (field ``audio``) or a
JSON body with base64 audio, so that both the recorder and older clients can
use it.
"""

from __future__ import annotations

import base64
import binascii
import logging
import math
from typing import Optional, Tuple

from fastapi import APIRouter, Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from heritage_whisper.core.errors import ValidationFailedError
from heritage_whisper.core.models.io import (
    EnhanceRequest,
    EnhanceResponse,
    FollowUpRequest,
    FollowUpResponse,
    TranscribeJsonRequest,
    TranscriptionResponse,
)
from heritage_whisper.integrations import IntegrationNotConfiguredError
from heritage_whisper.prompts.keywords import follow_up_question
from heritage_whisper.server.services.deps import (
    AIRateLimit,
    CurrentUserDep,
    TranscriptAssistantDep,
    TranscriptionDep,
    UploadRateLimit,
)
from heritage_whisper.storytelling.audio import audio_duration
from heritage_whisper.storytelling.transcripts import needs_enhancement

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transcription"])

MAX_AUDIO_BYTES = 25 * 1024 * 1024
# Base64 length of MAX_AUDIO_BYTES; the body limit adds room for a data: prefix and the JSON envelope.
MAX_BASE64_CHARS = 4 * math.ceil(MAX_AUDIO_BYTES / 3)
MAX_JSON_BODY_BYTES = MAX_BASE64_CHARS + 64 * 1024

AUDIO_TOO_LARGE = "Audio file too large (max 25MB)"


def decode_base64_audio(data: str) -> bytes:
    """Decode base64 audio, accepting a ``data:`` URL prefix."""
    if data.startswith("data:"):
        data = data.partition(",")[2]
    if len(data) > MAX_BASE64_CHARS:
        raise ValidationFailedError(AUDIO_TOO_LARGE)
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationFailedError("Audio is not valid base64") from e


async def read_json_body(request: Request) -> bytes:
    """Read the request body, stopping as soon as it outgrows the audio limit."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > MAX_JSON_BODY_BYTES:
        raise ValidationFailedError(AUDIO_TOO_LARGE)
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > MAX_JSON_BODY_BYTES:
            raise ValidationFailedError(AUDIO_TOO_LARGE)
    return bytes(body)


async def read_audio(request: Request) -> Tuple[bytes, Optional[str]]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("audio")
        if not isinstance(upload, UploadFile):
            raise ValidationFailedError("No audio file provided")
        if upload.size is not None and upload.size > MAX_AUDIO_BYTES:
            raise ValidationFailedError(AUDIO_TOO_LARGE)
        return await upload.read(MAX_AUDIO_BYTES + 1), upload.content_type
    try:
        body = TranscribeJsonRequest.model_validate_json(await read_json_body(request))
    except ValidationError as e:
        raise ValidationFailedError("No audio data provided") from e
    return decode_base64_audio(body.audio_base64), body.mime_type


@router.post(
    "/transcribe",
    response_model=TranscriptionResponse,
    dependencies=[UploadRateLimit],
    summary="Transcribe Audio",
    description="Transcribe a recording, format the text into paragraphs and suggest a lesson learned.",
    response_description="Formatted transcript, raw transcript, lesson and duration.",
    responses={
        200: {"description": "Audio transcribed"},
        400: {"description": "Missing, malformed or oversized audio"},
        502: {"description": "The transcription service failed"},
        503: {"description": "Transcription is not configured"},
    },
)
async def transcribe(
    request: Request,
    user: CurrentUserDep,
    transcriber: TranscriptionDep,
    assistant: TranscriptAssistantDep,
) -> TranscriptionResponse:
    """
    Transcribe audio.

    Accepts ``multipart/form-data`` with an ``audio`` file, or JSON with
    ``audio_base64`` and ``mime_type``. Recordings above 25 MB are rejected.
    Formatting and lesson suggestion fall back to the raw text and no lesson.
    """
    if transcriber is None:
        raise IntegrationNotConfiguredError("OpenAI")
    audio, mime_type = await read_audio(request)
    if not audio:
        raise ValidationFailedError("No audio data provided")
    if len(audio) > MAX_AUDIO_BYTES:
        raise ValidationFailedError(AUDIO_TOO_LARGE)

    raw = await transcriber.transcribe(audio, mime_type=mime_type)
    formatted = await assistant.format_transcript(raw)
    lesson = await assistant.suggest_lesson(formatted)
    logger.info(f"Transcribed {len(audio)} bytes for user {user.id}")
    return TranscriptionResponse(
        transcription=formatted,
        raw_transcription=raw,
        lesson_learned=lesson,
        duration_seconds=audio_duration(audio),
        formatted=formatted != raw,
    )


@router.post(
    "/transcripts/enhance",
    response_model=EnhanceResponse,
    dependencies=[AIRateLimit],
    summary="Enhance Transcript",
    description="Clean up a quick-story transcript: self-corrections, repeated words, fillers and paragraphs.",
    response_description="Enhanced and original transcript.",
    responses={
        200: {"description": "Transcript processed"},
        429: {"description": "Too many requests"},
    },
)
async def enhance_transcript(
    data: EnhanceRequest, user: CurrentUserDep, assistant: TranscriptAssistantDep
) -> EnhanceResponse:
    """
    Enhance a transcript.

    Transcripts that already read cleanly are returned unchanged.

    - **transcript**: The raw transcript text.
    """
    if not data.transcript.strip() or not needs_enhancement(data.transcript):
        return EnhanceResponse(enhanced=data.transcript, original=data.transcript, was_enhanced=False)
    enhanced = await assistant.enhance(data.transcript)
    return EnhanceResponse(enhanced=enhanced, original=data.transcript, was_enhanced=enhanced != data.transcript)


@router.post(
    "/transcripts/follow-up",
    response_model=FollowUpResponse,
    summary="Follow-up Question",
    description="Pick a follow-up question from the last words of an in-progress recording.",
    response_description="A question and the keyword category that triggered it.",
)
async def follow_up(data: FollowUpRequest, user: CurrentUserDep) -> FollowUpResponse:
    question, category = follow_up_question(data.transcript, data.used_prompts)
    return FollowUpResponse(question=question, category=category)
