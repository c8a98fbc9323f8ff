"""
Transcription I/O models.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TranscribeJsonRequest(BaseModel):
    audio_base64: str = Field(description="Base64 encoded audio, optionally as a data URL")
    mime_type: str = Field(default="audio/webm")


class TranscriptionResponse(BaseModel):
    transcription: str
    raw_transcription: str
    lesson_learned: Optional[str] = None
    duration_seconds: int
    formatted: bool = Field(description="A language model formatted the transcript")


class EnhanceRequest(BaseModel):
    transcript: str = Field(max_length=50000)


class EnhanceResponse(BaseModel):
    enhanced: str
    original: str
    was_enhanced: bool
