"""Audio duration measurement for recorded stories."""

from __future__ import annotations

import io
import logging
import math
from typing import Optional

import mutagen
from mutagen import MutagenError

logger = logging.getLogger(__name__)

SECONDS_PER_MEGABYTE = 60
MIN_DURATION_SECONDS = 1


def measure_duration(audio: bytes) -> Optional[int]:
    """Return the duration in whole seconds, or None when the container is not recognised."""
    if not audio:
        return None
    try:
        parsed = mutagen.File(io.BytesIO(audio))
    except MutagenError as e:
        logger.debug(f"Could not parse audio for duration: {e}")
        return None
    if parsed is None or parsed.info is None:
        return None
    length = getattr(parsed.info, "length", None)
    if not length or length <= 0:
        return None
    return max(MIN_DURATION_SECONDS, int(round(length)))


def estimate_duration(size_bytes: int) -> int:
    """Rough duration from file size, about one minute per megabyte of compressed audio."""
    megabytes = size_bytes / (1024 * 1024)
    return max(MIN_DURATION_SECONDS, int(math.ceil(megabytes * SECONDS_PER_MEGABYTE)))


def audio_duration(audio: bytes) -> int:
    measured = measure_duration(audio)
    return measured if measured is not None else estimate_duration(len(audio))
