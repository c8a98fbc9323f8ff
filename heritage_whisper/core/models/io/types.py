"""Shared field types for I/O models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not _EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


Email = Annotated[str, AfterValidator(_normalize_email)]


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Columns store naive UTC, so aware input such as "...Z" is converted on the way in.
UtcDatetime = Annotated[datetime, AfterValidator(_to_naive_utc)]
