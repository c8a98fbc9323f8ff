"""
Year and decade helpers.

Story years arrive from forms, transcripts and older records, and some older
records carry years corrupted by string concatenation (``19550`` for 1955).
Everything that groups stories by time goes through ``normalize_year`` first.
"""

from __future__ import annotations

from typing import Optional, Union

MIN_YEAR = 1900
MAX_YEAR = 2100


def _in_range(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def normalize_year(value: Union[int, str, None]) -> Optional[int]:
    """Return a valid year in 1900..2100, repairing trailing-zero corruption, or None.

    >>> normalize_year("19550")
    1955
    >>> normalize_year(1955)
    1955
    >>> normalize_year("abc") is None
    True
    """
    if value is None or value == "" or value == 0:
        return None

    text = str(value).strip()

    if len(text) == 5 and text[:2] in ("19", "20") and text.endswith("0"):
        candidate = int(text[:4])
        if _in_range(candidate):
            return candidate

    if len(text) > 4 and text.endswith("0"):
        trimmed = text
        while len(trimmed) > 4 and trimmed.endswith("0"):
            trimmed = trimmed[:-1]
        if trimmed.isdigit() and _in_range(int(trimmed)):
            return int(trimmed)

    digits = ""
    for char in text:
        if not char.isdigit():
            break
        digits += char
    if digits and _in_range(int(digits)):
        return int(digits)
    return None


def decade_of(year: int) -> int:
    return year // 10 * 10


def decade_label(decade: int) -> str:
    return f"{decade}s"


def decade_display_name(decade: int) -> str:
    return f"THE {decade}s"


def age_range_label(decade: int, birth_year: int) -> str:
    start = max(0, decade - birth_year)
    return f"Ages {start}-{start + 9}"


def lived_decades(birth_year: int, current_year: int) -> list[int]:
    """Decades from the birth decade to the current one, inclusive."""
    return list(range(decade_of(birth_year), decade_of(current_year) + 1, 10))
