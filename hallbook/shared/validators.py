"""Shared validation utilities

Times are canonicalised to zero-padded 24-hour ``HH:MM:SS`` and dates to
``YYYY-MM-DD``. Both are fixed width, so plain string comparison orders
them correctly and SQL text comparison agrees with Python.
"""

import re
from datetime import date
from typing import Optional

from ..exceptions import FormatError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_time(value: Optional[str]) -> str:
    """
    Canonicalise a wall-clock time.

    Args:
        value: ``HH:MM`` or ``HH:MM:SS``, 24-hour and zero-padded

    Returns:
        The time as ``HH:MM:SS``

    Raises:
        FormatError: If the value matches neither form
    """
    text = value if isinstance(value, str) else ""
    match = TIME_PATTERN.fullmatch(text)
    if not match:
        raise FormatError(f"Invalid time format: {value!r} (expected HH:MM or HH:MM:SS)")

    hours, minutes, seconds = match.groups()
    return f"{hours}:{minutes}:{seconds or '00'}"


def compare_times(a: str, b: str) -> int:
    """Return -1, 0 or 1 as canonical time ``a`` is before, equal to or after ``b``."""
    a, b = normalize_time(a), normalize_time(b)
    return (a > b) - (a < b)


def parse_date(value: Optional[str]) -> date:
    """
    Parse a calendar date given as ``YYYY-MM-DD``.

    Raises:
        FormatError: If the value is not in that form or is not a real date
    """
    text = value if isinstance(value, str) else ""
    if not DATE_PATTERN.fullmatch(text):
        raise FormatError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise FormatError(f"Invalid date: {value!r}") from None


def validate_date(value: Optional[str]) -> str:
    """Return the date string unchanged after checking it is a real ``YYYY-MM-DD`` date."""
    return format_date(parse_date(value))


def format_date(value: date) -> str:
    return value.isoformat()
