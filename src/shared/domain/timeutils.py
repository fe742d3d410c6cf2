"""Timezone-naive wall-clock helpers shared by the rule components.

Times of day are carried as zero-padded ``HH:MM`` strings.  Once normalised
with :func:`normalize_hhmm`, two values compare correctly with plain string
comparison, which is what the availability and slot rules rely on.
"""

from __future__ import annotations

import re
from datetime import date, datetime

HHMM_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def normalize_hhmm(value: str) -> str:
    """Return *value* as a zero-padded ``HH:MM`` string.

    Accepts a single-digit hour (``"9:30"``).

    Raises:
        ValueError: if *value* is not a valid 24-hour time.
    """
    if not isinstance(value, str):
        raise ValueError(f"Time must be a string in HH:MM format, got {value!r}.")
    match = HHMM_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time '{value}': expected 24-hour HH:MM.")
    hours, minutes = match.groups()
    return f"{int(hours):02d}:{minutes}"


def is_valid_hhmm(value: str) -> bool:
    try:
        normalize_hhmm(value)
    except ValueError:
        return False
    return True


def clock_hhmm(moment: datetime) -> str:
    """Wall-clock ``HH:MM`` of *moment*, ignoring any tzinfo."""
    return moment.strftime("%H:%M")


def is_time_within_range(value: str, start: str, end: str) -> bool:
    """Inclusive ``start <= value <= end`` on normalised ``HH:MM`` strings."""
    return normalize_hhmm(start) <= normalize_hhmm(value) <= normalize_hhmm(end)


def weekday_name(day: date) -> str:
    """Lower-case English weekday name (``"monday"`` … ``"sunday"``)."""
    return WEEKDAY_NAMES[day.weekday()]
