"""Time-of-day heuristics for a resolved calendar day.

Given the day a date mention resolved to and the full source text,
:func:`resolve_times` picks the start and end instants:

1. end of day -- the text says ``EOD`` / ``end of day``, or says ``by``
   without any explicit time: 17:00 until 23:59:59;
2. explicit time -- ``3pm``, ``at 9``, ``@ 7:15 am``, ``14:30``, ``noon``,
   ``midnight``: that time until 30 minutes later;
3. default -- 09:00 until 09:30.

A bare number is never a time of day on its own: it needs an ``at``/``@``
prefix, a ``:MM`` part or an am/pm suffix.  This keeps day-of-month and
year digits from being read as hours.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

DEFAULT_START = time(9, 0)
DEFAULT_DURATION = timedelta(minutes=30)
EOD_START = time(17, 0)
EOD_END = time(23, 59, 59)

HINT_EOD = "eod"
HINT_EXPLICIT = "explicit-time"
HINT_DEFAULT = "default-time"

_TIME_RE = re.compile(
    r"(?:(?P<at>\bat|@)\s*)?\b(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<ampm>am|pm)?\b",
    re.IGNORECASE,
)
_NOON_MIDNIGHT_RE = re.compile(r"\b(noon|midnight)\b", re.IGNORECASE)
_EOD_RE = re.compile(r"\bEOD\b|\bend of day\b", re.IGNORECASE)
_BY_RE = re.compile(r"\bby\b", re.IGNORECASE)


@dataclass(frozen=True)
class TimeSlot:
    """Start/end instants chosen for a day, plus the branch that fired."""

    start: datetime
    end: datetime
    hint: str


def to_local_iso(value: datetime) -> str:
    """Format *value* as a local wall-clock timestamp (no offset)."""
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def _first_time_token(text: str) -> re.Match[str] | None:
    for m in _TIME_RE.finditer(text):
        if m.group("at") or m.group("minute") or m.group("ampm"):
            return m
    return None


def has_explicit_time(text: str) -> bool:
    """Whether *text* mentions a time of day (including noon/midnight)."""
    return bool(_NOON_MIDNIGHT_RE.search(text)) or _first_time_token(text) is not None


def is_end_of_day(text: str) -> bool:
    """Whether *text* asks for an end-of-day deadline.

    A bare ``by`` counts only when no explicit time is present, so
    ``"by Friday 3pm"`` keeps its 15:00 start.
    """
    if _EOD_RE.search(text):
        return True
    return not has_explicit_time(text) and bool(_BY_RE.search(text))


def parse_time_of_day(text: str) -> time | None:
    """Parse the first time-of-day mention in *text*.

    Noon and midnight win over numeric times.  12-hour values are
    converted (12am -> 00, 12pm -> 12, other pm + 12).

    Returns:
        The parsed time, or ``None`` when there is no mention or the
        first mention is out of range (hour outside 0-23 or minute
        outside 0-59).
    """
    named = _NOON_MIDNIGHT_RE.search(text)
    if named:
        return time(12, 0) if named.group(1).lower() == "noon" else time(0, 0)

    m = _first_time_token(text)
    if m is None:
        return None

    hour = int(m.group("hour"))
    minute = int(m.group("minute") or 0)
    ampm = (m.group("ampm") or "").lower()

    if ampm == "am" and hour == 12:
        hour = 0
    elif ampm == "pm" and hour != 12:
        hour += 12

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return time(hour, minute)


def resolve_times(day: date, text: str) -> TimeSlot:
    """Choose start and end instants on *day* from cues in *text*.

    Args:
        day: The calendar day the mention resolved to.
        text: The full normalized source text.

    Returns:
        A :class:`TimeSlot` whose ``hint`` names the branch that fired
        (``"eod"``, ``"explicit-time"`` or ``"default-time"``).
    """
    if is_end_of_day(text):
        return TimeSlot(
            start=datetime.combine(day, EOD_START),
            end=datetime.combine(day, EOD_END),
            hint=HINT_EOD,
        )

    parsed = parse_time_of_day(text)
    if parsed is not None:
        start = datetime.combine(day, parsed)
        return TimeSlot(start=start, end=start + DEFAULT_DURATION, hint=HINT_EXPLICIT)

    start = datetime.combine(day, DEFAULT_START)
    return TimeSlot(start=start, end=start + DEFAULT_DURATION, hint=HINT_DEFAULT)
