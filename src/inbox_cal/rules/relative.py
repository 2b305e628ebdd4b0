"""Relative date mentions: "tomorrow" and weekday names.

Only consulted for a text in which no absolute date was found.  The
first rule that matches wins:

1. ``tomorrow`` -> the day after the reference date;
2. ``[next] <weekday>`` -> the next occurrence of that weekday strictly
   after the reference date.  ``next Monday`` and ``Monday`` resolve to
   the same day.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta

SOURCE_RELATIVE = "relative"
SOURCE_WEEKDAY = "weekday"

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TOMORROW_RE = re.compile(r"\btomorrow\b", re.IGNORECASE)
_WEEKDAY_RE = re.compile(
    r"\b(next\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RelativeMatch:
    """A relative mention resolved to a calendar day."""

    day: date
    source: str


def next_weekday(reference: date, weekday: int) -> date:
    """Return the first date strictly after *reference* falling on *weekday*.

    Args:
        reference: The starting date (never returned itself).
        weekday: Target weekday, Monday == 0.
    """
    days_ahead = (weekday - reference.weekday()) % 7 or 7
    return reference + timedelta(days=days_ahead)


def resolve_relative(text: str, reference: datetime) -> RelativeMatch | None:
    """Resolve the first relative mention in *text*, if any."""
    if _TOMORROW_RE.search(text):
        return RelativeMatch(day=reference.date() + timedelta(days=1), source=SOURCE_RELATIVE)

    m = _WEEKDAY_RE.search(text)
    if m:
        target = WEEKDAYS.index(m.group(2).lower())
        return RelativeMatch(day=next_weekday(reference.date(), target), source=SOURCE_WEEKDAY)

    return None
