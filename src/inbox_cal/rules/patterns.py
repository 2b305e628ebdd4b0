"""Absolute-date recognition for the rules extractor.

Three independent recognizers each yield zero or more date candidates
from a normalized text.  :data:`RECOGNIZERS` fixes their priority order:
ISO dates, then slash dates, then month-name dates.  Every non-overlapping
occurrence of every family is kept, left to right within a family.

Candidates go through the same resolution step regardless of family:

- an impossible calendar date (``2/30``) is dropped silently,
- a candidate without a four-digit year takes the reference year and is
  rolled to the next year when that date is already in the past,
- anything before :data:`MIN_YEAR` is dropped (copyright footers and the
  like).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date, datetime

MIN_YEAR = 2015

_WHITESPACE_RE = re.compile(r"\s+")

_ISO_RE = re.compile(r"\b(20\d{2})-(\d{2})-(\d{2})\b")
_SLASH_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b")
_MONTH_NAME_RE = re.compile(
    r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*"
    r"\s+(\d{1,2})(?:,\s*(\d{4}))?\b",
    re.IGNORECASE,
)

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}


@dataclass(frozen=True)
class DateCandidate:
    """A raw date mention before year resolution.

    Attributes:
        raw: The matched substring.
        month: Month number as written (may be out of range).
        day: Day of month as written (may be out of range).
        year: Four-digit year, or ``None`` when the mention has none.
    """

    raw: str
    month: int
    day: int
    year: int | None


@dataclass(frozen=True)
class DateMatch:
    """A resolved absolute date found in a text."""

    raw: str
    day: date
    family: str


Recognizer = Callable[[str], Iterator[DateCandidate]]


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def recognize_iso(text: str) -> Iterator[DateCandidate]:
    """Yield ``YYYY-MM-DD`` mentions (years 2000-2099)."""
    for m in _ISO_RE.finditer(text):
        yield DateCandidate(m.group(0), int(m.group(2)), int(m.group(3)), int(m.group(1)))


def recognize_slash(text: str) -> Iterator[DateCandidate]:
    """Yield US-style ``M/D/YY`` and ``M/D/YYYY`` mentions.

    Only a four-digit year is taken literally; two-digit years fall back
    to the reference year like a mention with no year at all.
    """
    for m in _SLASH_RE.finditer(text):
        year = m.group(3)
        yield DateCandidate(
            m.group(0),
            int(m.group(1)),
            int(m.group(2)),
            int(year) if len(year) == 4 else None,
        )


def recognize_month_name(text: str) -> Iterator[DateCandidate]:
    """Yield ``Aug 29``, ``August 29, 2025`` and similar mentions."""
    for m in _MONTH_NAME_RE.finditer(text):
        month = _MONTHS[m.group(1)[:3].lower()]
        year = m.group(3)
        yield DateCandidate(m.group(0), month, int(m.group(2)), int(year) if year else None)


RECOGNIZERS: tuple[tuple[str, Recognizer], ...] = (
    ("iso", recognize_iso),
    ("slash", recognize_slash),
    ("month-name", recognize_month_name),
)


def resolve_candidate(candidate: DateCandidate, reference: datetime) -> date | None:
    """Turn a candidate into a calendar date, or ``None`` to drop it.

    Args:
        candidate: The raw mention.
        reference: Local "now".  Supplies the year for year-less mentions;
            a year-less date whose midnight is strictly before *reference*
            moves to the following year.

    Returns:
        The resolved date, or ``None`` for impossible dates and years
        before :data:`MIN_YEAR`.
    """
    try:
        if candidate.year is not None:
            resolved = date(candidate.year, candidate.month, candidate.day)
        else:
            resolved = date(reference.year, candidate.month, candidate.day)
            if datetime.combine(resolved, datetime.min.time()) < reference:
                resolved = date(reference.year + 1, candidate.month, candidate.day)
    except ValueError:
        return None

    if resolved.year < MIN_YEAR:
        return None
    return resolved


def find_absolute_dates(text: str, reference: datetime) -> list[DateMatch]:
    """Find every absolute date in *text*, in recognizer priority order.

    Args:
        text: Normalized text (see :func:`normalize_text`).
        reference: Local "now" used for year resolution.

    Returns:
        Resolved matches; unparseable and stale mentions are omitted.
    """
    matches: list[DateMatch] = []
    for family, recognizer in RECOGNIZERS:
        for candidate in recognizer(text):
            resolved = resolve_candidate(candidate, reference)
            if resolved is not None:
                matches.append(DateMatch(raw=candidate.raw, day=resolved, family=family))
    return matches
