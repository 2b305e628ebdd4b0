"""Deterministic, pattern-based extraction pass.

For each text:

1. normalize whitespace;
2. collect every absolute date (ISO, slash, month-name) and emit one item
   per date -- if any absolute date is found, relative cues in that text
   are ignored;
3. otherwise try ``tomorrow``, then a weekday name.

Each resolved day gets its start/end from :func:`~inbox_cal.rules.times.resolve_times`.
Items are de-duplicated by ``(title, start)`` with last-write-wins.  This
pass never raises on odd input; unusable mentions are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from inbox_cal.dedup import dedupe_last_write
from inbox_cal.models.extraction import Event, ExtractionResult
from inbox_cal.models.items import ExtractedItem
from inbox_cal.rules.clock import resolve_reference
from inbox_cal.rules.items import build_item
from inbox_cal.rules.patterns import find_absolute_dates, normalize_text
from inbox_cal.rules.relative import resolve_relative
from inbox_cal.rules.times import resolve_times

logger = logging.getLogger(__name__)

SOURCE_ABSOLUTE = "absolute"
RULES_CONFIDENCE = 0.75


def extract_from_text(raw: str, now: datetime) -> list[ExtractedItem]:
    """Extract items from a single text (not yet de-duplicated)."""
    text = normalize_text(raw)
    if not text:
        return []

    matches = find_absolute_dates(text, now)
    if matches:
        return [
            build_item(text, resolve_times(match.day, text), SOURCE_ABSOLUTE)
            for match in matches
        ]

    relative = resolve_relative(text, now)
    if relative is None:
        return []
    return [build_item(text, resolve_times(relative.day, text), relative.source)]


def extract_deadlines(texts: Iterable[str], now: datetime | None = None) -> list[ExtractedItem]:
    """Run one rules pass over a batch of texts.

    Args:
        texts: Plain texts (subject lines, bodies, snippets).
        now: Naive local reference time.  Defaults to the current time.

    Returns:
        De-duplicated items in generation order.
    """
    reference = now or datetime.now()
    items: list[ExtractedItem] = []
    for raw in texts:
        items.extend(extract_from_text(raw, reference))

    result = dedupe_last_write(items)
    logger.debug("Rules pass produced %d item(s) (%d before de-dup)", len(result), len(items))
    return result


def extract_rules(
    text: str,
    timezone: str | None = None,
    reference_date: str | None = None,
) -> ExtractionResult:
    """Run the rules pass on one text and wrap it in the event envelope.

    Every event is tagged ``source="rules"`` with confidence
    :data:`RULES_CONFIDENCE`.  The result is never degraded.
    """
    now = resolve_reference(reference_date, timezone)
    events = [
        Event(
            title=item.title,
            start=item.start_iso,
            end=item.end_iso,
            all_day=bool(item.all_day),
            timezone=timezone,
            source="rules",
            confidence=RULES_CONFIDENCE,
        )
        for item in extract_deadlines([text], now)
    ]
    return ExtractionResult(events=events, degraded=False, warnings=[])
