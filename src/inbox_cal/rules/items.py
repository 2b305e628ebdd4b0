"""Title and description helpers for rules-produced items."""

from __future__ import annotations

import re

from inbox_cal.models.items import ExtractedItem
from inbox_cal.rules.times import TimeSlot, to_local_iso

TITLE_LENGTH = 120
SNIPPET_LENGTH = 280
ELLIPSIS = "…"

_DEADLINE_WORDS_RE = re.compile(
    r"(deadline|due|submit|deliver|send|by|meeting|call|review|follow[- ]?up)",
    re.IGNORECASE,
)


def category_for(text: str) -> str:
    """``"Deadline"`` if *text* contains a deadline keyword, else ``"Task"``.

    Keywords match anywhere, including inside longer words.
    """
    return "Deadline" if _DEADLINE_WORDS_RE.search(text) else "Task"


def make_title(text: str) -> str:
    """Build ``"<Category>: <first 120 chars>"`` from normalized *text*."""
    return f"{category_for(text)}: {text[:TITLE_LENGTH]}"


def make_snippet(text: str) -> str:
    """Return the first 280 characters of *text*, with an ellipsis if cut."""
    if len(text) > SNIPPET_LENGTH:
        return text[:SNIPPET_LENGTH] + ELLIPSIS
    return text


def build_item(text: str, slot: TimeSlot, source: str) -> ExtractedItem:
    """Assemble an :class:`ExtractedItem` for one resolved mention."""
    return ExtractedItem(
        title=make_title(text),
        description=make_snippet(text),
        start_iso=to_local_iso(slot.start),
        end_iso=to_local_iso(slot.end),
        source=source,
    )
