"""De-duplication of extracted items by identity key ``(title, start)``.

Two policies:

- :func:`dedupe_last_write` -- within one rules pass, a later item with
  the same key replaces the earlier one.
- :func:`merge_by_confidence` -- across passes, the item with strictly
  higher confidence replaces the one already present; ties keep the
  existing item.  A missing confidence counts as 0.
"""

from __future__ import annotations

from collections.abc import Iterable

from inbox_cal.models.items import ExtractedItem


def dedupe_last_write(items: Iterable[ExtractedItem]) -> list[ExtractedItem]:
    """Collapse items sharing a key; the last one written wins.

    Output order is first-insertion order of each key (``dict`` semantics).
    """
    by_key: dict[tuple[str, str], ExtractedItem] = {}
    for item in items:
        by_key[item.key] = item
    return list(by_key.values())


def merge_by_confidence(*batches: Iterable[ExtractedItem]) -> list[ExtractedItem]:
    """Merge *batches* in order, preferring higher confidence on collisions."""
    by_key: dict[tuple[str, str], ExtractedItem] = {}
    for batch in batches:
        for item in batch:
            previous = by_key.get(item.key)
            if previous is None or (item.confidence or 0.0) > (previous.confidence or 0.0):
                by_key[item.key] = item
    return list(by_key.values())
