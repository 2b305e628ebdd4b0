"""Reference-time handling for the local wall-clock model.

Every extraction works on naive ``datetime`` values that represent wall
time in one assumed timezone.  :func:`resolve_reference` turns the
caller's optional reference timestamp and timezone into that value.
"""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def _zone(timezone: str | None) -> ZoneInfo | None:
    if not timezone:
        return None
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using system local time", timezone)
        return None


def resolve_reference(reference_iso: str | None = None, timezone: str | None = None) -> datetime:
    """Return the naive local "now" for an extraction call.

    Args:
        reference_iso: ISO 8601 reference timestamp.  A naive value is
            taken as local wall time; an offset-aware value is converted
            into *timezone* (when given) before the offset is dropped.
            Unparseable values are logged and replaced by the current time.
        timezone: IANA timezone name for the local wall clock.

    Returns:
        A naive :class:`~datetime.datetime`.
    """
    zone = _zone(timezone)

    if reference_iso:
        try:
            parsed = datetime.fromisoformat(reference_iso)
        except ValueError:
            logger.warning("Ignoring unparseable reference time %r", reference_iso)
        else:
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(zone) if zone else parsed.astimezone()
            return parsed.replace(tzinfo=None)

    return datetime.now(zone).replace(tzinfo=None)
