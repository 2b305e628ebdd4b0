"""The calendar-ready item produced by both extraction paths.

:class:`ExtractedItem` is the shape consumed by the calendar-file
serializer and the HTTP responder.  Python code uses snake_case field
names; JSON output uses the camelCase aliases (``startISO``, ``endISO``,
``allDay``) that those consumers expect.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExtractedItem(BaseModel):
    """A single calendar-ready item.

    Timestamps are local wall-clock strings (``YYYY-MM-DDTHH:MM:SS``, no
    offset) interpreted in the assumed local timezone.

    Attributes:
        title: Category-tagged title, optionally prefixed with the subject.
        description: Snippet of the source text (at most 280 characters
            plus an ellipsis marker).
        start_iso: Start timestamp.
        end_iso: End timestamp, or ``None``.
        all_day: Whether the item spans the whole day.
        source: Tag of the producing strategy (``"absolute"``,
            ``"relative"``, ``"weekday"``, ``"rules"`` or ``"llm"``).
        confidence: Heuristic trust score used only to break merge ties.
        location: Location reported by the LLM, if any.
        url: URL reported by the LLM, if any.
        attendees: Attendee names reported by the LLM, if any.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    description: str | None = None
    start_iso: str = Field(alias="startISO")
    end_iso: str | None = Field(default=None, alias="endISO")
    all_day: bool | None = Field(default=None, alias="allDay")
    source: str = "rules"
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    location: str | None = None
    url: str | None = None
    attendees: list[str] | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity key used for de-duplication: ``(title, start_iso)``."""
        return (self.title, self.start_iso)

    def with_title_prefix(self, prefix: str) -> ExtractedItem:
        """Return a copy whose title is ``"[<prefix>] <title>"``."""
        return self.model_copy(update={"title": f"[{prefix}] {self.title}"})

    def to_json_dict(self) -> dict:
        """Serialize with camelCase aliases, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
