"""Pydantic models for the event envelope and raw LLM output.

Defines:

- :class:`Event` -- a calendar event in the envelope shape returned by the
  either/or strategy.
- :class:`ExtractionResult` -- the ``{events, degraded, warnings}``
  envelope.  ``events`` is never ``None``.
- :class:`LLMTask` / :class:`LLMTaskResponse` -- strict schema for the
  ``{"tasks": [...]}`` answer requested by the task prompt.
- :class:`LLMEvent` / :class:`LLMEventResponse` -- looser schema for the
  ``{"events": [...]}`` answer requested by the event prompt.
"""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

# YYYY-MM-DDTHH:mm with optional :ss and optional trailing Z.
ISO_LIKE_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2})?Z?$"

DEFAULT_TASK_CONFIDENCE = 0.5
DEFAULT_EVENT_CONFIDENCE = 0.6

# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """A calendar event in the envelope shape.

    Attributes:
        title: Human-readable title (becomes the calendar SUMMARY).
        start: ISO 8601 start instant.
        end: ISO 8601 end instant, never earlier than *start*.
        all_day: Whether the event is date-only.
        timezone: IANA timezone the event was resolved in.
        source: ``"rules"`` or ``"llm"``.
        confidence: Trust score in [0, 1].
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str
    start: str
    end: str | None = None
    all_day: bool = Field(default=False, alias="allDay")
    timezone: str | None = None
    source: Literal["rules", "llm"]
    confidence: float = Field(default=DEFAULT_EVENT_CONFIDENCE, ge=0.0, le=1.0)


class ExtractionResult(BaseModel):
    """Envelope for one extraction call.

    Attributes:
        events: Extracted events (possibly empty, never ``None``).
        degraded: ``True`` iff the LLM fallback failed open.
        warnings: Non-fatal, human-readable notes (e.g. a timeout reason).
    """

    events: list[Event] = Field(default_factory=list)
    degraded: bool = False
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def degraded_result(cls, reason: str) -> ExtractionResult:
        """Build the empty degraded result carrying *reason* as its warning."""
        return cls(events=[], degraded=True, warnings=[reason])

    def to_json_dict(self) -> dict:
        """Serialize with camelCase aliases, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Task-shaped LLM output
# ---------------------------------------------------------------------------


class LLMTask(BaseModel):
    """A single task in the ``{"tasks": [...]}`` LLM answer.

    Timestamps must look like ``YYYY-MM-DDTHH:mm`` with optional seconds
    and an optional trailing ``Z``; they are normalized after validation.
    A missing confidence defaults to 0.5 and out-of-range values are
    clamped into [0, 1].
    """

    title: str = Field(min_length=3)
    description: str | None = None
    startISO: str = Field(pattern=ISO_LIKE_PATTERN)
    endISO: str | None = Field(default=None, pattern=ISO_LIKE_PATTERN)
    allDay: bool | None = None
    location: str | None = None
    url: HttpUrl | None = None
    attendees: list[str] | None = None
    source: Literal["llm"] = "llm"
    confidence: float = Field(default=DEFAULT_TASK_CONFIDENCE, ge=0.0, le=1.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def _default_and_clamp(cls, value: object) -> object:
        # Numeric strings are coerced too; anything else fails validation.
        if value is None:
            return DEFAULT_TASK_CONFIDENCE
        if isinstance(value, bool):
            return value
        try:
            number = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return value
        if math.isnan(number):
            return DEFAULT_TASK_CONFIDENCE
        return min(max(number, 0.0), 1.0)


class LLMTaskResponse(BaseModel):
    """Top-level ``{"tasks": [...]}`` schema."""

    tasks: list[LLMTask] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Event-shaped LLM output
# ---------------------------------------------------------------------------


class LLMEvent(BaseModel):
    """A single event in the ``{"events": [...]}`` LLM answer.

    Timestamps are only checked for presence here; whether they parse is
    decided during sanitization, where bad events are dropped one by one.
    """

    title: str = Field(min_length=1)
    start: str = Field(min_length=1)
    end: str | None = Field(default=None, min_length=1)
    allDay: bool | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class LLMEventResponse(BaseModel):
    """Top-level ``{"events": [...], "warnings": [...]}`` schema."""

    events: list[LLMEvent] = Field(default_factory=list)
    warnings: list[str] | None = None
