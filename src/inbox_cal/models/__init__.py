"""Data models for inbox-cal."""

from __future__ import annotations

from inbox_cal.models.extraction import (
    Event,
    ExtractionResult,
    LLMEvent,
    LLMEventResponse,
    LLMTask,
    LLMTaskResponse,
)
from inbox_cal.models.items import ExtractedItem
from inbox_cal.models.request import ExtractionRequest, Mode

__all__ = [
    "Event",
    "ExtractedItem",
    "ExtractionRequest",
    "ExtractionResult",
    "LLMEvent",
    "LLMEventResponse",
    "LLMTask",
    "LLMTaskResponse",
    "Mode",
]
