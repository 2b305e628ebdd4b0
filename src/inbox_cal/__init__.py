"""inbox-cal: email text to calendar-ready items.

Extracts deadlines and meetings from plain email text with deterministic
date/time rules, falls back to a generative model when the rules find
nothing, and arbitrates between the two.
"""

from __future__ import annotations

from inbox_cal.arbiter import Arbiter, Strategy, extract_either_or, extract_smart
from inbox_cal.batch import BatchResult, extract_batch
from inbox_cal.clients import GeminiClient, OllamaClient, TextGenerationClient
from inbox_cal.dedup import dedupe_last_write, merge_by_confidence
from inbox_cal.exceptions import LLMServiceError, MalformedResponseError
from inbox_cal.llm import LLMExtractor
from inbox_cal.models import (
    Event,
    ExtractedItem,
    ExtractionRequest,
    ExtractionResult,
)
from inbox_cal.rules import extract_deadlines, extract_rules

__version__ = "0.1.0"

__all__ = [
    "Arbiter",
    "BatchResult",
    "Event",
    "ExtractedItem",
    "ExtractionRequest",
    "ExtractionResult",
    "GeminiClient",
    "LLMExtractor",
    "LLMServiceError",
    "MalformedResponseError",
    "OllamaClient",
    "Strategy",
    "TextGenerationClient",
    "dedupe_last_write",
    "extract_batch",
    "extract_deadlines",
    "extract_either_or",
    "extract_rules",
    "extract_smart",
    "merge_by_confidence",
]
