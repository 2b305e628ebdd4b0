"""Deterministic date/time extraction rules."""

from __future__ import annotations

from inbox_cal.rules.extractor import (
    RULES_CONFIDENCE,
    extract_deadlines,
    extract_from_text,
    extract_rules,
)

__all__ = [
    "RULES_CONFIDENCE",
    "extract_deadlines",
    "extract_from_text",
    "extract_rules",
]
