"""Unit tests for the LLM fallback extractor.

All tests use :class:`tests.fakes.FakeClient` -- no real service calls
are made.  Covers JSON block extraction, timestamp normalization, event
sanitization, the task and event answer shapes, and every degraded path
(timeout, service error, bad JSON, schema mismatch, unexpected error).
"""

from __future__ import annotations

import json
import logging
import time

import pytest

from inbox_cal.exceptions import LLMServiceError, MalformedResponseError
from inbox_cal.llm import (
    LLMExtractor,
    clamp_budget,
    extract_json_block,
    normalize_iso_local,
    sanitize_event,
)
from inbox_cal.models.extraction import LLMEvent, LLMTask
from inbox_cal.models.items import ExtractedItem
from tests.fakes import FakeClient

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _tasks_json(*tasks: dict) -> str:
    return json.dumps({"tasks": list(tasks)})


def _events_json(*events: dict, warnings: list[str] | None = None) -> str:
    data: dict = {"events": list(events)}
    if warnings is not None:
        data["warnings"] = warnings
    return json.dumps(data)


def _extractor(client: FakeClient, **kwargs: object) -> LLMExtractor:
    return LLMExtractor(client, model="phi3:mini", timezone="America/Toronto", **kwargs)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestClampBudget:
    """Budgets are clamped into [1000, 20000] ms."""

    @pytest.mark.parametrize(("raw", "expected"), [(10, 1000), (6000, 6000), (90000, 20000)])
    def test_clamp(self, raw: int, expected: int) -> None:
        assert clamp_budget(raw) == expected

    def test_constructor_clamps(self) -> None:
        assert _extractor(FakeClient(), budget_ms=50).budget_ms == 1000


class TestExtractJsonBlock:
    """Locating JSON inside prose or code fences."""

    def test_bare_object(self) -> None:
        assert extract_json_block('  {"tasks": []}\n') == '{"tasks": []}'

    def test_fenced_block(self) -> None:
        raw = 'Here you go:\n```json\n{"tasks": []}\n```\nAnything else?'
        assert extract_json_block(raw) == '{"tasks": []}'

    def test_fence_without_language(self) -> None:
        assert extract_json_block('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_braces_in_prose(self) -> None:
        assert extract_json_block('Sure! {"a": {"b": 1}} hope it helps') == '{"a": {"b": 1}}'

    def test_gives_up_without_braces(self) -> None:
        assert extract_json_block("  no json here ") == "no json here"


class TestNormalizeIsoLocal:
    """Every LLM timestamp leaves in ``YYYY-MM-DDTHH:MM:SS`` shape."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2025-08-29T13:00", "2025-08-29T13:00:00"),
            ("2025-08-29T13:00Z", "2025-08-29T13:00:00"),
            ("2025-08-29T13:00:15Z", "2025-08-29T13:00:15"),
            ("2025-08-29T13:00:15", "2025-08-29T13:00:15"),
        ],
    )
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_iso_local(raw) == expected


class TestSanitizeEvent:
    """Per-event sanitization of the event answer shape."""

    def test_valid_event(self) -> None:
        event = sanitize_event(
            LLMEvent(title=" Sync ", start="2025-09-01T10:00:00", end="2025-09-01T11:00:00"),
            "America/Toronto",
        )
        assert event is not None
        assert event.title == "Sync"
        assert event.end == "2025-09-01T11:00:00"
        assert event.confidence == 0.6
        assert event.source == "llm"
        assert event.timezone == "America/Toronto"
        assert event.all_day is False

    def test_unparseable_start_dropped(self) -> None:
        assert sanitize_event(LLMEvent(title="x", start="next week"), "UTC") is None

    def test_unparseable_end_dropped(self) -> None:
        event = LLMEvent(title="x", start="2025-09-01T10:00:00", end="later")
        assert sanitize_event(event, "UTC") is None

    def test_end_before_start_keeps_start_only(self) -> None:
        event = sanitize_event(
            LLMEvent(title="x", start="2025-09-01T10:00:00", end="2025-09-01T09:00:00"),
            "UTC",
        )
        assert event is not None
        assert event.start == "2025-09-01T10:00:00"
        assert event.end is None

    def test_mixed_offsets_compare_as_instants(self) -> None:
        """09:00-04:00 is 13:00Z, which is after 10:00Z."""
        event = sanitize_event(
            LLMEvent(title="x", start="2025-09-01T10:00:00Z", end="2025-09-01T09:00:00-04:00"),
            "America/Toronto",
        )
        assert event is not None and event.end == "2025-09-01T09:00:00-04:00"

    def test_blank_title_becomes_untitled(self) -> None:
        event = sanitize_event(LLMEvent(title="   ", start="2025-09-01"), "UTC")
        assert event is not None and event.title == "Untitled"

    def test_explicit_confidence_kept(self) -> None:
        event = sanitize_event(LLMEvent(title="x", start="2025-09-01", confidence=0.2), "UTC")
        assert event is not None and event.confidence == 0.2


# ---------------------------------------------------------------------------
# Task answer shape
# ---------------------------------------------------------------------------


class TestExtractTasks:
    """``{"tasks": [...]}`` answers used by the merge strategy."""

    @pytest.mark.asyncio
    async def test_happy_path_normalizes_items(self) -> None:
        client = FakeClient(
            _tasks_json(
                {
                    "title": "Team sync",
                    "startISO": "2025-08-29T13:00",
                    "endISO": "2025-08-29T14:00Z",
                    "location": "Room 204",
                    "confidence": 0.8,
                }
            )
        )

        extraction = await _extractor(client).extract_tasks(
            "Team sync Friday 1-2pm", "See you there.", "2025-08-25T10:00:00"
        )

        assert extraction.degraded is False
        [item] = extraction.items
        assert item.title == "Team sync"
        assert item.start_iso == "2025-08-29T13:00:00"
        assert item.end_iso == "2025-08-29T14:00:00"
        assert item.location == "Room 204"
        assert item.source == "llm"
        assert item.confidence == 0.8

    @pytest.mark.asyncio
    async def test_missing_confidence_defaults_to_half(self) -> None:
        client = FakeClient(_tasks_json({"title": "Pay invoice", "startISO": "2025-09-01T09:00"}))

        extraction = await _extractor(client).extract_tasks("s", "b")

        assert extraction.items[0].confidence == 0.5

    @pytest.mark.asyncio
    async def test_prompt_carries_context_and_config(self) -> None:
        client = FakeClient()

        await _extractor(client).extract_tasks("Budget review", "Body text", "2025-08-25T10:00:00")

        [call] = client.calls
        assert "NOW (local): 2025-08-25T10:00:00" in call["prompt"]
        assert "SUBJECT: Budget review" in call["prompt"]
        assert "Body text" in call["prompt"]
        assert "America/Toronto" in call["prompt"]
        assert call["model"] == "phi3:mini"
        assert call["options"] == {"temperature": 0}

    @pytest.mark.asyncio
    async def test_fenced_answer_is_accepted(self) -> None:
        raw = "```json\n" + _tasks_json({"title": "Ship it", "startISO": "2025-09-01T09:00"}) + "\n```"

        extraction = await _extractor(FakeClient(raw)).extract_tasks("s", "b")

        assert len(extraction.items) == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_degraded(self) -> None:
        extraction = await _extractor(FakeClient("not json at all")).extract_tasks("s", "b")

        assert extraction.degraded is True
        assert extraction.items == []
        assert extraction.warnings[0].startswith("Invalid JSON")

    @pytest.mark.asyncio
    async def test_schema_mismatch_is_degraded(self) -> None:
        client = FakeClient(_tasks_json({"title": "Ship it", "startISO": "tomorrow"}))

        extraction = await _extractor(client).extract_tasks("s", "b")

        assert extraction.degraded is True
        assert extraction.warnings[0].startswith("Schema validation failed")

    @pytest.mark.asyncio
    async def test_service_error_is_degraded(self) -> None:
        client = FakeClient(LLMServiceError("LLM HTTP 500: boom", status_code=500))

        extraction = await _extractor(client).extract_tasks("s", "b")

        assert extraction.degraded is True
        assert extraction.warnings == ["LLM HTTP 500: boom"]

    @pytest.mark.asyncio
    async def test_empty_input_skips_the_call(self) -> None:
        client = FakeClient()

        extraction = await _extractor(client).extract_tasks("", "  ")

        assert client.calls == []
        assert extraction.degraded is False
        assert extraction.warnings == ["empty text"]

    @pytest.mark.asyncio
    async def test_subject_prefix(self) -> None:
        client = FakeClient(_tasks_json({"title": "Ship it", "startISO": "2025-09-01T09:00"}))

        items = await _extractor(client).extract_tasks_with_subject_prefix("Launch", "b")

        assert items[0].title == "[Launch] Ship it"

    @pytest.mark.asyncio
    async def test_empty_subject_adds_no_prefix(self) -> None:
        client = FakeClient(_tasks_json({"title": "Ship it", "startISO": "2025-09-01T09:00"}))

        items = await _extractor(client).extract_tasks_with_subject_prefix("", "b")

        assert items[0].title == "Ship it"

    @pytest.mark.asyncio
    async def test_subject_prefix_failure_is_empty(self) -> None:
        items = await _extractor(FakeClient("garbage")).extract_tasks_with_subject_prefix("L", "b")
        assert items == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("raw", "expected"), [("1.5", 1.0), (float("nan"), 0.5)])
    async def test_out_of_range_confidence_is_normalized(
        self, raw: object, expected: float
    ) -> None:
        """A string or NaN confidence never escapes the [0, 1] range."""
        client = FakeClient(
            _tasks_json({"title": "Pay invoice", "startISO": "2025-09-01T09:00", "confidence": raw})
        )

        extraction = await _extractor(client).extract_tasks("s", "no dates here")

        assert extraction.degraded is False
        assert extraction.items[0].confidence == expected

    @pytest.mark.asyncio
    async def test_unmappable_task_is_degraded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A validated task that cannot become an item degrades instead of raising."""

        def _broken(task: LLMTask) -> ExtractedItem:
            return ExtractedItem(title=task.title, start_iso=task.startISO, confidence=2.0)

        monkeypatch.setattr("inbox_cal.llm.task_to_item", _broken)
        client = FakeClient(_tasks_json({"title": "Pay invoice", "startISO": "2025-09-01T09:00"}))

        extraction = await _extractor(client).extract_tasks("s", "b")

        assert extraction.degraded is True
        assert extraction.items == []
        assert extraction.warnings[0].startswith("Schema validation failed")

    @pytest.mark.asyncio
    async def test_timezone_override_reaches_prompt(self) -> None:
        client = FakeClient()

        await _extractor(client).extract_tasks("s", "b", timezone="Europe/Paris")

        prompt = client.calls[0]["prompt"]
        assert "Use the user's local timezone: Europe/Paris." in prompt
        assert "America/Toronto" not in prompt


# ---------------------------------------------------------------------------
# Event answer shape
# ---------------------------------------------------------------------------


class TestExtractEvents:
    """``{"events": [...]}`` answers used by the either/or strategy."""

    @pytest.mark.asyncio
    async def test_happy_path(self) -> None:
        client = FakeClient(
            _events_json(
                {"title": "Demo", "start": "2025-09-02T15:00:00-04:00", "confidence": 0.9},
                {"title": "Broken", "start": "soon"},
                warnings=["assumed Tuesday"],
            )
        )

        result = await _extractor(client).extract_events(
            "Demo Tuesday 3pm", reference_date="2025-08-25"
        )

        assert result.degraded is False
        assert [e.title for e in result.events] == ["Demo"]
        assert result.events[0].confidence == 0.9
        assert result.warnings == ["assumed Tuesday"]
        assert "referenceDate: 2025-08-25" in client.calls[0]["prompt"]

    @pytest.mark.asyncio
    async def test_empty_text_is_not_degraded(self) -> None:
        client = FakeClient()

        result = await _extractor(client).extract_events("   ")

        assert client.calls == []
        assert result.events == []
        assert result.degraded is False
        assert result.warnings == ["empty text"]

    @pytest.mark.asyncio
    async def test_schema_mismatch_is_degraded(self) -> None:
        result = await _extractor(FakeClient('{"events": [{"title": "x"}]}')).extract_events("t")

        assert result.degraded is True
        assert result.events == []
        assert len(result.warnings) == 1

    @pytest.mark.asyncio
    async def test_malformed_service_body_is_degraded(self) -> None:
        client = FakeClient(MalformedResponseError("LLM body has no 'response' text"))

        result = await _extractor(client).extract_events("t")

        assert result.degraded is True
        assert result.warnings == ["LLM body has no 'response' text"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_degraded(self) -> None:
        result = await _extractor(FakeClient(RuntimeError("boom"))).extract_events("t")

        assert result.degraded is True
        assert result.warnings == ["llm error: boom"]

    @pytest.mark.asyncio
    async def test_timezone_override(self) -> None:
        client = FakeClient(_events_json({"title": "Demo", "start": "2025-09-02T15:00:00"}))

        result = await _extractor(client).extract_events("t", timezone="Europe/Paris")

        assert result.events[0].timezone == "Europe/Paris"
        assert "timezone: Europe/Paris" in client.calls[0]["prompt"]


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


class TestTimeout:
    """A slow service is cancelled at the budget and fails open."""

    @pytest.mark.asyncio
    async def test_delayed_service_degrades_within_budget(self) -> None:
        client = FakeClient(_events_json(), delay=5.0)
        extractor = _extractor(client, budget_ms=1000)

        started = time.monotonic()
        result = await extractor.extract_events("Meeting sometime")
        elapsed = time.monotonic() - started

        assert result.degraded is True
        assert result.events == []
        assert result.warnings == ["llm timeout after 1000ms"]
        assert elapsed < 1.5
        assert client.cancelled is True

    @pytest.mark.asyncio
    async def test_per_call_budget_override(self) -> None:
        client = FakeClient(_tasks_json(), delay=5.0)

        extraction = await _extractor(client).extract_tasks("s", "b", budget_ms=200)

        assert extraction.degraded is True
        assert extraction.warnings == ["llm timeout after 1000ms"]

    @pytest.mark.asyncio
    async def test_timeout_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        client = FakeClient(_events_json(), delay=5.0)

        with caplog.at_level(logging.WARNING, logger="inbox_cal.llm"):
            await _extractor(client, budget_ms=1000).extract_events("t")

        assert "llm timeout after 1000ms" in caplog.text
