"""LLM fallback extractor.

Builds a prompt, calls a :class:`~inbox_cal.clients.TextGenerationClient`
under a cancellable timeout, then extracts, validates and normalizes the
JSON answer.  Every failure -- timeout, connection error, non-success
status, unparseable JSON, schema mismatch -- is turned into a *degraded*
result (no items, ``degraded=True``, one warning) instead of an
exception, so callers can fall back to the rules output.

Two answer shapes are supported (see :mod:`inbox_cal.prompts`):

- :meth:`LLMExtractor.extract_tasks` -- ``{"tasks": [...]}``, strictly
  validated, timestamps normalized to ``YYYY-MM-DDTHH:MM:SS``, default
  confidence 0.5.
- :meth:`LLMExtractor.extract_events` -- ``{"events": [...]}``, loosely
  validated then sanitized event by event, default confidence 0.6.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ValidationError

from inbox_cal.clients import TextGenerationClient
from inbox_cal.exceptions import LLMServiceError, MalformedResponseError
from inbox_cal.models.extraction import (
    DEFAULT_EVENT_CONFIDENCE,
    Event,
    ExtractionResult,
    LLMEvent,
    LLMEventResponse,
    LLMTask,
    LLMTaskResponse,
)
from inbox_cal.models.items import ExtractedItem
from inbox_cal.prompts import DEFAULT_TIMEZONE, build_event_prompt, build_task_prompt

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_MS = 6000
MIN_BUDGET_MS = 1000
MAX_BUDGET_MS = 20000

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_MINUTES_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")

_ModelT = TypeVar("_ModelT", bound=BaseModel)


@dataclass
class TaskExtraction:
    """Outcome of :meth:`LLMExtractor.extract_tasks`.

    Attributes:
        items: Validated, normalized items (empty when degraded).
        degraded: ``True`` if the call or the parsing failed.
        warnings: Failure reasons or other notes.
    """

    items: list[ExtractedItem] = field(default_factory=list)
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def clamp_budget(budget_ms: int) -> int:
    """Clamp a timeout budget into [1000, 20000] milliseconds."""
    return max(MIN_BUDGET_MS, min(budget_ms, MAX_BUDGET_MS))


def extract_json_block(text: str) -> str:
    """Pull a JSON object out of a response that may contain prose.

    Tries, in order: the whole trimmed text if it is already ``{...}``;
    the contents of the first fenced code block; the slice from the first
    ``{`` to the last ``}``.  Otherwise returns the trimmed text unchanged
    and lets JSON parsing fail.
    """
    trimmed = text.strip()
    if trimmed.startswith("{") and trimmed.endswith("}"):
        return trimmed

    fence = _FENCE_RE.search(trimmed)
    if fence:
        return fence.group(1).strip()

    first = trimmed.find("{")
    last = trimmed.rfind("}")
    if first >= 0 and last > first:
        return trimmed[first : last + 1].strip()

    return trimmed


def normalize_iso_local(value: str) -> str:
    """Drop a trailing ``Z`` and pad ``HH:mm`` timestamps with ``:00``."""
    no_z = value[:-1] if value.endswith("Z") else value
    if _MINUTES_ONLY_RE.match(no_z):
        return f"{no_z}:00"
    return no_z


def parse_json_as(raw: str, model: type[_ModelT]) -> _ModelT:
    """Extract, decode and validate a JSON answer against *model*.

    Raises:
        MalformedResponseError: If the JSON is invalid or does not match
            the schema.
    """
    if not raw or not raw.strip():
        raise MalformedResponseError("Empty response from LLM", raw_response=raw or "")

    try:
        data = json.loads(extract_json_block(raw))
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"Invalid JSON: {exc}", raw_response=raw) from exc

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Schema validation failed: {exc}", raw_response=raw
        ) from exc


def _parse_instant(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _comparable(value: datetime, zone: ZoneInfo | None) -> datetime:
    # Naive values are local wall time in the event's timezone.
    if value.tzinfo is None:
        return value.replace(tzinfo=zone) if zone else value
    return value if zone else value.astimezone().replace(tzinfo=None)


def _zone_or_none(timezone: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def sanitize_event(event: LLMEvent, timezone: str) -> Event | None:
    """Turn one validated LLM event into an envelope :class:`Event`.

    Returns ``None`` (drop the event) if *start*, or a present *end*, is
    not a parseable ISO 8601 instant.  An *end* earlier than *start* is
    removed and the start-only event kept.  A missing confidence
    defaults to 0.6.
    """
    start = _parse_instant(event.start)
    if start is None:
        return None

    end_text = event.end
    if end_text is not None:
        end = _parse_instant(end_text)
        if end is None:
            return None
        zone = _zone_or_none(timezone)
        if _comparable(end, zone) < _comparable(start, zone):
            end_text = None

    confidence = event.confidence if event.confidence is not None else DEFAULT_EVENT_CONFIDENCE

    return Event(
        title=event.title.strip() or "Untitled",
        start=event.start,
        end=end_text,
        all_day=bool(event.allDay),
        timezone=timezone,
        source="llm",
        confidence=confidence,
    )


def task_to_item(task: LLMTask) -> ExtractedItem:
    """Map a validated task to an :class:`ExtractedItem` with local timestamps."""
    return ExtractedItem(
        title=task.title,
        description=task.description,
        start_iso=normalize_iso_local(task.startISO),
        end_iso=normalize_iso_local(task.endISO) if task.endISO else None,
        all_day=task.allDay,
        source="llm",
        confidence=task.confidence,
        location=task.location,
        url=str(task.url) if task.url is not None else None,
        attendees=task.attendees,
    )


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class LLMExtractor:
    """Generative-model fallback extractor.

    All external configuration arrives through the constructor; nothing
    is read from the environment here.

    Args:
        client: The text-generation service client.
        model: Model name override passed on every call (``None`` lets
            the client use its own default).
        budget_ms: Default timeout budget, clamped to [1000, 20000] ms.
        timezone: Default IANA timezone for prompts and events.
        options: Generation options forwarded to the client.
    """

    def __init__(
        self,
        client: TextGenerationClient,
        model: str | None = None,
        budget_ms: int = DEFAULT_BUDGET_MS,
        timezone: str = DEFAULT_TIMEZONE,
        options: dict[str, Any] | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._budget_ms = clamp_budget(budget_ms)
        self._timezone = timezone
        self._options = options if options is not None else {"temperature": 0}

    @property
    def budget_ms(self) -> int:
        return self._budget_ms

    @property
    def timezone(self) -> str:
        return self._timezone

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract_events(
        self,
        text: str,
        timezone: str | None = None,
        reference_date: str | None = None,
        budget_ms: int | None = None,
    ) -> ExtractionResult:
        """Extract events in the envelope shape.

        Args:
            text: Text to extract from.
            timezone: IANA timezone; defaults to the extractor's.
            reference_date: Reference date passed to the model.
            budget_ms: Per-call timeout override (clamped).

        Returns:
            An :class:`ExtractionResult`.  Empty text yields a
            non-degraded empty result with an ``"empty text"`` warning.
            Failures yield :meth:`ExtractionResult.degraded_result`.
        """
        raw_text = (text or "").strip()
        if not raw_text:
            return ExtractionResult(events=[], degraded=False, warnings=["empty text"])

        zone_name = timezone or self._timezone
        prompt = build_event_prompt(raw_text, zone_name, reference_date)

        outcome = await self._call(prompt, budget_ms)
        if isinstance(outcome, _Failure):
            return ExtractionResult.degraded_result(outcome.reason)

        try:
            parsed = parse_json_as(outcome, LLMEventResponse)
        except MalformedResponseError as exc:
            logger.warning("Degraded LLM extraction: %s", exc)
            return ExtractionResult.degraded_result(str(exc))

        events = [
            event
            for event in (sanitize_event(e, zone_name) for e in parsed.events)
            if event is not None
        ]
        dropped = len(parsed.events) - len(events)
        if dropped:
            logger.info("Dropped %d LLM event(s) with unparseable timestamps", dropped)
        logger.info("LLM extracted %d event(s)", len(events))
        return ExtractionResult(events=events, degraded=False, warnings=parsed.warnings or [])

    async def extract_tasks(
        self,
        subject: str,
        body: str,
        now_iso: str | None = None,
        budget_ms: int | None = None,
        timezone: str | None = None,
    ) -> TaskExtraction:
        """Extract task-shaped items from one email.

        Args:
            subject: Email subject.
            body: Plain-text body.
            now_iso: Local "now" passed to the model.
            budget_ms: Per-call timeout override (clamped).
            timezone: IANA timezone for the prompt; defaults to the
                extractor's.

        Returns:
            A :class:`TaskExtraction`; on failure ``items`` is empty,
            ``degraded`` is ``True`` and the reason is in ``warnings``.
        """
        if not (subject or "").strip() and not (body or "").strip():
            return TaskExtraction(warnings=["empty text"])

        prompt = build_task_prompt(subject, body, now_iso, timezone or self._timezone)

        outcome = await self._call(prompt, budget_ms)
        if isinstance(outcome, _Failure):
            return TaskExtraction(degraded=True, warnings=[outcome.reason])

        try:
            parsed = parse_json_as(outcome, LLMTaskResponse)
        except MalformedResponseError as exc:
            logger.warning("Degraded LLM extraction: %s", exc)
            return TaskExtraction(degraded=True, warnings=[str(exc)])

        try:
            items = [task_to_item(task) for task in parsed.tasks]
        except ValidationError as exc:
            logger.warning("Degraded LLM extraction: unusable task: %s", exc)
            return TaskExtraction(degraded=True, warnings=[f"Schema validation failed: {exc}"])

        logger.info("LLM extracted %d task(s)", len(items))
        return TaskExtraction(items=items)

    async def extract_tasks_with_subject_prefix(
        self,
        subject: str,
        body: str,
        now_iso: str | None = None,
        budget_ms: int | None = None,
        timezone: str | None = None,
    ) -> list[ExtractedItem]:
        """Run :meth:`extract_tasks` and prefix titles with ``[subject]`` (if any)."""
        extraction = await self.extract_tasks(subject, body, now_iso, budget_ms, timezone)
        if not subject:
            return extraction.items
        return [item.with_title_prefix(subject) for item in extraction.items]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(self, prompt: str, budget_ms: int | None) -> str | _Failure:
        """Call the client under the timeout budget.

        Returns the raw response text, or a :class:`_Failure` describing
        why no text is available.  Caller cancellation still propagates.
        """
        timeout_ms = clamp_budget(budget_ms) if budget_ms is not None else self._budget_ms
        logger.debug("LLM prompt (budget %dms):\n%s", timeout_ms, prompt)

        try:
            async with asyncio.timeout(timeout_ms / 1000):
                raw = await self._client.generate(
                    prompt, model=self._model, options=dict(self._options)
                )
        except TimeoutError:
            reason = f"llm timeout after {timeout_ms}ms"
        except (LLMServiceError, MalformedResponseError) as exc:
            reason = str(exc) or exc.__class__.__name__
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected LLM client failure")
            reason = f"llm error: {exc}"
        else:
            logger.debug("Raw LLM response:\n%s", raw)
            return raw

        logger.warning("Degraded LLM extraction: %s", reason)
        return _Failure(reason)


@dataclass(frozen=True)
class _Failure:
    reason: str
