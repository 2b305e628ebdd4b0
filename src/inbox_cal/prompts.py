"""Prompt builders for the LLM fallback extractor.

Two answer shapes are requested:

- the *task* prompt (:func:`build_task_prompt`) asks for
  ``{"tasks": [...]}`` with local timestamps and feeds the merge strategy;
- the *event* prompt (:func:`build_event_prompt`) asks for
  ``{"events": [...], "warnings": [...]}`` and feeds the either/or
  strategy.

Both end with an explicit description of the expected JSON so small local
models have the schema in front of them.
"""

from __future__ import annotations

DEFAULT_TIMEZONE = "America/Toronto"


def build_system_prompt(timezone: str = DEFAULT_TIMEZONE) -> str:
    """Build the fixed instructions that open the task prompt.

    Args:
        timezone: IANA timezone the model should assume for local times.

    Returns:
        The instruction block, including one worked example.
    """
    return f"""\
You convert emails into calendar-ready tasks/events.

Rules:
- Output ONLY JSON that matches the provided schema (no prose, no markdown).
- Use the user's local timezone: {timezone}.
- Resolve relative dates like "tomorrow", "next Tuesday", "EOD Friday".
- Prefer clear date/time info in the SUBJECT over vague hints in the BODY.
- If uncertain, return an empty list (no guessing).
- Titles should be short and actionable.
- Default duration: 30 minutes if a start time exists and no end time is given.
- If "EOD", set start=17:00 and end=23:59 on the same day.
- Return local times like 2025-08-29T13:00 or 2025-08-29T13:00:00 (no timezone suffix).

EXAMPLE INPUT:
SUBJECT: Team sync Friday 1-2pm
BODY:
See you there. Room 204.

EXAMPLE OUTPUT:
{{"tasks":[{{"title":"Meeting","description":"Team sync Friday 1-2pm","startISO":"2025-08-29T13:00","endISO":"2025-08-29T14:00","location":"Room 204","source":"llm","confidence":0.8}}]}}
"""


_TASK_SCHEMA = """\
SCHEMA (TypeScript):
{
  "tasks": [
    {
      "title": "string",
      "description": "string (optional)",
      "startISO": "YYYY-MM-DDTHH:mm or YYYY-MM-DDTHH:mm:00 (local)",
      "endISO": "YYYY-MM-DDTHH:mm or YYYY-MM-DDTHH:mm:00 (local, optional)",
      "allDay": "boolean (optional)",
      "location": "string (optional)",
      "url": "string (optional)",
      "attendees": "string[] (optional)",
      "source": "llm",
      "confidence": 0.0-1.0
    }
  ]
}

Return ONLY JSON."""


def build_user_prompt(subject: str, body: str, now_iso: str | None = None) -> str:
    """Build the per-email context and schema section of the task prompt.

    Args:
        subject: Cleaned subject line.
        body: Plain-text body.
        now_iso: Local "now"; omitted from the prompt when ``None``.
    """
    now_line = f"NOW (local): {now_iso}\n\n" if now_iso else ""
    return f"{now_line}SUBJECT: {subject}\n\nBODY:\n{body}\n\n{_TASK_SCHEMA}"


def build_task_prompt(
    subject: str,
    body: str,
    now_iso: str | None = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> str:
    """Build the complete task prompt (instructions + email + schema)."""
    return f"{build_system_prompt(timezone)}\n\n{build_user_prompt(subject, body, now_iso)}"


def build_event_prompt(text: str, timezone: str, reference_date: str | None = None) -> str:
    """Build the prompt for the ``{"events": [...]}`` answer shape.

    Args:
        text: The text to extract from.
        timezone: IANA timezone passed to the model as context.
        reference_date: Reference date for relative mentions, if known.
    """
    return f"""\
You are an extraction engine. Extract calendar events from the given text.
- Resolve relative dates using the reference date if provided.
- Output ONLY valid, minified JSON with this exact schema:
{{"events":[{{"title":"string","start":"ISO","end":"ISO?","allDay":"boolean?"}}], "warnings":["string"]}}

Rules:
- "start" and "end" must be ISO 8601 (include timezone offset or Z).
- If unsure about end time, omit "end".
- If the date is clearly all-day, set "allDay": true.
- Do NOT include any additional fields.
- Do NOT include any explanations or code fences.

Context:
- timezone: {timezone}
- referenceDate: {reference_date or "none"}

TEXT:
{text}"""
