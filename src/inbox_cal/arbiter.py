"""Arbitration between the rules pass and the LLM fallback.

Two policies are available behind one :class:`Arbiter`, selected per call
through :class:`Strategy`:

``MERGE`` (:func:`extract_smart`, driven by ``mode``)
    ``"rules"`` runs only the rules pass.  ``"llm"`` runs only the LLM;
    a failed LLM call yields ``[]`` and is *not* replaced by rules.
    ``"auto"`` returns the rules items as soon as there is at least one;
    only an empty rules pass triggers the LLM, whose items are merged in
    with the higher-confidence-wins rule.

``EITHER_OR`` (:func:`extract_either_or`, driven by ``llm_first``)
    Pure failover, never a merge.  With ``llm_first`` the LLM result is
    returned if it is neither degraded nor empty, otherwise the rules
    result.  Without it the rules result is returned if non-empty,
    otherwise the LLM result.
"""

from __future__ import annotations

import logging
from enum import Enum

from inbox_cal.dedup import merge_by_confidence
from inbox_cal.llm import LLMExtractor
from inbox_cal.models.extraction import ExtractionResult
from inbox_cal.models.items import ExtractedItem
from inbox_cal.models.request import ExtractionRequest, Mode
from inbox_cal.rules.clock import resolve_reference
from inbox_cal.rules.extractor import RULES_CONFIDENCE, extract_deadlines, extract_rules
from inbox_cal.rules.times import to_local_iso

logger = logging.getLogger(__name__)


class Strategy(str, Enum):
    """Arbitration policy."""

    MERGE = "merge"
    EITHER_OR = "either-or"


def _prefixed(item: ExtractedItem, subject: str) -> ExtractedItem:
    return item.with_title_prefix(subject) if subject else item


async def extract_smart(
    subject: str,
    body: str,
    now_iso: str | None = None,
    mode: Mode = "auto",
    *,
    llm: LLMExtractor,
    timezone: str | None = None,
    budget_ms: int | None = None,
) -> list[ExtractedItem]:
    """Merge strategy for one email.

    Rules items are prefixed with ``[subject]`` and given confidence
    :data:`~inbox_cal.rules.extractor.RULES_CONFIDENCE`; LLM items get the
    same prefix.

    Args:
        subject: Email subject (title prefix; no prefix when empty).
        body: Plain-text body.
        now_iso: Local reference time.
        mode: ``"rules"``, ``"llm"`` or ``"auto"``.
        llm: The fallback extractor.
        timezone: IANA timezone for the reference time and the LLM prompt
            (the extractor's default when ``None``).
        budget_ms: LLM timeout override.

    Returns:
        The selected or merged items.
    """
    now = resolve_reference(now_iso, timezone)

    if mode == "llm":
        llm_items = await llm.extract_tasks_with_subject_prefix(
            subject, body, now_iso or to_local_iso(now), budget_ms, timezone
        )
        return merge_by_confidence(llm_items)

    rules_items = [
        _prefixed(item, subject).model_copy(
            update={"source": item.source or "rules", "confidence": RULES_CONFIDENCE}
        )
        for item in extract_deadlines([body], now)
    ]

    if mode == "rules" or rules_items:
        logger.info("Rules produced %d item(s) (mode=%s)", len(rules_items), mode)
        return rules_items

    logger.info("Rules produced nothing, consulting LLM")
    llm_items = await llm.extract_tasks_with_subject_prefix(
        subject, body, now_iso or to_local_iso(now), budget_ms, timezone
    )
    return merge_by_confidence(rules_items, llm_items)


async def extract_either_or(
    text: str,
    timezone: str | None = None,
    reference_date: str | None = None,
    llm_first: bool = False,
    budget_ms: int | None = None,
    *,
    llm: LLMExtractor,
) -> ExtractionResult:
    """Either/or strategy: return exactly one path's result, unmerged."""
    zone = timezone or llm.timezone

    if llm_first:
        result = await llm.extract_events(text, zone, reference_date, budget_ms)
        if not result.degraded and result.events:
            return result
        logger.info("LLM result unusable (degraded=%s), using rules", result.degraded)
        return extract_rules(text, zone, reference_date)

    rules = extract_rules(text, zone, reference_date)
    if rules.events:
        return rules
    logger.info("Rules produced nothing, using LLM")
    return await llm.extract_events(text, zone, reference_date, budget_ms)


class Arbiter:
    """Runs one :class:`ExtractionRequest` under the selected strategy.

    Args:
        llm: The fallback extractor shared by both strategies.
    """

    def __init__(self, llm: LLMExtractor) -> None:
        self._llm = llm

    @staticmethod
    def strategy_for(request: ExtractionRequest) -> Strategy:
        """``EITHER_OR`` when the request sets ``llm_first``, else ``MERGE``."""
        return Strategy.EITHER_OR if request.uses_either_or else Strategy.MERGE

    async def run(
        self,
        request: ExtractionRequest,
        strategy: Strategy | None = None,
    ) -> list[ExtractedItem] | ExtractionResult:
        """Extract from *request*.

        Args:
            request: The record to process.
            strategy: Explicit policy; inferred from *request* when ``None``.

        Returns:
            A list of items under ``MERGE``; an :class:`ExtractionResult`
            under ``EITHER_OR``.
        """
        chosen = strategy or self.strategy_for(request)
        if chosen is Strategy.EITHER_OR:
            return await extract_either_or(
                request.text,
                request.timezone,
                request.reference_iso,
                llm_first=bool(request.llm_first),
                budget_ms=request.budget_ms,
                llm=self._llm,
            )
        return await extract_smart(
            request.subject,
            request.text,
            request.reference_iso,
            request.mode,
            llm=self._llm,
            timezone=request.timezone,
            budget_ms=request.budget_ms,
        )
