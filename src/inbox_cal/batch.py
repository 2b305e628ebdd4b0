"""Concurrent processing of a batch of extraction requests.

Records are independent, so they run concurrently with no shared state.
Completion order is not submission order: each coroutine carries its
record's index and results are sorted by it before being returned.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from inbox_cal.arbiter import Arbiter
from inbox_cal.models.extraction import ExtractionResult
from inbox_cal.models.items import ExtractedItem
from inbox_cal.models.request import ExtractionRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchResult:
    """Result for one record of a batch.

    Attributes:
        index: Position of the record in the submitted batch.
        subject: The record's subject.
        mode: ``"either-or"`` for the either/or strategy, else the
            merge-strategy mode.
        result: Items (merge strategy) or an envelope (either/or).
    """

    index: int
    subject: str
    mode: str
    result: list[ExtractedItem] | ExtractionResult

    def to_json_dict(self) -> dict:
        """Serialize for JSON output (``tasks`` or the envelope fields)."""
        if isinstance(self.result, ExtractionResult):
            return {"subject": self.subject, "mode": self.mode, **self.result.to_json_dict()}
        return {
            "subject": self.subject,
            "mode": self.mode,
            "tasks": [item.to_json_dict() for item in self.result],
        }


async def extract_batch(
    requests: Sequence[ExtractionRequest],
    arbiter: Arbiter,
    concurrency: int | None = None,
) -> list[BatchResult]:
    """Run every request through *arbiter* concurrently.

    Args:
        requests: Records to process.
        arbiter: Strategy selector shared by all records.
        concurrency: Maximum number of records in flight; unbounded when
            ``None``.

    Returns:
        One :class:`BatchResult` per record, in submission order.
    """
    semaphore = asyncio.Semaphore(concurrency) if concurrency else None

    async def _one(index: int, request: ExtractionRequest) -> BatchResult:
        if semaphore is None:
            result = await arbiter.run(request)
        else:
            async with semaphore:
                result = await arbiter.run(request)
        mode = "either-or" if request.uses_either_or else request.mode
        return BatchResult(index=index, subject=request.subject, mode=mode, result=result)

    results: list[BatchResult] = []
    for finished in asyncio.as_completed([_one(i, r) for i, r in enumerate(requests)]):
        results.append(await finished)

    logger.info("Processed batch of %d record(s)", len(results))
    return sorted(results, key=lambda r: r.index)
