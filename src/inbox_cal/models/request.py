"""Input record for one extraction call.

A batch is a list of :class:`ExtractionRequest` records; each record
selects its arbitration strategy.  Setting ``llm_first`` (either ``True``
or ``False``) selects the either/or strategy; leaving it unset selects
the merge strategy driven by ``mode``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Mode = Literal["rules", "llm", "auto"]


class ExtractionRequest(BaseModel):
    """One text (usually an email) to extract calendar items from.

    Attributes:
        subject: Email subject; used as a title prefix by the merge strategy.
        text: Plain-text body.
        reference_iso: Local "now" used to resolve relative dates and
            missing years.  Defaults to the current time.
        timezone: IANA timezone assumed for local timestamps.
        mode: Merge-strategy mode (``"rules"``, ``"llm"`` or ``"auto"``).
        llm_first: Either/or strategy toggle.  ``None`` means merge.
        budget_ms: Per-call LLM timeout override in milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True)

    subject: str = ""
    text: str
    reference_iso: str | None = Field(default=None, alias="referenceISO")
    timezone: str | None = None
    mode: Mode = "auto"
    llm_first: bool | None = Field(default=None, alias="llmFirst")
    budget_ms: int | None = Field(default=None, alias="budgetMs")

    @property
    def uses_either_or(self) -> bool:
        """Whether this record selects the either/or strategy."""
        return self.llm_first is not None
