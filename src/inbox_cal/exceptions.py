"""Custom exceptions for the inbox-cal extraction pipeline.

These are raised inside the LLM clients and response parsers and are
converted to degraded results by :class:`~inbox_cal.llm.LLMExtractor`;
they never reach callers of the extraction API.
"""

from __future__ import annotations


class MalformedResponseError(Exception):
    """Raised when the LLM response cannot be parsed or validated.

    This covers JSON parse failures and Pydantic schema validation errors.

    Attributes:
        raw_response: The raw LLM output that failed to parse.
    """

    def __init__(self, message: str, raw_response: str = "") -> None:
        super().__init__(message)
        self.raw_response = raw_response


class LLMServiceError(Exception):
    """Raised when the text-generation service cannot be reached.

    Covers connection errors and non-success HTTP status codes.

    Attributes:
        status_code: HTTP status returned by the service, or ``None`` for
            transport-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
