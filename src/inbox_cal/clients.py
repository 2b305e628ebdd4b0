"""Text-generation service clients.

The LLM extractor talks to any object satisfying
:class:`TextGenerationClient`: one async request/response call from a
prompt to raw text.  Cancelling the awaiting task (which is what the
extractor's timeout does) aborts the in-flight request.

Two implementations are provided:

- :class:`OllamaClient` -- a local inference endpoint (``/api/generate``)
  reached with :mod:`httpx`.
- :class:`GeminiClient` -- Google Gemini through the ``google-genai``
  async API.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from inbox_cal.config import GEMINI_DEFAULT_MODEL, Settings
from inbox_cal.exceptions import LLMServiceError, MalformedResponseError

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerationClient(Protocol):
    """Contract for a generative-text service."""

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        """Return the raw text the service produced for *prompt*."""
        ...


class OllamaClient:
    """Client for an Ollama-compatible ``/api/generate`` endpoint.

    Args:
        base_url: Endpoint root, e.g. ``"http://localhost:11434"``.
        model: Default model name.
        http_client: Optional shared :class:`httpx.AsyncClient`.  When
            omitted a short-lived client is opened for every call.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "phi3:mini",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        """POST *prompt* to ``/api/generate`` and return its ``response`` text.

        Raises:
            LLMServiceError: On transport errors or a non-2xx status.
            MalformedResponseError: If the body is not JSON or has no
                ``response`` string.
        """
        payload = {
            "model": model or self._model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": options or {},
        }
        url = f"{self._base_url}/api/generate"

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise LLMServiceError(f"LLM request failed: {exc!r}") from exc

        if not response.is_success:
            body = response.text[:200]
            logger.error("LLM HTTP %d: %s", response.status_code, body)
            raise LLMServiceError(
                f"LLM HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"LLM returned non-JSON body: {exc}", raw_response=response.text
            ) from exc

        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise MalformedResponseError(
                "LLM body has no 'response' text", raw_response=response.text
            )
        return text


class GeminiClient:
    """Client for Google Gemini via the ``google-genai`` SDK.

    Args:
        api_key: Google Gemini API key.
        model: Default model identifier.
    """

    def __init__(self, api_key: str, model: str = GEMINI_DEFAULT_MODEL) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        """Generate a JSON answer for *prompt*.

        Only the ``temperature`` option is forwarded.

        Raises:
            LLMServiceError: On any Gemini API error.
        """
        config = genai_types.GenerateContentConfig(
            response_mime_type="application/json",
            temperature=(options or {}).get("temperature"),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=model or self._model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            logger.error("Gemini API error: %s", exc)
            raise LLMServiceError(f"Gemini API call failed: {exc}", status_code=exc.code) from exc

        return response.text or ""


def build_client(settings: Settings) -> TextGenerationClient:
    """Create the client selected by ``settings.llm_provider``."""
    if settings.llm_provider == "gemini":
        return GeminiClient(api_key=settings.gemini_api_key, model=settings.llm_model)
    return OllamaClient(base_url=settings.ollama_url, model=settings.llm_model)
