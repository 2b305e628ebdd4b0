"""Configuration loading for inbox-cal.

Reads settings from environment variables (with .env support via python-dotenv)
and validates them.  Only the CLI calls :func:`load_settings`; the extraction
core receives every value as an explicit constructor argument.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

_PROVIDERS = ("ollama", "gemini")
GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        ollama_url: Base URL of the local inference endpoint.
        llm_model: Model name passed to the text-generation service.
        llm_budget_ms: Timeout budget for one LLM call, in milliseconds.
        llm_provider: ``"ollama"`` (default) or ``"gemini"``.
        gemini_api_key: API key for Google Gemini.  Only required when
            *llm_provider* is ``"gemini"``.
        timezone: IANA timezone assumed for local wall-clock timestamps.
        log_level: Logging level (default ``"INFO"``).
    """

    ollama_url: str = "http://localhost:11434"
    llm_model: str = "phi3:mini"
    llm_budget_ms: int = 6000
    llm_provider: str = "ollama"
    gemini_api_key: str = ""
    timezone: str = "America/Toronto"
    log_level: str = "INFO"

    def __repr__(self) -> str:
        return (
            f"Settings(ollama_url={self.ollama_url!r}, "
            f"llm_model={self.llm_model!r}, "
            f"llm_budget_ms={self.llm_budget_ms!r}, "
            f"llm_provider={self.llm_provider!r}, "
            f"gemini_api_key='***', "
            f"timezone={self.timezone!r}, "
            f"log_level={self.log_level!r})"
        )


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the project root
    is picked up automatically.  Unset or blank variables fall back to the
    :class:`Settings` defaults.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If a value is malformed (non-integer budget, unknown
            provider or timezone) or ``GEMINI_API_KEY`` is missing while
            the Gemini provider is selected.
    """
    load_dotenv()

    optional = {
        "OLLAMA_URL": "ollama_url",
        "LLM_MODEL": "llm_model",
        "LLM_PROVIDER": "llm_provider",
        "GEMINI_API_KEY": "gemini_api_key",
        "TIMEZONE": "timezone",
        "LOG_LEVEL": "log_level",
    }

    values: dict[str, str | int] = {}
    for env_var, field_name in optional.items():
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = raw

    budget = os.environ.get("LLM_BUDGET_MS", "").strip()
    if budget:
        try:
            values["llm_budget_ms"] = int(budget)
        except ValueError:
            raise ConfigError(
                f"LLM_BUDGET_MS must be an integer, got {budget!r}"
            ) from None

    if values.get("llm_provider") == "gemini":
        values.setdefault("llm_model", GEMINI_DEFAULT_MODEL)

    settings = Settings(**values)

    if settings.llm_provider not in _PROVIDERS:
        raise ConfigError(
            f"LLM_PROVIDER must be one of {', '.join(_PROVIDERS)}, "
            f"got {settings.llm_provider!r}"
        )
    if settings.llm_provider == "gemini" and not settings.gemini_api_key:
        raise ConfigError("Missing required environment variables: GEMINI_API_KEY")

    try:
        ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone: {settings.timezone!r}") from None

    return settings
