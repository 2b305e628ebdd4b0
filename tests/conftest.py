"""Shared fixtures for inbox-cal tests."""

from __future__ import annotations

import logging
from collections.abc import Generator
from datetime import datetime

import pytest

_ENV_VARS = (
    "OLLAMA_URL",
    "LLM_MODEL",
    "LLM_BUDGET_MS",
    "LLM_PROVIDER",
    "GEMINI_API_KEY",
    "TIMEZONE",
    "LOG_LEVEL",
)


# ---------------------------------------------------------------------------
# Markers and the --live flag
# ---------------------------------------------------------------------------


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register the ``--live`` CLI flag."""
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run live regression tests against the configured LLM endpoint.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers to avoid ``PytestUnknownMarkWarning``."""
    config.addinivalue_line("markers", "live: requires a reachable LLM endpoint")
    config.addinivalue_line("markers", "regression: regression test suite")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Skip ``@pytest.mark.live`` tests unless ``--live`` is passed."""
    if config.getoption("--live"):
        return

    skip_live = pytest.mark.skip(reason="Need --live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture()
def reference_now() -> datetime:
    """Monday 2025-08-25 10:00 local."""
    return datetime(2025, 8, 25, 10, 0, 0)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all inbox-cal environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values
    that the test explicitly removed.
    """
    monkeypatch.setattr("inbox_cal.config.load_dotenv", lambda *_a, **_kw: None)
    for key in _ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Reset the root logger after each test to prevent handler leaks."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
