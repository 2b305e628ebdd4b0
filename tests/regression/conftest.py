"""Regression test auto-discovery.

``pytest_generate_tests`` parametrizes ``sample_case`` fixtures from the
``samples/**/*.txt`` files that have a sibling ``.expected.json`` sidecar.
The ``--live`` flag and the markers are registered in ``tests/conftest.py``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.regression.loader import discover_samples

_SAMPLES_DIR = Path(__file__).resolve().parent.parent.parent / "samples"


def pytest_generate_tests(metafunc: pytest.Metafunc) -> None:
    """Parametrize tests that request a ``sample_case`` fixture.

    Test IDs use ``category/stem`` (e.g. ``-k eod/submit_by_friday``).
    """
    if "sample_case" not in metafunc.fixturenames:
        return

    cases = discover_samples(_SAMPLES_DIR)
    ids = [
        f"{txt_path.relative_to(_SAMPLES_DIR).parent}/{txt_path.stem}"
        for txt_path, _ in cases
    ]
    metafunc.parametrize("sample_case", cases, ids=ids)
