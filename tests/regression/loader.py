"""Loader utilities for regression samples and sidecar files.

Discovers ``.txt`` email files paired with ``.expected.json`` sidecars
and builds the canned LLM answer for mock mode.
"""

from __future__ import annotations

import json
from pathlib import Path

from .schema import SidecarSpec


def discover_samples(base_dir: str | Path) -> list[tuple[Path, SidecarSpec]]:
    """Discover sample emails paired with sidecar JSON files.

    Recursively globs ``**/*.txt`` under *base_dir* and pairs each with a
    sibling ``.expected.json`` file.  Samples without a sidecar are
    skipped.

    Returns:
        ``(txt_path, SidecarSpec)`` tuples sorted by path.
    """
    base = Path(base_dir)
    results: list[tuple[Path, SidecarSpec]] = []

    for txt_path in sorted(base.rglob("*.txt")):
        sidecar_path = txt_path.with_suffix(".expected.json")
        if sidecar_path.exists():
            results.append((txt_path, load_sidecar(sidecar_path)))

    return results


def load_sidecar(json_path: str | Path) -> SidecarSpec:
    """Load and validate a sidecar JSON file.

    Raises:
        pydantic.ValidationError: If the JSON does not match the schema.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(json_path)
    return SidecarSpec.model_validate_json(path.read_text(encoding="utf-8"))


def mock_llm_text(sidecar: SidecarSpec) -> str:
    """Return the raw text the mocked LLM should answer with."""
    if sidecar.mock_llm_raw is not None:
        return sidecar.mock_llm_raw
    return json.dumps(sidecar.mock_llm_response)
