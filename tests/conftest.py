"""Pytest configuration for test isolation.

The CLI and the narrative layer read their configuration from environment
variables (optionally loaded from a ``.env`` in the working directory). A
developer's real ``OPENAI_API_KEY`` or log level must never leak into tests,
so an autouse fixture clears them and moves the working directory to the
test's own temporary directory, where no ``.env`` exists.
"""

from __future__ import annotations

from pathlib import Path

import pytest

_ENV_VARS = (
    "OPENAI_API_KEY",
    "PL_ANALYSIS_MODEL",
    "PL_ANALYSIS_AI_MAX_REQUESTS",
    "PL_ANALYSIS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop package env vars and run each test from an empty directory."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
