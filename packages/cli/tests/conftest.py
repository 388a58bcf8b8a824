"""Shared fixtures for CLI tests."""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Point the session file and catalog database at a throwaway directory."""
    monkeypatch.setenv("PLANMAP_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("PLANMAP_DB", str(tmp_path / "catalog.db"))
    monkeypatch.chdir(tmp_path)
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PLANMAP_LLM_PROVIDER"):
        monkeypatch.delenv(var, raising=False)
