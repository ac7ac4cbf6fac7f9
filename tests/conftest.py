"""Shared pytest fixtures for tillroll tests."""

from __future__ import annotations

import pytest

from tillroll.runtime.parser_config import _load_parser_config
from tillroll.runtime.paths import reset_paths


@pytest.fixture
def tillroll_home(tmp_path, monkeypatch):
    """Point the project root at a temporary directory for the duration of a test."""
    monkeypatch.setenv("TILLROLL_HOME", str(tmp_path))
    reset_paths()
    _load_parser_config.cache_clear()
    yield tmp_path
    reset_paths()
    _load_parser_config.cache_clear()
