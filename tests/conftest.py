"""Shared fixtures for the bodycheck test suite."""

import pytest

from bodycheck.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Re-read settings for every test, without BODYCHECK_ variables leaking in."""
    for name in ("BODYCHECK_DEBUG", "BODYCHECK_EMAIL_PATTERN", "BODYCHECK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
