"""Pytest configuration for relaycore tests."""

import pytest

from relaycore.settings import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
