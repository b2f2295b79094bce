"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import pytest

from shared.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reset the cached settings before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a test backend and a temporary cache file."""
    return Settings(
        api_base_url="https://api.test",
        user_cache_path=tmp_path / "session_cache.json",
        retry_delay=0,
    )
