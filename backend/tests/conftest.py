"""Root conftest — shared test configuration."""

import os

import pytest

# Ensure tests don't pick up a developer's .env overrides
os.environ.setdefault("HYPERROUTE_LOG_LEVEL", "DEBUG")
os.environ.setdefault("HYPERROUTE_ROUTE_CONFLICT_POLICY", "overwrite")

from hyperroute.config import Settings, get_settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
