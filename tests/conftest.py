"""Pytest configuration for the placesync test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from tests import _ensure_repo_on_path

from placesync.settings import get_settings


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Iterator[None]:
    """Drop the cached settings so environment overrides apply per test."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
