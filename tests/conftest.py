"""
Pytest configuration for the fiscalization data-access core.

Provides fixtures for:
- Settings isolation (no ambient env vars, fresh cached settings per test)
- Explicit test settings pointing at a fake backend
- Root logging restored after tests that reconfigure it
"""

from __future__ import annotations

import logging
from typing import Generator

import pytest

from fiscal_core.config import Settings, get_settings

TEST_BASE_URL = "https://api.test/api"

_ENV_VARS = (
    "API_BASE_URL",
    "API_TOKEN",
    "API_TIMEOUT_SECONDS",
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PAGE_SIZE",
    "SWEEP_MAX_PAGES",
    "SWEEP_STRICT",
    "SEARCH_MIN_LENGTH",
    "SEARCH_DEBOUNCE_MS",
    "STATS_WINDOW_DAYS",
    "CACHE_TTL_SECONDS",
    "ALLOW_SIMULATED_MUTATIONS",
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Drop configuration env vars and the cached Settings around every test.
    """
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Generator[None, None, None]:
    """Undo `configure_logging` calls made by a test (directly or via the CLI)."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    http_levels = {name: logging.getLogger(name).level for name in ("httpx", "httpcore")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, http_level in http_levels.items():
        logging.getLogger(name).setLevel(http_level)


@pytest.fixture
def test_settings() -> Settings:
    """Settings fixture with test-specific overrides."""
    return Settings(
        api_base_url=TEST_BASE_URL,
        page_size=6,
        sweep_max_pages=150,
        search_debounce_ms=20,
        cache_ttl_seconds=300,
        log_level="DEBUG",
    )
