"""
Root conftest for tests.

Isolates every test from the developer's Alpaca environment: credentials and
tuning variables are removed and the cached settings instance is reset, so
``get_settings()`` only sees what a test sets explicitly.
"""

import pytest

from config.settings import get_settings

ENV_VARS = (
    "ALPACA_API_KEY_ID",
    "ALPACA_API_SECRET_KEY",
    "ALPACA_PAPER",
    "ALPACA_DATA_FEED",
    "POLL_INTERVAL_MS",
    "STREAM_OPEN_TIMEOUT",
    "STREAM_CLOSE_TIMEOUT",
    "RECONNECT_MAX_ATTEMPTS",
    "RECONNECT_BASE_DELAY",
    "RECONNECT_MAX_DELAY",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Clear Alpaca env vars, ignore any local .env, and reset the settings cache."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
