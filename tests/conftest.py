"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from datetime import datetime, timezone

import pytest

from widget_proxy.config import Settings
from widget_proxy.keys.pool import Credential, KeyPool


FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_settings():
    """Factory fixture to create Settings with safe test defaults.

    Retry delay is 0 so failover tests do not sleep; keys and prompt ID
    follow the real formats so config validation passes.

    Usage:
        def test_something(make_settings):
            settings = make_settings(MAX_TOTAL_ATTEMPTS=2)
    """
    def _create(**overrides) -> Settings:
        values = dict(
            # === Application ===
            APP_NAME="find-your-word-widget",
            APP_VERSION="2.0.0",
            LOG_LEVEL="DEBUG",
            ENVIRONMENT="development",

            # === Upstream ===
            OPENAI_BASE_URL="https://upstream.test",
            OPENAI_API_KEY="sk-test-primary",
            OPENAI_API_KEY_2="sk-test-secondary",
            OPENAI_API_KEY_3="sk-test-tertiary",
            OPENAI_PROMPT_ID="pmpt_test123",

            # === Retry ===
            MAX_TOTAL_ATTEMPTS=3,
            REQUEST_TIMEOUT_MS=1000,
            RETRY_DELAY_MS=0,

            PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _create


@pytest.fixture
def test_settings(make_settings) -> Settings:
    """Test settings with three keys and no retry delay."""
    return make_settings()


@pytest.fixture
def fixed_clock():
    """Clock returning a fixed UTC time, for failure timestamps."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_pool(fixed_clock):
    """Factory fixture to create a KeyPool from (secret, label) pairs.

    Usage:
        def test_something(make_pool):
            pool = make_pool([("k1", "Primary"), ("k2", "Secondary")])
    """
    def _create(
        keys: list[tuple[str, str]] | None = None,
        prompt_id: str | None = "pmpt_test123",
    ) -> KeyPool:
        if keys is None:
            keys = [("k1", "Primary"), ("k2", "Secondary"), ("k3", "Tertiary")]
        return KeyPool(
            [Credential(secret=secret, label=label) for secret, label in keys],
            prompt_id=prompt_id,
            clock=fixed_clock,
        )

    return _create


@pytest.fixture
def key_pool(make_pool) -> KeyPool:
    """Three-key pool: k1/Primary, k2/Secondary, k3/Tertiary."""
    return make_pool()
