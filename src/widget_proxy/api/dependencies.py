"""
FastAPI dependency injection for the Widget Proxy.

The key pool and the upstream client are created once per process and
shared by every request; the retry orchestrator is cheap and built per
request around the shared pool.
"""

from functools import lru_cache

from fastapi import Depends

from widget_proxy.config import Settings, load_credentials, settings
from widget_proxy.keys.pool import KeyPool
from widget_proxy.llm.openai_client import OpenAIResponsesClient
from widget_proxy.retry.engine import RetryOrchestrator


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_key_pool() -> KeyPool:
    """
    Get the process-wide key pool.

    Uses @lru_cache so every request shares one rotation cursor and one set
    of health records. Settings are read directly rather than injected:
    Settings instances are not hashable, so they cannot be cache keys.

    Returns:
        KeyPool instance

    Raises:
        ConfigurationError: No keys or no prompt ID configured
    """
    app_settings = get_settings()
    return KeyPool(
        credentials=load_credentials(app_settings),
        prompt_id=app_settings.OPENAI_PROMPT_ID,
    )


@lru_cache()
def get_openai_client() -> OpenAIResponsesClient:
    """
    Get singleton upstream client with connection pooling.

    The HTTP timeout matches REQUEST_TIMEOUT_MS; the orchestrator enforces
    the same bound around each attempt.

    Returns:
        OpenAIResponsesClient instance
    """
    app_settings = get_settings()
    return OpenAIResponsesClient(
        base_url=app_settings.OPENAI_BASE_URL,
        prompt_version=app_settings.OPENAI_PROMPT_VERSION,
        timeout=app_settings.REQUEST_TIMEOUT_MS / 1000,
    )


def get_retry_orchestrator(
    key_pool: KeyPool = Depends(get_key_pool),
    settings: Settings = Depends(get_settings),
) -> RetryOrchestrator:
    """
    Create retry orchestrator around the shared key pool.

    Note: RetryOrchestrator is NOT cached; all state it relies on lives in
    the key pool.

    Args:
        key_pool: Key pool singleton (injected)
        settings: Application settings (injected)

    Returns:
        RetryOrchestrator instance
    """
    return RetryOrchestrator(key_pool=key_pool, settings=settings)
