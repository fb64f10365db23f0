"""
API routes: the upstream proxy endpoint and key health diagnostics.
"""

import time
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import APIRouter, Depends, status
from prometheus_client import Counter, Histogram

from widget_proxy.api.dependencies import (
    get_key_pool,
    get_openai_client,
    get_retry_orchestrator,
    get_settings,
)
from widget_proxy.api.models import (
    APIKeysSummary,
    CurrentKey,
    ErrorResponse,
    HealthResponse,
    KeyDiagnosticsResponse,
    KeyHealthEntry,
    KeyStatusEntry,
    RetryConfigSummary,
    SuggestWordsRequest,
)
from widget_proxy.config import Settings
from widget_proxy.keys.pool import KeyPool
from widget_proxy.llm.openai_client import OpenAIResponsesClient
from widget_proxy.retry.engine import RetryOrchestrator

logger = structlog.get_logger(__name__)

# Prometheus metrics
suggest_requests_total = Counter(
    "suggest_requests_total",
    "Total word suggestion requests",
    ["status"],
)

suggest_duration_seconds = Histogram(
    "suggest_duration_seconds",
    "Word suggestion request duration in seconds (all attempts)",
)

router = APIRouter()


@router.post(
    "/api/suggest-words",
    status_code=status.HTTP_200_OK,
    summary="Get word suggestions from the upstream LLM",
    description="""
    Forwards the widget answers to the stored upstream prompt.

    Retries transient failures (rate limits, 5xx, timeouts, connection
    errors) on the next configured API key. Non-retryable failures are
    returned immediately with the upstream status.
    """,
    responses={
        200: {"description": "Upstream response (passed through)"},
        400: {"model": ErrorResponse, "description": "Missing or invalid userData"},
        503: {"model": ErrorResponse, "description": "All permitted attempts failed"},
    },
)
async def suggest_words(
    body: SuggestWordsRequest,
    key_pool: KeyPool = Depends(get_key_pool),
    orchestrator: RetryOrchestrator = Depends(get_retry_orchestrator),
    client: OpenAIResponsesClient = Depends(get_openai_client),
) -> dict[str, Any]:
    """
    Proxy a word suggestion request with automatic key rotation.

    Args:
        body: Widget answers
        key_pool: Shared key pool (injected)
        orchestrator: Retry orchestrator (injected)
        client: Upstream client (injected)

    Returns:
        Upstream JSON response
    """
    start_time = time.perf_counter()
    prompt_id = key_pool.prompt_id

    logger.info("Word suggestion request received", answer_count=len(body.user_data))

    async def call_upstream(api_key: str) -> dict[str, Any]:
        return await client.create_response(api_key, prompt_id, body.user_data)

    try:
        result = await orchestrator.execute_with_retry(call_upstream)
    except Exception as exc:
        suggest_requests_total.labels(status="error").inc()
        logger.warning("Word suggestion request failed", error_type=type(exc).__name__)
        # Re-raise for exception handlers
        raise
    finally:
        suggest_duration_seconds.observe(time.perf_counter() - start_time)

    suggest_requests_total.labels(status="success").inc()
    logger.info("Word suggestion request completed")

    return result


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Reports service status and the health of every configured API key.

    A key is "degraded" while it has failures recorded since its last
    success. Key health is informational only: degraded keys stay in the
    rotation.
    """,
)
async def health_check(
    key_pool: KeyPool = Depends(get_key_pool),
    settings: Settings = Depends(get_settings),
) -> HealthResponse:
    snapshot = key_pool.health_snapshot()

    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc),
        api_keys=APIKeysSummary(
            total=len(snapshot),
            health=[KeyStatusEntry.from_health(h) for h in snapshot],
        ),
    )


@router.get(
    "/api/health/keys",
    response_model=KeyDiagnosticsResponse,
    summary="API key diagnostics",
    description="""
    Detailed key diagnostics: the key the next request will start with,
    per-key failure counts and the retry configuration.
    """,
)
async def key_diagnostics(
    key_pool: KeyPool = Depends(get_key_pool),
    settings: Settings = Depends(get_settings),
) -> KeyDiagnosticsResponse:
    current = key_pool.current_credential()

    return KeyDiagnosticsResponse(
        current=CurrentKey(label=current.label, in_use=True),
        keys=[KeyHealthEntry.from_health(h) for h in key_pool.health_snapshot()],
        config=RetryConfigSummary(
            max_retries=settings.MAX_TOTAL_ATTEMPTS,
            timeout_ms=settings.REQUEST_TIMEOUT_MS,
            retry_delay_ms=settings.RETRY_DELAY_MS,
        ),
    )
