"""Integration tests for the retry orchestrator driving the real upstream client.

KeyPool, RetryOrchestrator and OpenAIResponsesClient are wired together;
only the network is replaced by httpx.MockTransport.
"""

import asyncio
import errno

import httpcore
import httpx
import pytest

from widget_proxy.llm.openai_client import OpenAIResponsesClient
from widget_proxy.retry.engine import RetryOrchestrator
from widget_proxy.retry.exceptions import RetryExhausted, UpstreamError, UpstreamTimeoutError

USER_DATA = {"values": ["patience"]}


def wire(key_pool, settings, handler):
    client = OpenAIResponsesClient(
        base_url=settings.OPENAI_BASE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )
    orchestrator = RetryOrchestrator(key_pool=key_pool, settings=settings)

    async def call_upstream(api_key: str):
        return await client.create_response(api_key, key_pool.prompt_id, USER_DATA)

    return client, orchestrator, call_upstream


def bearer(request: httpx.Request) -> str:
    return request.headers["Authorization"].removeprefix("Bearer ")


@pytest.mark.asyncio
async def test_rate_limited_key_fails_over(key_pool, test_settings):
    """429 on the first key -> second key answers."""
    seen = []

    def handler(request):
        seen.append(bearer(request))
        if bearer(request) == "k1":
            return httpx.Response(429, json={"error": {"message": "Rate limit reached"}})
        return httpx.Response(200, json={"output_text": "Steady"})

    client, orchestrator, call_upstream = wire(key_pool, test_settings, handler)

    result = await orchestrator.execute_with_retry(call_upstream)

    assert result == {"output_text": "Steady"}
    assert seen == ["k1", "k2"]
    assert key_pool.current_credential().label == "Secondary"
    await client.close()


@pytest.mark.asyncio
async def test_slow_key_times_out_and_fails_over(key_pool, make_settings):
    """A hung attempt is cut off at REQUEST_TIMEOUT_MS and the next key is used."""
    settings = make_settings(REQUEST_TIMEOUT_MS=50)

    async def handler(request):
        if bearer(request) == "k1":
            await asyncio.sleep(1)
        return httpx.Response(200, json={"output_text": "Calm"})

    client, orchestrator, call_upstream = wire(key_pool, settings, handler)

    result = await orchestrator.execute_with_retry(call_upstream)

    assert result == {"output_text": "Calm"}
    primary = key_pool.health_snapshot()[0]
    assert primary.label == "Primary"
    assert primary.failures == 1
    await client.close()


@pytest.mark.asyncio
async def test_every_key_timing_out_exhausts(key_pool, make_settings):
    settings = make_settings(REQUEST_TIMEOUT_MS=20, MAX_TOTAL_ATTEMPTS=2)

    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json={})

    client, orchestrator, call_upstream = wire(key_pool, settings, handler)

    with pytest.raises(RetryExhausted) as exc_info:
        await orchestrator.execute_with_retry(call_upstream)

    exc = exc_info.value
    assert exc.attempts == 2
    assert exc.keys_tried == 2
    assert isinstance(exc.last_error, UpstreamTimeoutError)
    assert str(exc).endswith("Last error: Request timed out after 20ms")
    await client.close()


@pytest.mark.asyncio
async def test_invalid_api_key_is_not_retried(key_pool, test_settings):
    seen = []

    def handler(request):
        seen.append(bearer(request))
        return httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})

    client, orchestrator, call_upstream = wire(key_pool, test_settings, handler)

    with pytest.raises(UpstreamError) as exc_info:
        await orchestrator.execute_with_retry(call_upstream)

    assert exc_info.value.status_code == 401
    assert seen == ["k1"]
    await client.close()


@pytest.mark.asyncio
async def test_concurrent_requests_share_rotation(key_pool, test_settings):
    """Failures from concurrent calls advance one shared cursor."""

    async def handler(request):
        await asyncio.sleep(0)
        if bearer(request) == "k1":
            return httpx.Response(503, json={"error": {"message": "overloaded"}})
        return httpx.Response(200, json={"output_text": bearer(request)})

    client, orchestrator, call_upstream = wire(key_pool, test_settings, handler)

    results = await asyncio.gather(
        *(orchestrator.execute_with_retry(call_upstream) for _ in range(5))
    )

    assert len(results) == 5
    assert all(r["output_text"] in {"k2", "k3"} for r in results)
    assert key_pool.health_snapshot()[0].failures >= 1
    await client.close()


@pytest.mark.asyncio
async def test_connection_reset_during_write_fails_over(key_pool, test_settings):
    """A reset socket surfaces as httpx.WriteError and the next key is used."""
    seen = []

    def handler(request):
        seen.append(bearer(request))
        if bearer(request) == "k1":
            try:
                try:
                    raise ConnectionResetError(errno.ECONNRESET, "Connection reset by peer")
                except OSError as exc:
                    raise httpcore.WriteError(str(exc)) from exc
            except httpcore.WriteError as exc:
                raise httpx.WriteError(str(exc), request=request) from exc
        return httpx.Response(200, json={"output_text": "Resilient"})

    client, orchestrator, call_upstream = wire(key_pool, test_settings, handler)

    result = await orchestrator.execute_with_retry(call_upstream)

    assert result == {"output_text": "Resilient"}
    assert seen == ["k1", "k2"]
    await client.close()
