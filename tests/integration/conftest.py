"""Integration test fixtures (scripted upstream and wired application).

The upstream API is replaced by an httpx.MockTransport, so the whole
request path (routes, orchestrator, key pool, HTTP client, exception
handlers) runs for real without network access.
"""

import json
from collections import deque
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from widget_proxy.api.dependencies import get_key_pool, get_openai_client, get_settings
from widget_proxy.config import load_credentials
from widget_proxy.keys.pool import KeyPool
from widget_proxy.llm.openai_client import OpenAIResponsesClient
from widget_proxy.main import app


class FakeUpstream:
    """Scripted stand-in for the Responses API.

    Replies are queued per API key; a key with an empty queue answers 200.
    A queued item is either a status code (JSON error body) or an exception
    instance, which is raised from the transport.
    """

    def __init__(self):
        self.replies: dict[str, deque] = {}
        self.calls: list[dict[str, Any]] = []

    def script(self, api_key: str, *replies) -> None:
        self.replies.setdefault(api_key, deque()).extend(replies)

    @property
    def keys_called(self) -> list[str]:
        return [call["api_key"] for call in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        api_key = request.headers["Authorization"].removeprefix("Bearer ")
        self.calls.append({"api_key": api_key, "body": json.loads(request.content)})

        queue = self.replies.get(api_key)
        reply = queue.popleft() if queue else 200

        if isinstance(reply, Exception):
            raise reply
        if reply == 200:
            return httpx.Response(
                200, json={"id": "resp_test", "output_text": f"answered by {api_key}"}
            )
        return httpx.Response(reply, json={"error": {"message": f"upstream said {reply}"}})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def upstream_client(upstream, test_settings) -> OpenAIResponsesClient:
    return OpenAIResponsesClient(
        base_url=test_settings.OPENAI_BASE_URL,
        prompt_version=test_settings.OPENAI_PROMPT_VERSION,
        timeout=test_settings.REQUEST_TIMEOUT_MS / 1000,
        transport=httpx.MockTransport(upstream.handler),
    )


@pytest.fixture
def app_pool(test_settings, fixed_clock) -> KeyPool:
    """Fresh key pool per test, built from the test settings."""
    return KeyPool(
        load_credentials(test_settings),
        prompt_id=test_settings.OPENAI_PROMPT_ID,
        clock=fixed_clock,
    )


@pytest.fixture
def api_client(test_settings, app_pool, upstream_client):
    """TestClient with settings, key pool and upstream client overridden.

    Startup hooks are not run (no context manager); they are covered
    separately.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_key_pool] = lambda: app_pool
    app.dependency_overrides[get_openai_client] = lambda: upstream_client
    yield TestClient(app)
    app.dependency_overrides.clear()
