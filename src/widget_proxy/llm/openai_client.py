"""
Upstream client for the OpenAI Responses API.

Communicates with the API using a persistent httpx AsyncClient. The client
makes exactly one HTTP request per call: retries and key rotation are the
RetryOrchestrator's job. Failures are raised as UpstreamError subclasses
carrying the status code, error name and error code the retry policy
classifies on.
"""

import json
import time
from typing import Any, Optional

import httpx
import structlog

from widget_proxy.retry.exceptions import (
    PermanentUpstreamError,
    UpstreamError,
    UpstreamTimeoutError,
)
from widget_proxy.retry.classification import describe_failure

logger = structlog.get_logger(__name__)


class OpenAIResponsesClient:
    """
    Client for POST /v1/responses using a stored prompt.

    The API key is passed per call (it changes with each rotation), so the
    underlying connection pool is shared by all keys.

    Request payload:
    {
        "prompt": {"id": "pmpt_...", "version": "1"},
        "input": [{"role": "user", "content": "<user data as JSON>"}]
    }
    """

    def __init__(
        self,
        base_url: str = "https://api.openai.com",
        prompt_version: str = "1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connection_limits: Optional[httpx.Limits] = None,
    ):
        """
        Initialize upstream client.

        Args:
            base_url: API base URL
            prompt_version: Version of the stored prompt to use
            timeout: HTTP timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
            connection_limits: httpx connection pool limits
        """
        self.base_url = base_url.rstrip("/")
        self.prompt_version = prompt_version
        self.timeout = timeout

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=10,
                max_connections=20,
                keepalive_expiry=30.0,
            )

        self._client: Optional[httpx.AsyncClient] = None
        self._transport = transport
        self._connection_limits = connection_limits

        logger.info(
            "Upstream client initialized",
            base_url=self.base_url,
            prompt_version=prompt_version,
            timeout=timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
            )
            logger.debug("Created new httpx AsyncClient")
        return self._client

    def build_payload(self, prompt_id: str, user_data: Any) -> dict[str, Any]:
        return {
            "prompt": {
                "id": prompt_id,
                "version": self.prompt_version,
            },
            "input": [
                {
                    "role": "user",
                    "content": json.dumps(user_data),
                }
            ],
        }

    async def create_response(
        self, api_key: str, prompt_id: str, user_data: Any
    ) -> dict[str, Any]:
        """
        Run the stored prompt against the user's answers.

        Args:
            api_key: Upstream API key for this attempt
            prompt_id: Stored prompt identifier
            user_data: Widget answers, serialized as the user message

        Returns:
            Upstream JSON response

        Raises:
            UpstreamTimeoutError: HTTP timeout
            UpstreamError: Non-2xx response (status set) or transport error
                (name/code set)
            PermanentUpstreamError: 2xx response with an invalid JSON body
        """
        start_time = time.time()
        payload = self.build_payload(prompt_id, user_data)

        try:
            client = await self._get_client()
            response = await client.post(
                "/v1/responses",
                json=payload,
                headers={"Authorization": f"Bearer {api_key}"},
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                f"Request timed out after {self.timeout}s",
                details={"error_type": type(e).__name__},
            ) from e
        except httpx.TransportError as e:
            failure = describe_failure(e)
            raise UpstreamError(
                f"Network error: {e}",
                name=type(e).__name__,
                code=failure.code,
                details={"error_type": type(e).__name__},
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)

        if response.is_error:
            raise UpstreamError(
                f"OpenAI API error: {response.text or 'Unknown error'}",
                status_code=response.status_code,
                details={
                    "status_text": response.reason_phrase,
                    "latency_ms": latency_ms,
                },
            )

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise PermanentUpstreamError(
                "Invalid JSON response from OpenAI API",
                details={"parse_error": str(e)},
            ) from e

        logger.info(
            "Upstream response received",
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return data

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed upstream client")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )
