"""
Retry orchestrator with automatic key rotation.

This module implements the RetryOrchestrator that executes a caller-supplied
async operation against successive keys from the KeyPool until it succeeds,
fails with a non-retryable error, or runs out of attempts.

Retry Policy:
    1. Attempt ceiling is min(MAX_TOTAL_ATTEMPTS, number of keys)
    2. Each attempt uses a key not yet tried in this call
    3. Each attempt is bounded by REQUEST_TIMEOUT_MS (timeout = status 408)
    4. Non-retryable errors propagate unchanged, immediately
    5. Retryable errors rotate to the next key and wait RETRY_DELAY_MS
    6. When attempts run out, RetryExhausted is raised

Attempts are strictly sequential within one call. Concurrent calls share
the pool's rotation cursor and health records.

Usage:
    orchestrator = RetryOrchestrator(key_pool, settings)
    result = await orchestrator.execute_with_retry(lambda api_key: client.call(api_key))
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from widget_proxy.config import Settings
from widget_proxy.keys.pool import KeyPool
from widget_proxy.monitoring.metrics import (
    key_rotations_total,
    retry_exhausted_total,
    upstream_attempts_total,
    upstream_latency_seconds,
)
from widget_proxy.retry.classification import RetryPolicy, describe_failure
from widget_proxy.retry.exceptions import RetryExhausted, UpstreamTimeoutError
from widget_proxy.retry.metadata import AttemptOutcome

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[str], Awaitable[T]]


class RetryOrchestrator:
    """
    Runs an upstream operation with failover across the key pool.

    The orchestrator itself is stateless between calls: everything that
    persists (rotation cursor, health records) lives in the KeyPool.

    Attributes:
        key_pool: Shared key pool
        policy: Error classification policy
        max_total_attempts: Configured attempt ceiling
        request_timeout_ms: Per-attempt timeout (ms)
        retry_delay_ms: Delay between a failed attempt and the next (ms)
    """

    def __init__(
        self,
        key_pool: KeyPool,
        settings: Settings,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize retry orchestrator.

        Args:
            key_pool: Shared key pool (one per process)
            settings: Application settings (attempts, timeout, delay, retryable sets)
            policy: Classification policy (built from settings if omitted)
            sleep: Awaitable used for the inter-attempt delay
        """
        self.key_pool = key_pool
        self.policy = policy or RetryPolicy(
            retryable_status_codes=settings.RETRYABLE_STATUS_CODES,
            retryable_error_names=settings.RETRYABLE_ERROR_NAMES,
        )
        self.max_total_attempts = settings.MAX_TOTAL_ATTEMPTS
        self.request_timeout_ms = settings.REQUEST_TIMEOUT_MS
        self.retry_delay_ms = settings.RETRY_DELAY_MS
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        """Effective attempt ceiling: never more attempts than keys."""
        return min(self.max_total_attempts, self.key_pool.size)

    async def execute_with_retry(self, operation: Operation[T]) -> T:
        """
        Execute operation with automatic retry and key rotation.

        Args:
            operation: Async callable receiving one API key secret

        Returns:
            The operation's result from the first successful attempt

        Raises:
            RetryExhausted: All permitted attempts failed with retryable errors
            Exception: The original error of a non-retryable failure
        """
        max_attempts = self.max_attempts
        attempted: set[str] = set()
        outcomes: list[AttemptOutcome] = []
        last_error: Optional[BaseException] = None
        attempt = 0
        skipped = 0

        logger.info("Starting upstream request", max_attempts=max_attempts)

        while attempt < max_attempts:
            credential = self.key_pool.current_credential()

            # Another request may have moved the shared cursor back onto a key
            # we already used; skipping does not consume an attempt.
            if credential.label in attempted:
                if skipped >= self.key_pool.size:
                    break
                skipped += 1
                logger.info("Skipping key (already attempted)", key=credential.label)
                if self.key_pool.rotate_next() is None:
                    break
                continue

            attempt += 1
            attempted.add(credential.label)

            logger.info(
                f"Attempt {attempt}/{max_attempts}",
                key=credential.label,
                attempt=attempt,
                max_attempts=max_attempts,
            )

            start_time = time.perf_counter()
            try:
                result = await asyncio.wait_for(
                    operation(credential.secret),
                    timeout=self.request_timeout_ms / 1000,
                )
            except asyncio.TimeoutError:
                error: BaseException = UpstreamTimeoutError(
                    f"Request timed out after {self.request_timeout_ms}ms",
                    details={"key": credential.label, "timeout_ms": self.request_timeout_ms},
                )
            except Exception as exc:
                error = exc
            else:
                latency_ms = int((time.perf_counter() - start_time) * 1000)
                self.key_pool.record_success(credential.label)

                upstream_attempts_total.labels(key=credential.label, outcome="success").inc()
                upstream_latency_seconds.labels(key=credential.label, success="true").observe(
                    latency_ms / 1000.0
                )
                logger.info(
                    "Upstream request succeeded",
                    key=credential.label,
                    attempt=attempt,
                    latency_ms=latency_ms,
                )
                return result

            latency_ms = int((time.perf_counter() - start_time) * 1000)
            last_error = error
            failure = describe_failure(error)

            self.key_pool.record_failure(credential.label, error)
            retryable = self.policy.is_retryable(failure)

            outcome = AttemptOutcome(
                key_label=credential.label,
                attempt=attempt,
                succeeded=False,
                latency_ms=latency_ms,
                error=error,
                status_code=failure.status_code,
                retryable=retryable,
            )
            outcomes.append(outcome)

            if isinstance(error, UpstreamTimeoutError):
                outcome_label = "timeout"
            else:
                outcome_label = "retryable_error" if retryable else "fatal_error"
            upstream_attempts_total.labels(key=credential.label, outcome=outcome_label).inc()
            upstream_latency_seconds.labels(key=credential.label, success="false").observe(
                latency_ms / 1000.0
            )

            logger.error(
                "Upstream request failed",
                error=failure.message,
                **outcome.to_log_dict(),
            )

            if not retryable:
                logger.error("Error is not retryable, stopping", key=credential.label)
                raise error

            if attempt < max_attempts:
                next_credential = self.key_pool.rotate_next()
                if next_credential is None:
                    break

                key_rotations_total.labels(
                    from_key=credential.label, to_key=next_credential.label
                ).inc()

                if self.retry_delay_ms > 0:
                    logger.info(f"Waiting {self.retry_delay_ms}ms before retry")
                    await self._sleep(self.retry_delay_ms / 1000)

        retry_exhausted_total.inc()
        logger.error(
            "All upstream attempts failed",
            attempts=attempt,
            keys_tried=len(attempted),
            outcomes=[o.to_log_dict() for o in outcomes],
        )

        raise RetryExhausted(
            attempts=attempt,
            keys_tried=len(attempted),
            last_error=last_error,
            outcomes=outcomes,
        )
