"""
Retry orchestration with key rotation.

Executes an upstream call against successive API keys from the key pool,
classifying each failure as retryable (try the next key) or fatal
(propagate immediately).

Main Components:
    - RetryOrchestrator: Drives attempts across the key pool
    - RetryPolicy: Classifies failures as retryable or not
    - FailureDescriptor: Normalized failure shape used for classification
    - AttemptOutcome: Immutable record of one attempt
    - RetryExhausted: Raised when every permitted attempt failed

Usage:
    >>> from widget_proxy.retry import RetryOrchestrator
    >>> orchestrator = RetryOrchestrator(key_pool, settings)
    >>> result = await orchestrator.execute_with_retry(call_upstream)
"""

from widget_proxy.retry.classification import (
    FailureDescriptor,
    RetryPolicy,
    describe_failure,
)
from widget_proxy.retry.engine import RetryOrchestrator
from widget_proxy.retry.exceptions import (
    PermanentUpstreamError,
    RetryExhausted,
    TransientUpstreamError,
    UpstreamError,
    UpstreamTimeoutError,
)
from widget_proxy.retry.metadata import AttemptOutcome

__all__ = [
    "AttemptOutcome",
    "FailureDescriptor",
    "PermanentUpstreamError",
    "RetryExhausted",
    "RetryOrchestrator",
    "RetryPolicy",
    "TransientUpstreamError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "describe_failure",
]
