"""
Attempt outcome tracking.

Each attempt made by the retry orchestrator is described by an immutable
AttemptOutcome. The history of a failed call travels with RetryExhausted so
that error handlers can log exactly which keys failed and why.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class AttemptOutcome:
    """
    Result of one attempt against one key.

    Attributes:
        key_label: Label of the credential used
        attempt: Attempt number within the call (1-indexed)
        succeeded: Whether the operation returned a result
        latency_ms: Time spent in the operation (ms)
        result: Operation result (successful attempts only)
        error: Raised exception (failed attempts only)
        status_code: Status extracted from the error, if any
        retryable: Whether the failure was classified retryable
    """

    key_label: str
    attempt: int
    succeeded: bool
    latency_ms: int
    result: Any = None
    error: Optional[BaseException] = None
    status_code: Optional[int] = None
    retryable: bool = False

    def __post_init__(self) -> None:
        """Validate outcome invariants."""
        if self.attempt < 1:
            raise ValueError("attempt must be >= 1")

        if self.latency_ms < 0:
            raise ValueError("latency_ms must be >= 0")

        if self.succeeded and self.error is not None:
            raise ValueError("a successful attempt cannot carry an error")

        if not self.succeeded and self.error is None:
            raise ValueError("a failed attempt must carry an error")

    def to_log_dict(self) -> dict[str, Any]:
        """Summary suitable for structured logs (no result payload)."""
        return {
            "key": self.key_label,
            "attempt": self.attempt,
            "succeeded": self.succeeded,
            "latency_ms": self.latency_ms,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "error_type": type(self.error).__name__ if self.error is not None else None,
        }
