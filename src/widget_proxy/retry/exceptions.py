"""
Upstream and retry exceptions.

Call sites that talk to the upstream API raise UpstreamError (or one of its
subclasses) carrying whatever the retry policy needs for classification:
an HTTP status code, a symbolic error name and/or a symbolic error code.

The retry orchestrator raises RetryExhausted when every permitted attempt
failed with a retryable error.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from widget_proxy.retry.metadata import AttemptOutcome


class UpstreamError(Exception):
    """
    Base exception for failed upstream calls.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code, if the failure has one
        name: Symbolic error name (e.g. "TimeoutError")
        code: Symbolic error code (e.g. "ECONNRESET")
        details: Extra context for logs
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        name: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.name = name
        self.code = code
        self.details = details or {}


class TransientUpstreamError(UpstreamError):
    """
    Upstream failure known to be transient.

    Always classified as retryable, regardless of status/name/code.
    """
    pass


class UpstreamTimeoutError(TransientUpstreamError):
    """
    Raised when a single attempt exceeds the request timeout.

    Always carries status 408 and the name "TimeoutError".
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, status_code=408, name="TimeoutError", details=details)


class PermanentUpstreamError(UpstreamError):
    """
    Upstream failure that another key cannot fix.

    Example: the upstream answered 200 but the body is not valid JSON.
    Carries no status, so it is surfaced to the caller without retries.
    """
    pass


class RetryExhausted(Exception):
    """
    Raised when all permitted attempts failed.

    Attributes:
        attempts: Number of attempts made
        keys_tried: Number of distinct keys used
        last_error: Error from the final attempt (None if no attempt ran)
        outcomes: Per-attempt history, in order
    """

    def __init__(
        self,
        attempts: int,
        keys_tried: int,
        last_error: Optional[BaseException],
        outcomes: Optional[list["AttemptOutcome"]] = None,
    ) -> None:
        self.attempts = attempts
        self.keys_tried = keys_tried
        self.last_error = last_error
        self.outcomes = outcomes or []

        last_message = str(last_error) if last_error is not None and str(last_error) else "Unknown error"
        super().__init__(
            f"API request failed after {attempts} attempt(s) with {keys_tried} key(s). "
            f"Last error: {last_message}"
        )
