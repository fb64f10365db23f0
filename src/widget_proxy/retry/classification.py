"""
Error classification for the retry orchestrator.

Failures reach the orchestrator in many shapes: our own UpstreamError,
httpx exceptions, OSError subclasses, or arbitrary exceptions raised by the
caller's operation. They are first normalized into a FailureDescriptor and
then classified by RetryPolicy.

A failure is retryable if ANY of the following hold:
    - its status code is in the retryable status codes
    - its name is in the retryable error names
    - its code is in the retryable error names
    - its message contains "timeout" (case-insensitive)
TransientUpstreamError (including timeouts synthesized by the orchestrator)
is always retryable.
"""

import errno
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from widget_proxy.retry.exceptions import TransientUpstreamError, UpstreamError


@dataclass(frozen=True)
class FailureDescriptor:
    """
    Normalized view of a failure, used as the only classification input.

    Attributes:
        status_code: HTTP-like status code, if any
        name: Symbolic error name (exception class name by default)
        code: Symbolic error code (errno symbol or explicit code)
        message: Error message text
        transient: Failure is known to be transient
    """

    status_code: Optional[int] = None
    name: Optional[str] = None
    code: Optional[str] = None
    message: str = ""
    transient: bool = False


def _extract_status(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    # httpx.HTTPStatusError and similar keep the status on the response
    response = getattr(exc, "response", None)
    if response is not None:
        for attr in ("status_code", "status"):
            value = getattr(response, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
    return None


def _extract_code(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code

    # httpx.X wraps httpcore.X, which wraps the socket's OSError
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, OSError) and current.errno is not None:
            symbol = errno.errorcode.get(current.errno)
            if symbol:
                return symbol
        current = current.__cause__ or current.__context__
    return None


def describe_failure(exc: BaseException) -> FailureDescriptor:
    """
    Normalize any exception into a FailureDescriptor.

    Args:
        exc: Exception raised by an upstream call

    Returns:
        FailureDescriptor with whatever could be extracted
    """
    if isinstance(exc, UpstreamError):
        return FailureDescriptor(
            status_code=exc.status_code,
            name=exc.name or type(exc).__name__,
            code=exc.code,
            message=exc.message,
            transient=isinstance(exc, TransientUpstreamError),
        )

    name = getattr(exc, "name", None)
    if not isinstance(name, str) or not name:
        name = type(exc).__name__

    return FailureDescriptor(
        status_code=_extract_status(exc),
        name=name,
        code=_extract_code(exc),
        message=str(exc),
    )


class RetryPolicy:
    """
    Decides whether a failure is worth retrying with another key.

    Attributes:
        retryable_status_codes: Status codes treated as transient
        retryable_error_names: Names/codes treated as transient
    """

    def __init__(
        self,
        retryable_status_codes: Iterable[int],
        retryable_error_names: Iterable[str],
    ):
        self.retryable_status_codes = frozenset(retryable_status_codes)
        self.retryable_error_names = frozenset(retryable_error_names)

    def is_retryable(self, failure: Union[FailureDescriptor, BaseException]) -> bool:
        """
        Classify a failure.

        Args:
            failure: A FailureDescriptor or a raw exception (normalized first)

        Returns:
            True if the failure is transient and another key should be tried
        """
        if not isinstance(failure, FailureDescriptor):
            failure = describe_failure(failure)

        if failure.transient:
            return True

        if failure.status_code is not None and failure.status_code in self.retryable_status_codes:
            return True

        if failure.name and failure.name in self.retryable_error_names:
            return True

        if failure.code and failure.code in self.retryable_error_names:
            return True

        if failure.message and "timeout" in failure.message.lower():
            return True

        return False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"status_codes={sorted(self.retryable_status_codes)}, "
            f"error_names={sorted(self.retryable_error_names)})"
        )
