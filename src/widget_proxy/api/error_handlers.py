"""
FastAPI exception handlers for structured error responses.

The proxy endpoint only ever sees a success payload or one terminal error:
either a non-retryable upstream failure (surfaced with its original status
and message) or RetryExhausted. Both are mapped here.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from widget_proxy.keys.exceptions import ConfigurationError
from widget_proxy.retry.exceptions import RetryExhausted, UpstreamError

logger = logging.getLogger(__name__)


def error_response(
    status_code: int, message: str, code: str, extra: Optional[dict[str, Any]] = None
) -> JSONResponse:
    content = {
        "error": message,
        "code": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """
    Handle non-retryable upstream failures.

    Keeps the upstream status (e.g. 401 for a revoked key, 400 for a
    malformed request). Failures without a status map to 502 Bad Gateway.

    Args:
        request: FastAPI request
        exc: UpstreamError instance

    Returns:
        JSON error response
    """
    status_code = exc.status_code or status.HTTP_502_BAD_GATEWAY

    logger.error(
        "Upstream request failed (not retryable)",
        extra={
            "error_type": type(exc).__name__,
            "status_code": exc.status_code,
            "details": exc.details,
        },
    )

    return error_response(status_code, exc.message, "upstream_error")


async def retry_exhausted_handler(request: Request, exc: RetryExhausted) -> JSONResponse:
    """
    Handle retry exhaustion (every permitted key failed).

    Maps to 503 Service Unavailable (temporary failure).

    Args:
        request: FastAPI request
        exc: RetryExhausted instance

    Returns:
        JSON error response
    """
    logger.error(
        "Retry exhausted",
        extra={
            "attempts": exc.attempts,
            "keys_tried": exc.keys_tried,
            "outcomes": [o.to_log_dict() for o in exc.outcomes],
            "last_error": str(exc.last_error),
        },
    )

    return error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        str(exc),
        "retry_exhausted",
        extra={"attempts": exc.attempts, "keysTried": exc.keys_tried},
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """
    Handle missing or invalid key configuration.

    Maps to 500 Internal Server Error; details stay in the logs.
    """
    logger.error(
        "Key configuration error",
        extra={"error": exc.message, "errors": exc.errors},
    )

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Service is not configured",
        "configuration_error",
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle invalid request bodies.

    Maps to 400 Bad Request (client error).

    Args:
        request: FastAPI request
        exc: RequestValidationError instance

    Returns:
        JSON error response
    """
    errors = exc.errors()
    logger.warning(
        "Invalid request format",
        extra={"errors": [{"loc": e.get("loc"), "type": e.get("type")} for e in errors]},
    )

    missing_user_data = any(
        e.get("type") == "missing" and "userData" in e.get("loc", ()) for e in errors
    )
    message = "Missing userData in request body" if missing_user_data else "Invalid request body"

    return error_response(status.HTTP_400_BAD_REQUEST, message, "invalid_request")


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.

    Args:
        request: FastAPI request
        exc: Exception instance

    Returns:
        JSON error response
    """
    logger.exception(
        "Unexpected error",
        extra={"error_type": type(exc).__name__},
    )

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "internal_error",
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    UpstreamError: upstream_error_handler,
    RetryExhausted: retry_exhausted_handler,
    ConfigurationError: configuration_error_handler,
    RequestValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
