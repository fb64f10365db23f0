"""Structured logging configuration using structlog.

JSON lines in production, colored console output in development. Library
loggers (uvicorn, httpx) go through the same processor chain via
ProcessorFormatter, so request_id and the secret redaction apply to them too.

Upstream API keys must never reach the logs: every event is scrubbed for
"sk-..." tokens before rendering.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "widget-proxy"

# OpenAI-style secret keys ("sk-..." / "sk-proj-...")
_SECRET_PATTERN = re.compile(r"\bsk-[A-Za-z0-9_\-]{4,}")
REDACTED = "[REDACTED_KEY]"

# Loggers that are chatty at INFO; httpx also logs the full upstream URL per request
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")


def redact_secrets(text: str) -> str:
    """Replace anything that looks like an upstream API key with a marker."""
    return _SECRET_PATTERN.sub(REDACTED, text)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return redact_secrets(value)
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_scrub(v) for v in value)
    return value


def redact_secrets_processor(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Scrub API keys from the event message and every string field."""
    return {key: _scrub(value) for key, value in event_dict.items()}


def add_service_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(log_level: str = "INFO", environment: str = "development") -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" selects JSON output, anything else the console renderer
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    is_production = environment.lower() == "production"

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        # Fields passed via stdlib `extra=` (the exception handlers use it)
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_name,
    ]

    # Tracebacks are rendered to text before scrubbing, so keys inside them are caught too
    pre_chain.append(structlog.processors.format_exc_info)
    pre_chain.append(redact_secrets_processor)

    if is_production:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=environment,
        renderer="json" if is_production else "console",
    )
