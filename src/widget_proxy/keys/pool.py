"""
Key pool: ordered upstream credentials, rotation cursor and health tracking.

The pool is created once per process and shared by every request. Each
public operation is atomic on its own (guarded by a lock held only for the
synchronous read/update); a full retry sequence spanning several operations
is not. Rotation is strictly round-robin. Health records are diagnostic
only and never influence which key is used next.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from widget_proxy.keys.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    """One upstream API key plus a human-readable label ("Primary", ...)."""

    secret: str = field(repr=False)
    label: str


@dataclass
class HealthRecord:
    """Failures recorded for one credential since its last success."""

    failures: int = 0
    last_failure: Optional[datetime] = None


@dataclass(frozen=True)
class KeyHealth:
    """
    Point-in-time health of one credential, as reported by the pool.

    Attributes:
        label: Credential label
        failures: Failures since the last success (0 if none)
        last_failure: Time of the most recent failure (None if none)
    """

    label: str
    failures: int
    last_failure: Optional[datetime]

    @property
    def status(self) -> str:
        return "healthy" if self.failures == 0 else "degraded"


class KeyPool:
    """
    Round-robin pool of upstream credentials sharing one prompt ID.

    Attributes:
        prompt_id: Prompt identifier used with every credential
        size: Number of credentials in the pool
    """

    def __init__(
        self,
        credentials: list[Credential],
        prompt_id: Optional[str],
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize key pool.

        Args:
            credentials: Credentials in rotation order (must not be empty)
            prompt_id: Shared prompt identifier (must not be empty)
            clock: Time source for failure timestamps

        Raises:
            ConfigurationError: Empty credentials, missing prompt ID or
                duplicate labels
        """
        if not credentials:
            raise ConfigurationError(
                "No API keys configured. Cannot initialize key pool."
            )
        if not prompt_id:
            raise ConfigurationError(
                "No prompt ID configured. Cannot initialize key pool."
            )

        labels = [c.label for c in credentials]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ConfigurationError(
                f"Duplicate API key labels: {', '.join(duplicates)}",
                errors=[f"Label {label} used more than once" for label in duplicates],
            )

        self._credentials: tuple[Credential, ...] = tuple(credentials)
        self._prompt_id = prompt_id
        self._clock = clock
        self._cursor = 0
        self._health: dict[str, HealthRecord] = {}
        self._lock = threading.Lock()

        logger.info(
            "Key pool initialized",
            key_count=len(self._credentials),
            labels=labels,
        )

    @property
    def prompt_id(self) -> str:
        return self._prompt_id

    @property
    def size(self) -> int:
        return len(self._credentials)

    def __len__(self) -> int:
        return len(self._credentials)

    def current_credential(self) -> Credential:
        """Return the credential under the rotation cursor."""
        with self._lock:
            return self._credentials[self._cursor]

    def rotate_next(self) -> Optional[Credential]:
        """
        Advance the cursor to the next credential (wrapping around).

        Returns:
            The new current credential, or None when the pool holds a single
            credential and rotation cannot make progress (cursor unchanged).
        """
        with self._lock:
            if len(self._credentials) <= 1:
                logger.warning("No additional keys available for rotation")
                return None

            previous = self._credentials[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._credentials)
            current = self._credentials[self._cursor]

        logger.info("Rotating API key", from_key=previous.label, to_key=current.label)
        return current

    def record_failure(self, label: str, error: Optional[BaseException] = None) -> None:
        """
        Record a failure for a credential.

        Creates the health record on first failure, otherwise increments it,
        and stamps the failure time. Never raises.
        """
        with self._lock:
            record = self._health.setdefault(label, HealthRecord())
            record.failures += 1
            record.last_failure = self._clock()
            failures = record.failures

        logger.warning(
            "API key failure recorded",
            key=label,
            total_failures=failures,
            error_type=type(error).__name__ if error is not None else None,
        )

    def record_success(self, label: str) -> None:
        """Drop the health record for a credential (no-op if clean)."""
        with self._lock:
            self._health.pop(label, None)

    def health_snapshot(self) -> list[KeyHealth]:
        """
        Report health for every credential, in rotation order.

        Credentials without a record report zero failures and no last
        failure time.
        """
        with self._lock:
            return [
                KeyHealth(
                    label=c.label,
                    failures=self._health[c.label].failures if c.label in self._health else 0,
                    last_failure=self._health[c.label].last_failure if c.label in self._health else None,
                )
                for c in self._credentials
            ]

    def reset_health(self) -> None:
        """Clear all health records (manual reset)."""
        with self._lock:
            self._health.clear()
        logger.info("API key health tracker reset")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"labels={[c.label for c in self._credentials]}, "
            f"cursor={self._cursor})"
        )
