"""
API request and response models for FastAPI endpoints.

Field names follow the JSON the widget and existing dashboards already
consume (camelCase), hence the aliases.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from widget_proxy.keys.pool import KeyHealth


class SuggestWordsRequest(BaseModel):
    """Request body for word suggestions."""

    user_data: dict[str, Any] = Field(
        alias="userData",
        description="Answers collected by the widget, forwarded to the stored prompt",
    )


class KeyHealthEntry(BaseModel):
    """Health of one API key (diagnostics endpoint)."""

    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(description="Key label", examples=["Primary"])
    failures: int = Field(ge=0, description="Failures since the last success")
    last_failure: Optional[datetime] = Field(
        default=None,
        alias="lastFailure",
        description="Time of the most recent failure (UTC)",
    )

    @classmethod
    def from_health(cls, health: KeyHealth) -> "KeyHealthEntry":
        return cls(label=health.label, failures=health.failures, last_failure=health.last_failure)


class KeyStatusEntry(KeyHealthEntry):
    """Health of one API key with a derived status (service health endpoint)."""

    status: str = Field(description="healthy or degraded", examples=["healthy", "degraded"])

    @classmethod
    def from_health(cls, health: KeyHealth) -> "KeyStatusEntry":
        return cls(
            label=health.label,
            status=health.status,
            failures=health.failures,
            last_failure=health.last_failure,
        )


class APIKeysSummary(BaseModel):
    total: int = Field(ge=0, description="Number of configured keys")
    health: list[KeyStatusEntry]


class HealthResponse(BaseModel):
    """Response for the service health check."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(examples=["healthy"])
    service: str
    version: str
    timestamp: datetime
    api_keys: APIKeysSummary = Field(alias="apiKeys")


class CurrentKey(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str
    in_use: bool = Field(default=True, alias="inUse")


class RetryConfigSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_retries: int = Field(alias="maxRetries")
    timeout_ms: int = Field(alias="timeoutMs")
    retry_delay_ms: int = Field(alias="retryDelayMs")


class KeyDiagnosticsResponse(BaseModel):
    """Response for the detailed key diagnostics endpoint."""

    current: CurrentKey
    keys: list[KeyHealthEntry]
    config: RetryConfigSummary


class ErrorResponse(BaseModel):
    """Error body returned by all exception handlers."""

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Machine-readable error kind", examples=["retry_exhausted"])
    timestamp: datetime = Field(description="Error timestamp (UTC)")
