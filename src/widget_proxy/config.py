"""
Configuration settings for the Widget Proxy.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.

Up to three upstream API keys are supported (OPENAI_API_KEY,
OPENAI_API_KEY_2, OPENAI_API_KEY_3). All keys share the same prompt ID.
"""

from dataclasses import dataclass, field

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from widget_proxy.keys.pool import Credential


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "find-your-word-widget"
    APP_VERSION: str = "2.0.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # === Upstream API ===
    OPENAI_BASE_URL: str = "https://api.openai.com"
    OPENAI_API_KEY: Optional[str] = None  # Primary (required)
    OPENAI_API_KEY_2: Optional[str] = None  # Secondary (optional)
    OPENAI_API_KEY_3: Optional[str] = None  # Tertiary (optional)
    OPENAI_PROMPT_ID: Optional[str] = None  # Shared by all keys, e.g. "pmpt_..."
    OPENAI_PROMPT_VERSION: str = "1"

    # === Retry & Key Rotation ===
    MAX_TOTAL_ATTEMPTS: int = Field(default=3, ge=1)  # Across all keys
    REQUEST_TIMEOUT_MS: int = Field(default=30000, gt=0)  # Per attempt
    RETRY_DELAY_MS: int = Field(default=1000, ge=0)  # Between a failed attempt and the next
    RETRYABLE_STATUS_CODES: set[int] = {408, 429, 500, 502, 503, 504}
    RETRYABLE_ERROR_NAMES: set[str] = {
        "AbortError",
        "TimeoutError",
        "ECONNRESET",
        "ETIMEDOUT",
        "ECONNREFUSED",
        # httpx / Python transport equivalents
        "ConnectError",
        "ConnectTimeout",
        "ReadTimeout",
        "WriteTimeout",
        "PoolTimeout",
        "ReadError",
        "WriteError",
        "CloseError",
        "RemoteProtocolError",
        "ConnectionResetError",
        "ConnectionRefusedError",
    }

    # === HTTP ===
    PORT: int = 8080
    CORS_ALLOW_ORIGINS: list[str] = ["*"]  # Widget is embedded in storefronts

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Labels assigned to the configured keys, in rotation order
KEY_LABELS: tuple[tuple[str, str], ...] = (
    ("OPENAI_API_KEY", "Primary"),
    ("OPENAI_API_KEY_2", "Secondary"),
    ("OPENAI_API_KEY_3", "Tertiary"),
)


def load_credentials(settings: Settings) -> list[Credential]:
    """
    Collect the configured API keys in rotation order.

    Unset or empty keys are skipped, so a deployment with only
    OPENAI_API_KEY_3 set still gets a single "Tertiary" credential.

    Args:
        settings: Application settings

    Returns:
        Ordered list of credentials (may be empty)
    """
    credentials = []
    for field_name, label in KEY_LABELS:
        secret = getattr(settings, field_name)
        if secret:
            credentials.append(Credential(secret=secret, label=label))
    return credentials


@dataclass(frozen=True)
class KeyConfigValidation:
    """Result of validating the upstream key configuration."""

    valid: bool
    key_count: int
    errors: list[str] = field(default_factory=list)


def validate_key_config(settings: Settings) -> KeyConfigValidation:
    """
    Validate API key and prompt ID configuration.

    Checks that at least one key is set, that a prompt ID is set, and that
    both look like real upstream identifiers ("pmpt_" / "sk-" prefixes).
    """
    credentials = load_credentials(settings)
    prompt_id = settings.OPENAI_PROMPT_ID
    errors: list[str] = []

    if not credentials:
        errors.append("No API keys found. Set OPENAI_API_KEY in environment variables.")

    if not prompt_id:
        errors.append("OPENAI_PROMPT_ID not found in environment variables.")
    elif not prompt_id.startswith("pmpt_"):
        errors.append('Prompt ID appears to be invalid (should start with "pmpt_")')

    for credential in credentials:
        if not credential.secret.startswith("sk-"):
            errors.append(
                f'API key {credential.label} appears to be invalid (should start with "sk-")'
            )

    return KeyConfigValidation(
        valid=not errors,
        key_count=len(credentials),
        errors=errors,
    )


# Global settings instance
settings = Settings()
