"""
Pydantic configuration models for ProcureRelay.

These models provide type-safe configuration with validation for:
- Upstream procurement API access
- Outbound webhook delivery
- Relay scheduling behaviour
- Logging
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator


DEFAULT_UPSTREAM_BASE_URL = "https://apis.data.go.kr/1230000/BidPublicInfoService02"


# =============================================================================
# Upstream Configuration
# =============================================================================


class UpstreamConfig(BaseModel):
    """Upstream procurement open-data API settings."""

    base_url: str = Field(
        default=DEFAULT_UPSTREAM_BASE_URL,
        description="Base URL; operation names are appended to it",
    )
    service_key: str = Field(
        default="",
        description="Service key issued by the open-data portal",
    )
    timeout_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=120.0,
        description="Request timeout in seconds",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# =============================================================================
# Webhook Configuration
# =============================================================================


class WebhookConfig(BaseModel):
    """Outbound webhook delivery settings."""

    url: str | None = Field(
        default=None,
        description="Endpoint that receives relayed datasets",
    )
    api_key: str = Field(
        default="",
        description="Sent as a Bearer token",
    )
    timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Delivery timeout in seconds",
    )
    test_timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=300.0,
        description="Timeout for connection tests",
    )
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Delivery attempts per dataset (1 disables retry)",
    )
    user_agent: str = Field(
        default="ProcureRelay-Webhook/1.0",
        description="User-Agent header for outbound calls",
    )


# =============================================================================
# Relay Configuration
# =============================================================================


class RelayConfig(BaseModel):
    """Aggregated relay run settings."""

    concurrent: bool = Field(
        default=True,
        description="Dispatch the data kinds in parallel",
    )
    deadline_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Stop waiting for pending kinds after this long",
    )
    default_page_no: int = Field(default=1, ge=1)
    default_num_of_rows: int = Field(default=10, ge=1, le=1000)


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    json_format: bool = Field(
        default=True,
        description="Use JSON format for file logs",
    )
    rich_console: bool = Field(
        default=True,
        description="Use Rich for console output",
    )

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# =============================================================================
# Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """Root application configuration.

    Loaded from an optional app.yaml and overridden by environment variables.
    """

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
