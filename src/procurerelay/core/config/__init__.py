"""Configuration loading and validation."""

from .models import (
    AppConfig,
    UpstreamConfig,
    WebhookConfig,
    RelayConfig,
    LoggingConfig,
)
from .loader import load_app_config, require_webhook

__all__ = [
    # Config models
    "AppConfig",
    "UpstreamConfig",
    "WebhookConfig",
    "RelayConfig",
    "LoggingConfig",
    # Loaders
    "load_app_config",
    "require_webhook",
]
