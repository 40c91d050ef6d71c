"""
Configuration loader.

Loads configuration from an optional YAML file into Pydantic models, then
applies environment variable overrides.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from procurerelay.core.errors import ConfigurationError

from .models import AppConfig

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "G2B_BASE_URL": ("upstream", "base_url"),
    "G2B_SERVICE_KEY": ("upstream", "service_key"),
    "WEBHOOK_URL": ("webhook", "url"),
    "WEBHOOK_API_KEY": ("webhook", "api_key"),
    "RELAY_LOG_LEVEL": ("logging", "level"),
}

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dictionary.

    Raises:
        ConfigurationError: If file cannot be read or parsed
    """
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in {path}",
            path=path,
            details=str(e),
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {path}",
            path=path,
            details=str(e),
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping", path=path)
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR} and ${VAR:-default} in string values."""
    if isinstance(data, str):
        return _ENV_PATTERN.sub(
            lambda match: os.environ.get(match.group(1), match.group(2) or ""),
            data,
        )
    if isinstance(data, dict):
        return {k: _expand_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


def _apply_environment(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay well-known environment variables onto raw config data."""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[section] = {**(data.get(section) or {}), key: value}
    return data


def load_app_config(
    path: Path | str | None = None,
    expand_env: bool = True,
    use_environment: bool = True,
) -> AppConfig:
    """Load application configuration.

    Args:
        path: Path to app.yaml (default: configs/app.yaml, optional)
        expand_env: Whether to expand ${VAR} references in the file
        use_environment: Whether to apply environment variable overrides

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    explicit = path is not None
    path = Path(path) if explicit else Path("configs/app.yaml")

    data: dict[str, Any] = {}
    if path.exists() or explicit:
        data = _load_yaml_file(path)
        if expand_env:
            data = _expand_env_vars(data)

    if use_environment:
        data = _apply_environment(data)

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {path}" if explicit else "Invalid configuration",
            path=path if explicit else None,
            details=str(e),
        ) from e


def require_webhook(config: AppConfig) -> str:
    """Return the webhook URL or fail at startup.

    Raises:
        ConfigurationError: If no outbound URL is configured
    """
    url = (config.webhook.url or "").strip()
    if not url:
        raise ConfigurationError(
            "WEBHOOK_URL is not configured; the relay cannot start",
            details="Set WEBHOOK_URL or webhook.url in app.yaml",
        )
    if not url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Webhook URL must be http(s): {url}",
            details="Set WEBHOOK_URL to an absolute http(s) URL",
        )
    return url
