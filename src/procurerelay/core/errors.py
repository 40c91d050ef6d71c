"""
Relay error taxonomy.

UpstreamError and DeliveryError are recoverable and never escape a dispatch;
ConfigurationError is raised only while the relay is being built.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from procurerelay.core.models import DataKind


class RelayError(Exception):
    """Base exception for relay errors."""

    def __init__(
        self,
        message: str,
        kind: DataKind | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.cause = cause


class UpstreamError(RelayError):
    """Upstream procurement API call failed or returned an unusable body."""
    pass


class DeliveryError(RelayError):
    """Outbound webhook delivery failed."""

    def __init__(
        self,
        message: str,
        kind: DataKind | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, kind=kind, status_code=status_code, cause=cause)
        self.response_body = response_body

    @property
    def retryable(self) -> bool:
        """Transport failures, 429 and 5xx responses are worth another attempt."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class ConfigurationError(RelayError):
    """Configuration loading or validation error."""

    def __init__(self, message: str, path: Path | None = None, details: str | None = None):
        super().__init__(message)
        self.path = path
        self.details = details
