"""Outbound delivery - webhook sender and retries."""

from .retries import RetryConfig, retry_async
from .webhook import RELAY_SOURCE, WebhookSender, build_envelope

__all__ = [
    "RetryConfig",
    "retry_async",
    "WebhookSender",
    "build_envelope",
    "RELAY_SOURCE",
]
