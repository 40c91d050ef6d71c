"""CLI command modules."""

from . import relay, upstream

__all__ = [
    "relay",
    "upstream",
]
