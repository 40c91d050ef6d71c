"""Relay - dispatch per data kind, aggregation, service wiring."""

from .aggregator import RelayAggregator
from .dispatcher import DEFAULT_ROUTES, RelayDispatcher, RelayRoute
from .service import RelayService

__all__ = [
    "RelayDispatcher",
    "RelayRoute",
    "DEFAULT_ROUTES",
    "RelayAggregator",
    "RelayService",
]
