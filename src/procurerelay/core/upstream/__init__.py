"""Upstream procurement API access."""

from .client import DETAIL_OPERATIONS, LIST_OPERATIONS, UpstreamClient
from .query import ApiStatus, ProcurementQueryService, QueryResult

__all__ = [
    "UpstreamClient",
    "LIST_OPERATIONS",
    "DETAIL_OPERATIONS",
    "ProcurementQueryService",
    "QueryResult",
    "ApiStatus",
]
