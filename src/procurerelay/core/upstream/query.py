"""
Status-aware procurement query service.

Used by the surrounding backend to query bid and contract data. When no
service key is configured it answers from the substitute generator and
says so in every result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from procurerelay.core import substitute
from procurerelay.core.models import DataKind, FetchParams, Payload

from .client import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Query answer plus whether it came from substitute data."""

    payload: Payload
    using_substitute: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_wire() for item in self.payload.items],
            "pagination": {
                "pageNo": self.payload.page_no,
                "numOfRows": self.payload.num_of_rows,
                "totalCount": self.payload.total_count,
            },
            "isUsingMockData": self.using_substitute,
        }


@dataclass(frozen=True)
class ApiStatus:
    """Upstream availability snapshot."""

    available: bool
    using_substitute: bool
    config: dict[str, Any]
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "isAvailable": self.available,
            "isUsingMockData": self.using_substitute,
            "config": self.config,
            "timestamp": self.checked_at.isoformat(),
        }


class ProcurementQueryService:
    """Bid and contract queries with transparent substitute mode.

    Outside substitute mode, UpstreamError propagates so the HTTP layer can
    map it to its own error response.
    """

    def __init__(self, client: UpstreamClient, substitute_mode: bool | None = None):
        """Initialize the query service.

        Args:
            client: Upstream client
            substitute_mode: Force substitute mode on/off; by default it is
                on when the client has no service key
        """
        self.client = client
        if substitute_mode is None:
            substitute_mode = not client.has_service_key
        self.substitute_mode = substitute_mode

        if self.substitute_mode:
            logger.info("No upstream service key configured, answering with substitute data")

    async def list_bids(
        self,
        params: FetchParams | None = None,
        keyword: str | None = None,
        institution: str | None = None,
        method: str | None = None,
    ) -> QueryResult:
        """List bid notices, optionally filtered by name, agency or method."""
        filters = {
            "bidNtceNm": keyword,
            "dminsttNm": institution,
            "bidMethdNm": method,
        }
        return await self._list(DataKind.BID_NOTICE, params, filters)

    async def list_pre_notices(self, params: FetchParams | None = None) -> QueryResult:
        return await self._list(DataKind.PRE_NOTICE, params, {})

    async def list_contracts(
        self,
        params: FetchParams | None = None,
        keyword: str | None = None,
        institution: str | None = None,
    ) -> QueryResult:
        """List contracts, optionally filtered by name or agency."""
        filters = {
            "cntrctNm": keyword,
            "dminsttNm": institution,
        }
        return await self._list(DataKind.CONTRACT, params, filters)

    async def bid_detail(self, bid_notice_no: str) -> QueryResult:
        return await self._detail(DataKind.BID_NOTICE, bid_notice_no)

    async def contract_detail(self, contract_no: str) -> QueryResult:
        return await self._detail(DataKind.CONTRACT, contract_no)

    async def status(self) -> ApiStatus:
        """Report availability; substitute mode always counts as available."""
        available = True if self.substitute_mode else await self.client.check_status()
        return ApiStatus(
            available=available,
            using_substitute=self.substitute_mode,
            config=self.client.public_config(),
        )

    async def _list(
        self,
        kind: DataKind,
        params: FetchParams | None,
        filters: dict[str, str | None],
    ) -> QueryResult:
        params = params or FetchParams()
        if self.substitute_mode:
            return QueryResult(substitute.generate_page(kind, params), using_substitute=True)

        clean = {k: v for k, v in filters.items() if v}
        payload = await self.client.fetch(kind, params, filters=clean)
        return QueryResult(payload, using_substitute=False)

    async def _detail(self, kind: DataKind, key: str) -> QueryResult:
        if not key:
            raise ValueError(f"A {kind.label} number is required")
        if self.substitute_mode:
            return QueryResult(substitute.generate_detail(kind, key), using_substitute=True)

        payload = await self.client.fetch_detail(kind, key)
        return QueryResult(payload, using_substitute=False)
