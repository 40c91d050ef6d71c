"""
Upstream procurement API client using httpx.

Issues paged queries for each data kind and turns the response envelope
into a Payload. Every failure surfaces as UpstreamError; there is no
internal retry, callers substitute instead.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from procurerelay.core.config.models import UpstreamConfig
from procurerelay.core.errors import UpstreamError
from procurerelay.core.models import DataKind, FetchParams, Payload

logger = logging.getLogger(__name__)


# Upstream operation per data kind
LIST_OPERATIONS: dict[DataKind, str] = {
    DataKind.BID_NOTICE: "getBidPblancListInfoServc",
    DataKind.PRE_NOTICE: "getPreBidPblancListInfoServc",
    DataKind.CONTRACT: "getCntrctInfoServc",
}

# Detail operation and its key parameter
DETAIL_OPERATIONS: dict[DataKind, tuple[str, str]] = {
    DataKind.BID_NOTICE: ("getBidPblancDetailInfoServc", "bidNtceNo"),
    DataKind.CONTRACT: ("getCntrctDetailInfoServc", "cntrctNo"),
}

SUCCESS_RESULT_CODES = {"00"}

# Keep error text in exceptions and logs short
MAX_ERROR_TEXT = 300


class UpstreamClient:
    """Async client for the upstream procurement open-data API.

    Features:
    - Shared connection pool (pass ``client`` to reuse one)
    - Kind-to-operation routing
    - Envelope and result-code checking
    """

    def __init__(
        self,
        base_url: str,
        service_key: str = "",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
        operations: Mapping[DataKind, str] | None = None,
    ):
        """Initialize the upstream client.

        Args:
            base_url: API base URL; operation names are appended to it
            service_key: Service credential sent as ``serviceKey``
            timeout: Request timeout in seconds
            client: Existing httpx client to use (not closed by us)
            operations: Override of the kind-to-operation table
        """
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.operations = dict(operations or LIST_OPERATIONS)

        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(
        cls,
        config: UpstreamConfig,
        client: httpx.AsyncClient | None = None,
    ) -> UpstreamClient:
        return cls(
            base_url=config.base_url,
            service_key=config.service_key,
            timeout=config.timeout_seconds,
            client=client,
        )

    @property
    def has_service_key(self) -> bool:
        return bool(self.service_key)

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    async def fetch(
        self,
        kind: DataKind,
        params: FetchParams,
        filters: Mapping[str, str] | None = None,
        operation: str | None = None,
    ) -> Payload:
        """Fetch one page of ``kind`` data.

        Args:
            kind: Data kind to query
            params: Paging and date window
            filters: Extra upstream query parameters (e.g. ``bidNtceNm``)
            operation: Operation name overriding the kind default

        Returns:
            Payload built from the response body

        Raises:
            UpstreamError: On network failure, bad status or unusable body
        """
        query = {k: v for k, v in (filters or {}).items() if v}
        query.update(params.to_query())

        body = await self._request(kind, operation or self.operations[kind], query)
        return self._to_payload(kind, body)

    async def fetch_detail(self, kind: DataKind, key: str) -> Payload:
        """Fetch a single record by its natural key.

        Raises:
            UpstreamError: On any failure
            ValueError: If ``kind`` has no detail operation
        """
        if kind not in DETAIL_OPERATIONS:
            raise ValueError(f"No detail operation for {kind.value}")

        operation, key_param = DETAIL_OPERATIONS[kind]
        body = await self._request(kind, operation, {key_param: key})
        return self._to_payload(kind, body)

    async def check_status(self) -> bool:
        """Check whether the upstream answers a one-row bid notice query."""
        try:
            await self.fetch(DataKind.BID_NOTICE, FetchParams(page_no=1, num_of_rows=1))
        except UpstreamError as e:
            logger.debug(f"Upstream status check failed: {e}")
            return False
        return True

    def public_config(self) -> dict[str, Any]:
        """Client settings safe to expose; never includes the service key."""
        return {
            "base_url": self.base_url,
            "timeout_seconds": self.timeout,
            "operations": {kind.value: op for kind, op in self.operations.items()},
            "has_service_key": self.has_service_key,
        }

    async def _request(
        self,
        kind: DataKind,
        operation: str,
        query: Mapping[str, str],
    ) -> Mapping[str, Any]:
        """Issue the GET and return the ``response.body`` mapping."""
        client = await self._ensure_client()
        url = f"{self.base_url}/{operation}"
        params = {
            "serviceKey": self.service_key,
            "type": "json",
            **query,
        }

        logger.debug(f"GET {url} ({kind.value})")

        try:
            response = await client.get(url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"Upstream {operation} timed out after {self.timeout:.0f}s",
                kind=kind,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"Upstream {operation} request failed: {e}",
                kind=kind,
                cause=e,
            ) from e

        if not response.is_success:
            raise UpstreamError(
                f"Upstream {operation} returned HTTP {response.status_code}: "
                f"{response.text[:MAX_ERROR_TEXT]}",
                kind=kind,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            # The portal answers auth failures with an XML document
            raise UpstreamError(
                f"Upstream {operation} returned non-JSON content: "
                f"{response.text[:MAX_ERROR_TEXT]}",
                kind=kind,
                status_code=response.status_code,
                cause=e,
            ) from e

        envelope = data.get("response") if isinstance(data, Mapping) else None
        if not isinstance(envelope, Mapping) or not isinstance(envelope.get("body"), Mapping):
            raise UpstreamError(
                f"Upstream {operation} response has no response.body",
                kind=kind,
                status_code=response.status_code,
            )

        header = envelope.get("header") or {}
        result_code = header.get("resultCode") if isinstance(header, Mapping) else None
        if result_code is not None and str(result_code) not in SUCCESS_RESULT_CODES:
            raise UpstreamError(
                f"Upstream {operation} result {result_code}: {header.get('resultMsg', '')}",
                kind=kind,
                status_code=response.status_code,
            )

        return envelope["body"]

    def _to_payload(self, kind: DataKind, body: Mapping[str, Any]) -> Payload:
        try:
            return Payload.from_body(kind, body)
        except ValueError as e:
            raise UpstreamError(
                f"Upstream {kind.label} body is not usable: {e}",
                kind=kind,
                cause=e,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> UpstreamClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
