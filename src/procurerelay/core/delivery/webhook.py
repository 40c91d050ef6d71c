"""
Outbound webhook delivery.

Wraps a payload in the relay envelope and POSTs it to the configured
endpoint. A 2xx answer counts as delivered; anything else is a soft
failure.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
import orjson

from procurerelay.core.config.models import WebhookConfig
from procurerelay.core.errors import DeliveryError
from procurerelay.core.models import DataKind, Payload

from .retries import RetryConfig, retry_async

logger = logging.getLogger(__name__)


RELAY_SOURCE = "UPSTREAM_RELAY"
TEST_SOURCE = "UPSTREAM_RELAY_TEST"

MAX_BODY_IN_LOG = 500


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_envelope(kind: DataKind, payload: Payload) -> dict[str, Any]:
    """Relay envelope for one dataset."""
    return {
        "timestamp": utc_timestamp(),
        "source": RELAY_SOURCE,
        "data": payload.to_wire(),
        "metadata": {
            "type": kind.value,
            "totalCount": payload.total_count,
            "pageNo": payload.page_no,
            "numOfRows": payload.num_of_rows,
        },
    }


class WebhookSender:
    """Delivers relay envelopes to the outbound webhook."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 30.0,
        test_timeout: float = 10.0,
        max_attempts: int = 1,
        user_agent: str = "ProcureRelay-Webhook/1.0",
        client: httpx.AsyncClient | None = None,
        retry_config: RetryConfig | None = None,
    ):
        """Initialize the webhook sender.

        Args:
            url: Webhook endpoint
            api_key: Bearer token for the Authorization header
            timeout: Delivery timeout in seconds
            test_timeout: Connection test timeout in seconds
            max_attempts: Delivery attempts (1 disables retry)
            user_agent: User-Agent header
            client: Existing httpx client to use (not closed by us)
            retry_config: Full retry configuration, overrides max_attempts
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.test_timeout = test_timeout
        self.user_agent = user_agent
        self.retry_config = retry_config or RetryConfig(
            max_attempts=max_attempts,
            should_retry=_is_retryable,
        )

        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(
        cls,
        config: WebhookConfig,
        client: httpx.AsyncClient | None = None,
    ) -> WebhookSender:
        if not config.url:
            raise ValueError("Webhook URL is required")
        return cls(
            url=config.url,
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            test_timeout=config.test_timeout_seconds,
            max_attempts=config.max_attempts,
            user_agent=config.user_agent,
            client=client,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": self.user_agent,
        }

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    async def deliver(self, kind: DataKind, payload: Payload) -> int:
        """Send one dataset.

        Returns:
            HTTP status code of the accepted delivery

        Raises:
            DeliveryError: On non-2xx status or network failure
        """
        envelope = build_envelope(kind, payload)
        return await retry_async(
            self._post,
            envelope,
            kind=kind,
            timeout=self.timeout,
            config=self.retry_config,
        )

    async def send(self, kind: DataKind, payload: Payload) -> bool:
        """Send one dataset, reporting failure as False instead of raising."""
        try:
            status = await self.deliver(kind, payload)
        except DeliveryError as e:
            logger.error(
                f"Webhook delivery failed for {kind.label}: {e}",
                extra={"kind": kind.value, "status_code": e.status_code, "delivered": False},
            )
            if e.response_body:
                logger.error(f"Webhook response body: {e.response_body[:MAX_BODY_IN_LOG]}")
            return False

        logger.info(
            f"Webhook delivery succeeded for {kind.label}: HTTP {status}",
            extra={"kind": kind.value, "status_code": status, "delivered": True},
        )
        return True

    async def test_connection(self) -> bool:
        """POST a small test payload to check the endpoint accepts us."""
        now = utc_timestamp()
        test_payload = {
            "timestamp": now,
            "source": TEST_SOURCE,
            "message": "Webhook connection test",
            "data": {"test": True, "timestamp": now},
        }
        try:
            status = await self._post(test_payload, timeout=self.test_timeout)
        except DeliveryError as e:
            logger.error(f"Webhook connection test failed: {e}")
            return False

        logger.info(f"Webhook connection test succeeded: HTTP {status}")
        return True

    async def _post(
        self,
        body: dict[str, Any],
        kind: DataKind | None = None,
        timeout: float | None = None,
    ) -> int:
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.url,
                content=orjson.dumps(body),
                headers=self.headers,
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as e:
            raise DeliveryError(
                f"Webhook timed out after {timeout or self.timeout:.0f}s",
                kind=kind,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Webhook request failed: {e}",
                kind=kind,
                cause=e,
            ) from e

        if not response.is_success:
            raise DeliveryError(
                f"Webhook returned HTTP {response.status_code} {response.reason_phrase}",
                kind=kind,
                status_code=response.status_code,
                response_body=response.text,
            )

        return response.status_code

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> WebhookSender:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, DeliveryError) and exc.retryable
