"""
Relay service - wiring for the operations the HTTP layer consumes.

Built once at startup from AppConfig; a missing webhook URL fails here
instead of on every call.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from procurerelay.core.config.loader import require_webhook
from procurerelay.core.config.models import AppConfig
from procurerelay.core.delivery.webhook import WebhookSender
from procurerelay.core.models import AggregateResult, DataKind, FetchParams, RelayOutcome
from procurerelay.core.upstream.client import UpstreamClient

from .aggregator import RelayAggregator
from .dispatcher import RelayDispatcher

logger = logging.getLogger(__name__)


class RelayService:
    """Upstream-to-webhook relay.

    Owns one shared httpx client for both network boundaries. Use as an
    async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the relay service.

        Args:
            config: Application configuration
            client: Shared HTTP client (created and owned if omitted)

        Raises:
            ConfigurationError: If the webhook is not configured
        """
        require_webhook(config)

        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(max(config.upstream.timeout_seconds, config.webhook.timeout_seconds)),
            follow_redirects=True,
        )

        self.upstream = UpstreamClient.from_config(config.upstream, client=self.client)
        self.sender = WebhookSender.from_config(config.webhook, client=self.client)
        self.dispatcher = RelayDispatcher(self.upstream, self.sender)
        self.aggregator = RelayAggregator(
            self.dispatcher,
            concurrent=config.relay.concurrent,
            deadline=config.relay.deadline_seconds,
        )

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> RelayService:
        return cls(config, **kwargs)

    def default_params(self) -> FetchParams:
        return FetchParams(
            page_no=self.config.relay.default_page_no,
            num_of_rows=self.config.relay.default_num_of_rows,
        )

    async def dispatch(self, kind: DataKind, params: FetchParams | None = None) -> RelayOutcome:
        """Relay a single data kind."""
        return await self.dispatcher.dispatch(kind, params or self.default_params())

    async def relay_all(self, params: FetchParams | None = None) -> AggregateResult:
        """Relay every data kind."""
        return await self.aggregator.relay_all(params or self.default_params())

    async def relay_status(self, params: FetchParams | None = None) -> dict[str, bool]:
        """Relay every data kind and return the per-kind delivery flags."""
        result = await self.relay_all(params)
        return result.relay_status()

    async def test_webhook(self) -> bool:
        return await self.sender.test_connection()

    async def close(self) -> None:
        if self._owns_client and not self.client.is_closed:
            await self.client.aclose()

    async def __aenter__(self) -> RelayService:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
