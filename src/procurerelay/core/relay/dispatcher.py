"""
Relay dispatcher.

Runs one data kind through: fetch from upstream (or substitute) -> deliver
to the webhook -> RelayOutcome. Upstream and delivery failures never
escape ``dispatch``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Mapping

from procurerelay.core import substitute
from procurerelay.core.delivery.webhook import WebhookSender
from procurerelay.core.errors import UpstreamError
from procurerelay.core.logging import ContextualLogger, get_contextual_logger
from procurerelay.core.models import DataKind, FetchParams, Payload, PayloadSource, RelayOutcome
from procurerelay.core.upstream.client import LIST_OPERATIONS, UpstreamClient


@dataclass(frozen=True)
class RelayRoute:
    """How one data kind is fetched and substituted."""

    operation: str
    substitute: Callable[[DataKind], Payload]


DEFAULT_ROUTES: dict[DataKind, RelayRoute] = {
    kind: RelayRoute(operation=LIST_OPERATIONS[kind], substitute=substitute.generate)
    for kind in DataKind
}


class RelayDispatcher:
    """Fetch-or-substitute then deliver, for a single data kind per call.

    Holds no state between calls; every dispatch builds its own payload
    and outcome.
    """

    def __init__(
        self,
        upstream: UpstreamClient,
        sender: WebhookSender,
        routes: Mapping[DataKind, RelayRoute] | None = None,
    ) -> None:
        self.upstream = upstream
        self.sender = sender
        self.routes = dict(routes or DEFAULT_ROUTES)

    async def dispatch(self, kind: DataKind, params: FetchParams | None = None) -> RelayOutcome:
        """Relay one page of ``kind`` data.

        Args:
            kind: Data kind to relay
            params: Paging and date window for the upstream query

        Returns:
            RelayOutcome; ``delivered`` is False when the webhook refused
            or could not be reached
        """
        params = params or FetchParams()
        route = self.routes[kind]
        log = get_contextual_logger("relay", kind=kind)
        started = time.perf_counter()

        payload, source = await self._obtain_payload(kind, params, route, log)

        log.info(f"Sending {kind.label} data to webhook ({payload.item_count} items)")
        delivered = await self.sender.send(kind, payload)

        duration_ms = int((time.perf_counter() - started) * 1000)
        outcome = RelayOutcome(
            kind=kind,
            delivered=delivered,
            item_count=payload.item_count,
            duration_ms=duration_ms,
            source=source,
            payload=payload,
        )

        log.info(
            f"{kind.label.capitalize()} relay finished: "
            f"{'delivered' if delivered else 'not delivered'} in {duration_ms}ms",
            extra={
                "delivered": delivered,
                "duration_ms": duration_ms,
                "source": source.value,
            },
        )
        return outcome

    async def _obtain_payload(
        self,
        kind: DataKind,
        params: FetchParams,
        route: RelayRoute,
        log: ContextualLogger,
    ) -> tuple[Payload, PayloadSource]:
        try:
            payload = await self.upstream.fetch(kind, params, operation=route.operation)
        except UpstreamError as e:
            log.warning(
                f"Upstream call failed, using substitute {kind.label} data: {e}",
                extra={"operation": route.operation, "status_code": e.status_code},
            )
            return route.substitute(kind), PayloadSource.SUBSTITUTE

        log.info(
            f"Received live {kind.label} data from upstream "
            f"({payload.item_count} of {payload.total_count})",
            extra={"operation": route.operation},
        )
        return payload, PayloadSource.LIVE
