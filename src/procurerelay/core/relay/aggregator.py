"""
Relay status aggregator.

Dispatches every data kind, optionally in parallel, and collects the
outcomes. One kind failing (or hanging past the deadline) never stops the
others from reporting.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable

from procurerelay.core.models import AggregateResult, DataKind, FetchParams, RelayOutcome

from .dispatcher import RelayDispatcher

logger = logging.getLogger(__name__)

_KIND_ORDER = {kind: index for index, kind in enumerate(DataKind)}


class RelayAggregator:
    """Runs the dispatcher for all data kinds and summarizes delivery."""

    def __init__(
        self,
        dispatcher: RelayDispatcher,
        *,
        concurrent: bool = True,
        deadline: float | None = None,
        kinds: Iterable[DataKind] | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            dispatcher: Dispatcher used for each kind
            concurrent: Run kinds in parallel tasks
            deadline: Seconds to wait before abandoning pending kinds
            kinds: Kinds to relay (default: all)
        """
        self.dispatcher = dispatcher
        self.concurrent = concurrent
        self.deadline = deadline
        self.kinds = tuple(kinds or DataKind)

    async def relay_all(self, params: FetchParams | None = None) -> AggregateResult:
        """Relay every kind and return the collected outcomes.

        Kinds abandoned at the deadline are left out, so the result may be
        partial (``complete`` is False); that is not an error.
        """
        params = params or FetchParams()

        if self.concurrent:
            outcomes = await self._run_concurrently(params)
        else:
            outcomes = await self._run_sequentially(params)

        outcomes.sort(key=lambda outcome: _KIND_ORDER[outcome.kind])
        result = AggregateResult(outcomes=tuple(outcomes))

        if result.complete:
            logger.info(result.summary)
        else:
            missing = [kind.value for kind in self.kinds if result.outcome_for(kind) is None]
            logger.warning(f"{result.summary} (no outcome for: {', '.join(missing)})")

        return result

    async def _run_concurrently(self, params: FetchParams) -> list[RelayOutcome]:
        tasks = {
            asyncio.create_task(
                self._dispatch_isolated(kind, params),
                name=f"relay-{kind.value}",
            ): kind
            for kind in self.kinds
        }

        try:
            done, pending = await asyncio.wait(tasks, timeout=self.deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            for task in pending:
                logger.warning(f"Abandoning {tasks[task].value} relay after {self.deadline}s deadline")
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        return [task.result() for task in done]

    async def _run_sequentially(self, params: FetchParams) -> list[RelayOutcome]:
        loop = asyncio.get_running_loop()
        stop_at = loop.time() + self.deadline if self.deadline else None
        outcomes: list[RelayOutcome] = []

        for kind in self.kinds:
            if stop_at is None:
                outcomes.append(await self._dispatch_isolated(kind, params))
                continue

            remaining = stop_at - loop.time()
            if remaining <= 0:
                logger.warning(f"Skipping {kind.value} relay, deadline passed")
                continue
            try:
                outcomes.append(
                    await asyncio.wait_for(self._dispatch_isolated(kind, params), remaining)
                )
            except asyncio.TimeoutError:
                logger.warning(f"Abandoning {kind.value} relay after {self.deadline}s deadline")

        return outcomes

    async def _dispatch_isolated(self, kind: DataKind, params: FetchParams) -> RelayOutcome:
        """Dispatch one kind; unexpected errors become an undelivered outcome."""
        started = time.perf_counter()
        try:
            return await self.dispatcher.dispatch(kind, params)
        except Exception:
            logger.exception(f"Relay for {kind.value} failed unexpectedly")
            return RelayOutcome(
                kind=kind,
                delivered=False,
                item_count=0,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )
