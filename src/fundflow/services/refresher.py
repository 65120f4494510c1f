#!/usr/bin/env python3
"""
Fund Refresher

Periodic full re-fetch of the selected fund's transactions. Each fetch
replaces the fund's cached transactions wholesale.

The refresher is bound to one fund context at a time. Changing or clearing
the context cancels the polling task, and a fetch that was already in flight
is discarded rather than applied to the new context.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from ..core.datastore import StoreError
from ..core.models import Transaction

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[list[Transaction]]]
Applier = Callable[[str, Iterable[Transaction]], None]


class FundRefresher:
    """
    Repeating refresh task for the selected fund.

    Args:
        fetch: Loads every transaction of a fund
        apply: Installs a fetched list into the cache
        interval: Seconds between refreshes
    """

    def __init__(self, fetch: Fetcher, apply: Applier, interval: float = 30.0):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval}")
        self.fetch = fetch
        self.apply = apply
        self.interval = interval
        self.fund_id: str | None = None
        self._context = 0
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, fund_id: str) -> None:
        """Begin polling fund_id, replacing any previous context."""
        self._cancel()
        self.fund_id = fund_id
        self._context += 1
        self._task = asyncio.create_task(self._poll(self._context, fund_id))
        logger.debug("Started refreshing fund %s every %ss", fund_id, self.interval)

    async def stop(self) -> None:
        """Cancel polling and wait for the task to finish."""
        task = self._cancel()
        self.fund_id = None
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _cancel(self) -> asyncio.Task | None:
        self._context += 1
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        return task

    async def refresh_now(self) -> bool:
        """Refresh the current fund once. True if the result was applied."""
        if self.fund_id is None:
            return False
        return await self._refresh(self._context, self.fund_id)

    async def _refresh(self, context: int, fund_id: str) -> bool:
        try:
            transactions = await self.fetch(fund_id)
        except StoreError as e:
            logger.warning("Refresh of fund %s failed: %s", fund_id, e)
            return False

        if context != self._context:
            logger.debug("Discarding refresh of fund %s fetched for a previous context", fund_id)
            return False

        self.apply(fund_id, transactions)
        return True

    async def _poll(self, context: int, fund_id: str) -> None:
        while context == self._context:
            await asyncio.sleep(self.interval)
            if context != self._context:
                break
            await self._refresh(context, fund_id)
