#!/usr/bin/env python3
"""
Fund Session

The selected-fund context of one user session. Switching funds cancels the
refresher, discards any AI proposal and loads the new fund. Every selection
takes a token; an older selection still loading when a newer one starts is
abandoned and never starts polling.
"""

import logging

from ..core.models import Balance, Fund, Transaction
from ..splits.balances import calculate_balances, sort_balances_for_display
from .funds import FundService
from .lifecycle import TransactionLifecycle
from .proposal import ProposalFlow
from .refresher import FundRefresher

logger = logging.getLogger(__name__)


class FundSession:
    """Selected fund plus the components whose lifetime is tied to it."""

    def __init__(
        self,
        funds: FundService,
        lifecycle: TransactionLifecycle,
        poll_interval_seconds: float = 30.0,
    ):
        self.funds = funds
        self.lifecycle = lifecycle
        self.proposal = ProposalFlow()
        self.refresher = FundRefresher(
            lifecycle.service.get_fund_transactions,
            lifecycle.replace_fund_transactions,
            interval=poll_interval_seconds,
        )
        self.fund: Fund | None = None
        self._selection = 0

    @property
    def fund_id(self) -> str | None:
        return self.fund.id if self.fund is not None else None

    async def select_fund(self, fund_id: str) -> Fund | None:
        """
        Make fund_id the selected fund.

        Returns the fund, or None if it does not exist (the selection is
        then cleared) or a later selection superseded this one while it was
        loading. A superseded call leaves the newer selection untouched.
        """
        selection = await self._begin_selection()
        if selection is None:
            return None

        fund = await self.funds.get_fund(fund_id)
        if not self._is_current(selection, fund_id):
            return None
        if fund is None:
            logger.warning("Fund %s not found", fund_id)
            return None

        self.fund = fund
        await self.lifecycle.load_fund(fund_id)
        if not self._is_current(selection, fund_id):
            return None

        self.refresher.start(fund_id)
        logger.info("Selected fund %s (%s)", fund_id, fund.name)
        return fund

    async def clear_selection(self) -> None:
        await self._begin_selection()

    async def _begin_selection(self) -> int | None:
        """
        Tear down the current context and return the new selection token.

        None if another selection started while the refresher was stopping.
        """
        self._selection += 1
        selection = self._selection
        await self.refresher.stop()
        if selection != self._selection:
            return None
        self.proposal.discard()
        self.fund = None
        return selection

    def _is_current(self, selection: int, fund_id: str) -> bool:
        if selection == self._selection:
            return True
        logger.info("Selection of fund %s was superseded", fund_id)
        return False

    async def close(self) -> None:
        await self.clear_selection()

    def transactions(self) -> list[Transaction]:
        if self.fund is None:
            return []
        return self.lifecycle.fund_transactions(self.fund.id)

    def balances(self) -> list[Balance]:
        """Selected fund's balances, largest creditor first."""
        if self.fund is None:
            return []
        return sort_balances_for_display(calculate_balances(self.fund.id, self.lifecycle.transactions))
