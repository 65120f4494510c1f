#!/usr/bin/env python3
"""Tests for the selected-fund session."""

import asyncio
from dataclasses import replace

import pytest

from fundflow.core.datastore import InMemoryDocumentStore
from fundflow.services.funds import FundService
from fundflow.services.lifecycle import TransactionLifecycle
from fundflow.services.proposal import ProposalState
from fundflow.services.session import FundSession
from fundflow.services.transactions import TransactionService


class SlowFundService(FundService):
    """Holds the lookup of one fund until released."""

    def __init__(self, store, slow_fund_id):
        super().__init__(store)
        self.slow_fund_id = slow_fund_id
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def get_fund(self, fund_id):
        if fund_id == self.slow_fund_id:
            self.entered.set()
            await self.release.wait()
        return await super().get_fund(fund_id)


@pytest.fixture
def session(store):
    return FundSession(FundService(store), TransactionLifecycle(TransactionService(store)), poll_interval_seconds=3600)


class TestFundSession:
    """Test fund selection and derived views."""

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_select_fund_loads_transactions(self, session):
        fund = await session.select_fund("fund-1")

        assert fund.name == "Tam Đảo"
        assert session.fund_id == "fund-1"
        assert {t.id for t in session.transactions()} == {"t1", "t2"}
        assert [(b.user_id, b.amount) for b in session.balances()] == [
            ("A", 170000),
            ("B", -40000),
            ("C", -130000),
        ]
        assert session.refresher.is_running
        await session.close()
        assert not session.refresher.is_running

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_unknown_fund_clears_selection(self, session):
        await session.select_fund("fund-1")

        assert await session.select_fund("nope") is None
        assert session.fund is None
        assert session.transactions() == []
        assert session.balances() == []
        assert not session.refresher.is_running

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_switching_funds_discards_proposal(self, session):
        await session.select_fund("fund-1")
        session.proposal.start_drafting("Hưng trả 300k")
        token = session.proposal.begin_processing()

        await session.select_fund("fund-1")

        assert session.proposal.state == ProposalState.DISCARDED
        assert not session.proposal.is_current(token)
        await session.close()

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_overlapping_switches_keep_latest_fund(self, members, fund, sample_transactions):
        other = replace(fund, id="fund-2", name="Đà Lạt")
        store = InMemoryDocumentStore(
            {
                "users": [m.to_dict() for m in members],
                "funds": [fund.to_dict(), other.to_dict()],
                "transactions": [t.to_dict() for t in sample_transactions],
            }
        )
        funds = SlowFundService(store, slow_fund_id="fund-1")
        session = FundSession(funds, TransactionLifecycle(TransactionService(store)), poll_interval_seconds=3600)

        first = asyncio.create_task(session.select_fund("fund-1"))
        await funds.entered.wait()
        second = await session.select_fund("fund-2")
        funds.release.set()

        assert await first is None
        assert second.id == "fund-2"
        assert (session.fund_id, session.refresher.fund_id) == ("fund-2", "fund-2")
        assert session.refresher.is_running
        await session.close()

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_close_abandons_loading_selection(self, store):
        funds = SlowFundService(store, slow_fund_id="fund-1")
        session = FundSession(funds, TransactionLifecycle(TransactionService(store)), poll_interval_seconds=3600)

        pending = asyncio.create_task(session.select_fund("fund-1"))
        await funds.entered.wait()
        await session.close()
        funds.release.set()

        assert await pending is None
        assert session.fund is None
        assert not session.refresher.is_running
