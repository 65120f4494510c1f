#!/usr/bin/env python3
"""Tests for transaction store access."""

import pytest

from fundflow.core.datastore import DocumentNotFoundError
from fundflow.core.models import Split, TransactionInput
from fundflow.services.transactions import TransactionService


@pytest.fixture
def service(store):
    return TransactionService(store)


class TestTransactionService:
    """Test reads, writes and normalization."""

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_create_stamps_times(self, service):
        transaction = await service.create_transaction(
            TransactionInput(
                fund_id="fund-1",
                description="Cà phê",
                amount=60000,
                paid_by="A",
                splits=[Split("A", 30000), Split("B", -30000)],
            )
        )

        stored = await service.get_transaction(transaction.id)
        assert stored == transaction
        assert transaction.created_at == transaction.updated_at == transaction.date

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_create_keeps_supplied_date(self, service):
        transaction = await service.create_transaction(
            TransactionInput(fund_id="fund-1", description="", amount=1000, paid_by="A", date=1_600_000_000_000)
        )

        assert transaction.date == 1_600_000_000_000
        assert transaction.description == "Giao dịch"

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_loose_documents_normalized(self, service, store):
        await store.create("transactions", {"id": "x", "fundId": "fund-1", "amount": "abc", "splits": None})

        transactions = {t.id: t for t in await service.get_fund_transactions("fund-1")}
        assert set(transactions) == {"t1", "t2", "x"}
        assert transactions["x"].amount == 0
        assert transactions["x"].splits == []
        assert transactions["x"].description == "Giao dịch"

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_update_returns_written_fields(self, service):
        written = await service.update_transaction("t1", {"description": "Ăn tối", "createdAt": 1})

        assert written["description"] == "Ăn tối"
        assert "updatedAt" in written
        assert "createdAt" not in written
        assert (await service.get_transaction("t1")).created_at == 1_700_000_000_000

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_update_missing_raises(self, service):
        with pytest.raises(DocumentNotFoundError):
            await service.update_transaction("nope", {"description": "x"})

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_user_transactions_across_funds(self, service):
        transactions = await service.get_user_transactions("C")

        assert transactions[0].id == "t2"
        assert {t.id for t in transactions} == {"t1", "t2", "t3"}
        assert len(transactions) == 3

    @pytest.mark.unit
    @pytest.mark.services
    @pytest.mark.asyncio
    async def test_delete(self, service):
        await service.delete_transaction("t1")
        assert await service.get_transaction("t1") is None
