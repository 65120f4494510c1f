#!/usr/bin/env python3
"""
Transaction Service

Store access for the "transactions" collection. Documents written by older
clients are loosely typed; every read goes through Transaction.from_dict,
which normalizes them.
"""

import logging
from typing import Any

from ..core.datastore import DocumentStore
from ..core.models import DEFAULT_TRANSACTION_DESCRIPTION, Transaction, TransactionInput, now_millis

logger = logging.getLogger(__name__)

TRANSACTIONS_COLLECTION = "transactions"

PROTECTED_FIELDS = ("id", "createdAt")


class TransactionService:
    """Transactions stored in the "transactions" collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_transaction(self, tx_input: TransactionInput) -> Transaction:
        """
        Persist a new transaction.

        createdAt and updatedAt are stamped now; date defaults to now unless
        the caller supplied one.
        """
        now = now_millis()
        document = tx_input.to_document()
        if not isinstance(document.get("amount"), (int, float)) or isinstance(document.get("amount"), bool):
            document["amount"] = 0
        document["description"] = document.get("description") or DEFAULT_TRANSACTION_DESCRIPTION
        document["createdAt"] = now
        document["updatedAt"] = now
        document.setdefault("date", now)

        doc_id = await self.store.create(TRANSACTIONS_COLLECTION, document)
        logger.debug("Created transaction %s in fund %s", doc_id, tx_input.fund_id)
        return Transaction.from_dict({**document, "id": doc_id})

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        document = await self.store.get(TRANSACTIONS_COLLECTION, transaction_id)
        return Transaction.from_dict(document) if document is not None else None

    async def get_fund_transactions(self, fund_id: str) -> list[Transaction]:
        documents = await self.store.query(TRANSACTIONS_COLLECTION, "fundId", fund_id)
        return [Transaction.from_dict(document) for document in documents]

    async def update_transaction(self, transaction_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """
        Apply document-shaped changes and return what was written.

        Raises:
            DocumentNotFoundError: If the transaction does not exist
        """
        update = {key: value for key, value in changes.items() if key not in PROTECTED_FIELDS}
        update["updatedAt"] = now_millis()
        await self.store.update(TRANSACTIONS_COLLECTION, transaction_id, update)
        return update

    async def delete_transaction(self, transaction_id: str) -> None:
        await self.store.delete(TRANSACTIONS_COLLECTION, transaction_id)

    async def get_user_transactions(self, user_id: str) -> list[Transaction]:
        """
        Transactions across all funds where the user paid or has a split,
        newest first, each listed once.
        """
        paid = await self.store.query(TRANSACTIONS_COLLECTION, "paidBy", user_id)
        merged: dict[str, Transaction] = {}
        for document in paid:
            transaction = Transaction.from_dict(document)
            merged[transaction.id] = transaction

        for document in await self.store.all(TRANSACTIONS_COLLECTION):
            transaction = Transaction.from_dict(document)
            if transaction.id not in merged and transaction.split_for(user_id) is not None:
                merged[transaction.id] = transaction

        return sorted(merged.values(), key=lambda t: t.effective_date, reverse=True)
