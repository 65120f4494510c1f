#!/usr/bin/env python3
"""
Transaction Lifecycle

Coordinates creating, updating and deleting transactions: split computation,
save-time validation, persistence, the local transaction cache and
notification side effects.

Every payload is validated before it is written, whether its splits were
computed here, typed by the user or proposed by the LLM: the payer and each
split user must be fund members and the splits must balance within the
validation policy's reject tolerance.

Failure contract:
- Store failures and rejected payloads are caught here, reported through the
  error reporter as a user-facing message, and abort the operation
- The local cache only changes after the store confirmed the write
- No retry and no optimistic update to roll back
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from ..ai.models import Severity, ValidationIssue
from ..ai.validator import TransactionValidationError, TransactionValidator, ValidationPolicy
from ..core.currency import Amount
from ..core.datastore import DocumentNotFoundError, StoreError
from ..core.models import Split, Transaction, TransactionInput, User, now_millis
from ..splits.calculator import SplitStrategy, compute_splits
from .funds import FundService
from .notifications import NotificationDispatcher, send_transaction_notification
from .transactions import TRANSACTIONS_COLLECTION, TransactionService
from .users import UserDirectory

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[str], None]

# Document fields whose change can unbalance a stored transaction
BALANCE_FIELDS = frozenset({"amount", "paidBy", "splits"})


@dataclass
class SplitRequest:
    """Ask the lifecycle to compute splits instead of trusting the caller's."""

    strategy: SplitStrategy
    participant_ids: list[str] = field(default_factory=list)
    weights: Mapping[str, Amount] | None = None
    payer_participates: bool | None = None


def _document_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Accept Split objects in "splits" alongside plain documents."""
    document = dict(changes)
    if isinstance(document.get("splits"), list):
        document["splits"] = [s.to_dict() if isinstance(s, Split) else s for s in document["splits"]]
    return document


class TransactionLifecycle:
    """
    Owner of the in-memory transaction list for a session.

    Args:
        service: Store access for transactions
        users: Directory used to name the creator in notifications
        dispatcher: Notification delivery; None disables notifications
        error_reporter: Receives user-facing failure messages
        policy: Imbalance tolerances applied at save time
    """

    def __init__(
        self,
        service: TransactionService,
        users: UserDirectory | None = None,
        dispatcher: NotificationDispatcher | None = None,
        error_reporter: ErrorReporter | None = None,
        policy: ValidationPolicy | None = None,
    ):
        self.service = service
        self.users = users
        self.dispatcher = dispatcher
        self.error_reporter = error_reporter
        self.policy = policy or ValidationPolicy()
        self.transactions: list[Transaction] = []

    def fund_transactions(self, fund_id: str) -> list[Transaction]:
        return [t for t in self.transactions if t.fund_id == fund_id]

    def _merge(self, transaction: Transaction) -> None:
        for index, cached in enumerate(self.transactions):
            if cached.id == transaction.id:
                self.transactions[index] = transaction
                return
        self.transactions.append(transaction)

    def replace_fund_transactions(self, fund_id: str, transactions: Iterable[Transaction]) -> None:
        """Swap the fund's slice of the cache for a freshly fetched list."""
        fresh = [t for t in transactions if t.fund_id == fund_id]
        self.transactions = [t for t in self.transactions if t.fund_id != fund_id] + fresh
        logger.debug("Replaced %d cached transaction(s) for fund %s", len(fresh), fund_id)

    async def load_fund(self, fund_id: str) -> list[Transaction] | None:
        """Fetch a fund's transactions into the cache. None on store failure."""
        try:
            transactions = await self.service.get_fund_transactions(fund_id)
        except StoreError as e:
            self._report(f"Could not load transactions: {e}")
            return None
        self.replace_fund_transactions(fund_id, transactions)
        return self.fund_transactions(fund_id)

    async def check_transaction(
        self,
        transaction: Transaction | TransactionInput,
        member_ids: Iterable[str] = (),
    ) -> list[ValidationIssue]:
        """
        Validate a transaction that is about to be written.

        Args:
            transaction: Content to save
            member_ids: Fund members; read from the fund document when empty

        Returns:
            Advisory warnings (small imbalances, missing description)

        Raises:
            TransactionValidationError: If the transaction must not be saved
            StoreError: If the fund's members cannot be read
        """
        members = list(member_ids)
        if not members:
            fund = await FundService(self.service.store).get_fund(transaction.fund_id)
            if fund is None:
                raise TransactionValidationError(
                    [ValidationIssue("fundId", f"Fund {transaction.fund_id} not found", Severity.ERROR)]
                )
            members = fund.members

        validator = TransactionValidator([User(id=m, display_name=m) for m in members], self.policy)
        result = validator.validate_response(
            {
                "description": transaction.description,
                "amount": transaction.amount,
                "paidBy": transaction.paid_by,
                "splits": transaction.splits,
            }
        )
        return result.warnings

    async def create_transaction(
        self,
        tx_input: TransactionInput,
        split_request: SplitRequest | None = None,
        member_ids: Iterable[str] = (),
        created_by: str | None = None,
    ) -> Transaction | None:
        """
        Validate a transaction, create it and add it to the cache.

        Args:
            tx_input: Transaction content; its splits are used as given
                unless split_request is set
            split_request: Strategy to compute splits with
            member_ids: Fund members, for validation, selective splits, the
                even-split default participants and notification recipients.
                Read from the fund document when empty.
            created_by: User who entered it, left out of notifications
                (defaults to the payer)

        Returns:
            The persisted transaction, or None if it was rejected or the
            store failed

        Raises:
            SplitCalculationError: If split_request cannot be satisfied
        """
        members = list(member_ids)
        if split_request is not None:
            tx_input.splits = compute_splits(
                split_request.strategy,
                tx_input.amount,
                tx_input.paid_by,
                participant_ids=split_request.participant_ids,
                member_ids=members,
                weights=split_request.weights,
                payer_participates=split_request.payer_participates,
            )
        if tx_input.date is None:
            tx_input.date = now_millis()

        try:
            await self.check_transaction(tx_input, members)
            transaction = await self.service.create_transaction(tx_input)
        except TransactionValidationError as e:
            self._report(f"Transaction rejected: {e}")
            return None
        except StoreError as e:
            self._report(f"Could not create transaction: {e}")
            return None

        self._merge(transaction)
        logger.info("Created transaction %s (%s) in fund %s", transaction.id, transaction.description, transaction.fund_id)

        await self._notify(transaction, members, created_by or transaction.paid_by)
        return transaction

    async def update_transaction(
        self,
        transaction_id: str,
        changes: Mapping[str, Any],
        member_ids: Iterable[str] = (),
    ) -> bool:
        """
        Update a transaction; the cached copy is merged only on success.

        Changes to the amount, payer or splits are validated against the
        stored transaction merged with the changes.
        """
        document = _document_changes(changes)
        try:
            if BALANCE_FIELDS & document.keys():
                current = await self.service.get_transaction(transaction_id)
                if current is None:
                    raise DocumentNotFoundError(TRANSACTIONS_COLLECTION, transaction_id)
                merged = Transaction.from_dict({**current.to_dict(), **document})
                await self.check_transaction(merged, member_ids)
            written = await self.service.update_transaction(transaction_id, document)
        except TransactionValidationError as e:
            self._report(f"Transaction rejected: {e}")
            return False
        except StoreError as e:
            self._report(f"Could not update transaction: {e}")
            return False

        for index, cached in enumerate(self.transactions):
            if cached.id == transaction_id:
                self.transactions[index] = Transaction.from_dict({**cached.to_dict(), **written})
                break
        logger.info("Updated transaction %s", transaction_id)
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete a transaction; it leaves the cache only on success."""
        try:
            await self.service.delete_transaction(transaction_id)
        except StoreError as e:
            self._report(f"Could not delete transaction: {e}")
            return False

        self.transactions = [t for t in self.transactions if t.id != transaction_id]
        logger.info("Deleted transaction %s", transaction_id)
        return True

    async def _notify(self, transaction: Transaction, member_ids: list[str], creator_id: str) -> None:
        if self.dispatcher is None or self.users is None:
            return
        recipients = member_ids or [split.user_id for split in transaction.splits]
        await send_transaction_notification(
            self.dispatcher,
            self.users,
            creator_id=creator_id,
            fund_id=transaction.fund_id,
            transaction_id=transaction.id,
            description=transaction.description,
            amount=transaction.amount,
            recipient_ids=recipients,
        )

    def _report(self, message: str) -> None:
        logger.error(message)
        if self.error_reporter is not None:
            self.error_reporter(message)
