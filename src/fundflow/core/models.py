#!/usr/bin/env python3
"""
Core Data Models for Fund Flow

Users, funds, transactions and their signed splits.
Persisted documents use the camelCase keys of the hosted document store;
the models expose snake_case attributes and convert with to_dict/from_dict.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from .currency import Amount, normalize_number, sum_amounts, to_amount

DEFAULT_TRANSACTION_DESCRIPTION = "Giao dịch"


def now_millis() -> int:
    """Current time as epoch milliseconds (the store's timestamp unit)."""
    return int(time.time() * 1000)


@dataclass
class BankAccount:
    """Bank details a member shares for repayments."""

    account_number: str
    bank_code: str
    bank_name: str
    account_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountNumber": self.account_number,
            "bankCode": self.bank_code,
            "bankName": self.bank_name,
            "accountName": self.account_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BankAccount":
        return cls(
            account_number=str(data.get("accountNumber", "")),
            bank_code=str(data.get("bankCode", "")),
            bank_name=str(data.get("bankName", "")),
            account_name=str(data.get("accountName", "")),
        )


@dataclass
class User:
    """
    Fund Flow user.

    The id comes from the authentication provider and is trusted as the
    user namespace for fund membership and splits.
    """

    id: str
    display_name: str
    email: str = ""
    photo_url: str = ""
    bank_account: BankAccount | None = None

    @classmethod
    def placeholder(cls, user_id: str) -> "User":
        """Stand-in shown while the real profile loads."""
        return cls(id=user_id, display_name=f"User {user_id[:4]}")

    @property
    def is_placeholder(self) -> bool:
        return self.display_name == f"User {self.id[:4]}" and not self.email

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "displayName": self.display_name,
            "email": self.email,
            "photoURL": self.photo_url,
        }
        if self.bank_account is not None:
            result["bankAccount"] = self.bank_account.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        bank = data.get("bankAccount")
        return cls(
            id=str(data["id"]),
            display_name=data.get("displayName") or "",
            email=data.get("email") or "",
            photo_url=data.get("photoURL") or "",
            bank_account=BankAccount.from_dict(bank) if isinstance(bank, dict) else None,
        )


@dataclass
class AIApiKey:
    """LLM provider credential stored on a fund."""

    provider: str  # "google", "groq" or "openai"
    key: str
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"provider": self.provider, "key": self.key, "isActive": self.is_active}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AIApiKey":
        return cls(
            provider=str(data.get("provider", "")),
            key=str(data.get("key", "")),
            is_active=bool(data.get("isActive", True)),
        )


@dataclass
class Fund:
    """
    Shared pool of members and their transactions.

    Membership defines the valid payers and split participants for new
    transactions. Member order carries no meaning.
    """

    id: str
    name: str
    members: list[str]
    created_by: str
    description: str = ""
    icon: str = ""
    created_at: int = field(default_factory=now_millis)
    updated_at: int | None = None
    currency: str | None = None
    is_archived: bool = False
    ai_api_keys: list[AIApiKey] = field(default_factory=list)
    ai_usage_stats: dict[str, Any] | None = None

    def has_member(self, user_id: str) -> bool:
        return user_id in self.members

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "members": list(self.members),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "isArchived": self.is_archived,
        }
        if self.updated_at is not None:
            result["updatedAt"] = self.updated_at
        if self.currency is not None:
            result["currency"] = self.currency
        if self.ai_api_keys:
            result["aiApiKeys"] = [key.to_dict() for key in self.ai_api_keys]
        if self.ai_usage_stats is not None:
            result["aiUsageStats"] = self.ai_usage_stats
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fund":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            description=data.get("description") or "",
            icon=data.get("icon") or "",
            members=normalize_member_ids(data.get("members")),
            created_by=str(data.get("createdBy", "")),
            created_at=data.get("createdAt") if isinstance(data.get("createdAt"), int) else now_millis(),
            updated_at=data.get("updatedAt"),
            currency=data.get("currency"),
            is_archived=bool(data.get("isArchived", False)),
            ai_api_keys=[AIApiKey.from_dict(k) for k in data.get("aiApiKeys") or [] if isinstance(k, dict)],
            ai_usage_stats=data.get("aiUsageStats"),
        )


def normalize_member_ids(members: Any) -> list[str]:
    """
    Coerce a stored member list to unique string ids, preserving order.

    Older documents hold member objects instead of ids; those contribute
    their "id" field. Empty and missing entries are dropped.
    """
    if not isinstance(members, list):
        return []

    ids: list[str] = []
    for member in members:
        if member is None:
            continue
        if isinstance(member, dict):
            member_id = str(member.get("id") or "")
        else:
            member_id = str(member)
        if member_id and member_id not in ids:
            ids.append(member_id)
    return ids


@dataclass
class Split:
    """Signed net amount for one user in one transaction."""

    user_id: str
    amount: Amount

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "amount": self.amount}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Split":
        amount = to_amount(data.get("amount"))
        return cls(user_id=str(data.get("userId", "")), amount=amount if amount is not None else 0)


@dataclass
class Transaction:
    """
    One recorded shared expense.

    Splits are signed nets: positive means the user is owed, negative means
    the user owes. A balanced transaction's splits sum to zero.
    """

    id: str
    fund_id: str
    description: str
    amount: Amount
    paid_by: str
    splits: list[Split]
    created_at: int = field(default_factory=now_millis)
    date: int | None = None
    updated_at: int | None = None
    reasoning: str | None = None
    ai_prompt: str | None = None
    ai_generated: bool = False

    @property
    def splits_total(self) -> Amount:
        return sum_amounts(split.amount for split in self.splits)

    @property
    def effective_date(self) -> int:
        return self.date if self.date is not None else self.created_at

    def split_for(self, user_id: str) -> Split | None:
        for split in self.splits:
            if split.user_id == user_id:
                return split
        return None

    def involves(self, user_id: str) -> bool:
        return self.paid_by == user_id or self.split_for(user_id) is not None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "fundId": self.fund_id,
            "description": self.description,
            "amount": self.amount,
            "paidBy": self.paid_by,
            "splits": [split.to_dict() for split in self.splits],
            "createdAt": self.created_at,
            "date": self.effective_date,
        }
        if self.updated_at is not None:
            result["updatedAt"] = self.updated_at
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        if self.ai_prompt is not None:
            result["aiPrompt"] = self.ai_prompt
        if self.ai_generated:
            result["aiGenerated"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """
        Build a Transaction from a stored document.

        Normalizes loosely-typed documents: missing description falls back
        to the default label, non-list splits become empty, non-numeric
        amounts become 0 and a missing date falls back to createdAt.
        """
        created_at = data.get("createdAt")
        if not isinstance(created_at, (int, float)) or isinstance(created_at, bool):
            created_at = now_millis()
        date = data.get("date")
        if not isinstance(date, (int, float)) or isinstance(date, bool):
            date = created_at

        raw_splits = data.get("splits")
        splits = [Split.from_dict(s) for s in raw_splits if isinstance(s, dict)] if isinstance(raw_splits, list) else []

        amount = data.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            amount = 0

        return cls(
            id=str(data["id"]),
            fund_id=str(data.get("fundId", "")),
            description=data.get("description") or DEFAULT_TRANSACTION_DESCRIPTION,
            amount=normalize_number(amount),
            paid_by=str(data.get("paidBy", "")),
            splits=splits,
            created_at=int(created_at),
            date=int(date),
            updated_at=data.get("updatedAt"),
            reasoning=data.get("reasoning"),
            ai_prompt=data.get("aiPrompt"),
            ai_generated=bool(data.get("aiGenerated", False)),
        )


@dataclass
class TransactionInput:
    """Caller-supplied data for a transaction that does not exist yet."""

    fund_id: str
    description: str
    amount: Amount
    paid_by: str
    splits: list[Split] = field(default_factory=list)
    date: int | None = None
    reasoning: str | None = None
    ai_prompt: str | None = None
    ai_generated: bool = False

    def to_document(self) -> dict[str, Any]:
        """Document body for the store (no id yet)."""
        document: dict[str, Any] = {
            "fundId": self.fund_id,
            "description": self.description or DEFAULT_TRANSACTION_DESCRIPTION,
            "amount": self.amount,
            "paidBy": self.paid_by,
            "splits": [split.to_dict() for split in self.splits],
        }
        if self.date is not None:
            document["date"] = self.date
        if self.reasoning is not None:
            document["reasoning"] = self.reasoning
        if self.ai_prompt is not None:
            document["aiPrompt"] = self.ai_prompt
        if self.ai_generated:
            document["aiGenerated"] = True
        return document


@dataclass
class Balance:
    """Aggregate signed amount a user owes (negative) or is owed (positive) in a fund."""

    user_id: str
    amount: Amount

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "amount": self.amount}
