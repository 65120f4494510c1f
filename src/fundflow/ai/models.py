#!/usr/bin/env python3
"""
Validation Models

Types crossing the trust boundary between untrusted transaction payloads
(LLM proposals, form submissions) and persisted transactions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..core.currency import Amount, sum_amounts
from ..core.models import DEFAULT_TRANSACTION_DESCRIPTION, Split, TransactionInput

# Raw, untrusted payload: {desc, totalAmount, payer, users, reasoning?}
ProposalPayload = dict[str, Any]


class Severity(Enum):
    """How a validation finding affects acceptance."""

    ERROR = "error"  # blocks persistence
    WARNING = "warning"  # advisory only


@dataclass(frozen=True)
class ValidationIssue:
    """One validation finding tied to a payload field."""

    field: str
    message: str
    severity: Severity

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message, "severity": self.severity.value}


def has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.is_error for issue in issues)


@dataclass
class TransactionDraft:
    """
    Transaction content that passed validation.

    Only the validator builds these; the orchestrator persists them.
    """

    description: str
    amount: Amount
    paid_by: str
    splits: list[Split]
    reasoning: str | None = None
    ai_prompt: str | None = None
    ai_generated: bool = False

    @property
    def splits_total(self) -> Amount:
        return sum_amounts(split.amount for split in self.splits)

    def to_input(self, fund_id: str) -> TransactionInput:
        return TransactionInput(
            fund_id=fund_id,
            description=self.description or DEFAULT_TRANSACTION_DESCRIPTION,
            amount=self.amount,
            paid_by=self.paid_by,
            splits=[Split(user_id=s.user_id, amount=s.amount) for s in self.splits],
            reasoning=self.reasoning,
            ai_prompt=self.ai_prompt,
            ai_generated=self.ai_generated,
        )

    def to_proposal(self) -> ProposalPayload:
        """Render back into the proposal shape (amounts as strings)."""
        payload: ProposalPayload = {
            "desc": self.description,
            "totalAmount": self.amount,
            "payer": self.paid_by,
            "users": {split.user_id: str(split.amount) for split in self.splits},
        }
        if self.reasoning is not None:
            payload["reasoning"] = self.reasoning
        return payload


@dataclass
class ValidationResult:
    """Accepted draft plus the advisory warnings raised on the way."""

    draft: TransactionDraft
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
