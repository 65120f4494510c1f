#!/usr/bin/env python3
"""
Transaction Validator

Gatekeeper for every transaction payload before it is persisted, whether it
came from the LLM parser or from a user edit.

Checks run in order and independently; every finding is collected:

1. Structure: description (warning if missing), positive numeric total,
   payer, non-empty splits
2. Identifiers: payer and every split user must be fund members
3. Zero-sum: |sum| <= silent tolerance passes silently, up to the reject
   tolerance passes with a warning, beyond it is rejected
4. Narrative consistency: FINAL AMOUNTS in the reasoning vs. structured
   splits (warnings only)

Any error-severity finding raises TransactionValidationError carrying all
findings. Otherwise a ValidationResult wraps the trusted draft and warnings.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable

from ..core.config import ValidationConfig
from ..core.currency import Amount, format_vnd, normalize_number, sum_amounts, to_amount
from ..core.models import DEFAULT_TRANSACTION_DESCRIPTION, Split, User
from .models import (
    ProposalPayload,
    Severity,
    TransactionDraft,
    ValidationIssue,
    ValidationResult,
    has_errors,
)
from .reconciler import reconcile

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class ProposalParseError(Exception):
    """Raised when an LLM response cannot be parsed into a JSON object"""

    pass


class TransactionValidationError(Exception):
    """Raised when a payload has at least one error-severity issue"""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        errors = [issue.message for issue in issues if issue.is_error]
        super().__init__("; ".join(errors) if errors else "Transaction is invalid")

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]


@dataclass(frozen=True)
class ValidationPolicy:
    """
    Imbalance tolerances, in dong.

    The defaults (10 / 100) are empirical thresholds, hence configurable.
    """

    silent_tolerance: Amount = 10
    reject_tolerance: Amount = 100
    narrative_tolerance: Amount = 10

    @classmethod
    def from_config(cls, config: ValidationConfig) -> "ValidationPolicy":
        return cls(
            silent_tolerance=normalize_number(config.silent_tolerance),
            reject_tolerance=normalize_number(config.reject_tolerance),
            narrative_tolerance=normalize_number(config.narrative_tolerance),
        )


def _strip_code_fence(text: str) -> str:
    match = CODE_FENCE_PATTERN.match(text)
    return match.group(1) if match else text


def _missing_closers(text: str) -> str:
    """
    Characters that would close every JSON string, object and array left
    open at the end of text.
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]" and stack and stack[-1] == char:
            stack.pop()
    closers = "".join(reversed(stack))
    return ('"' if in_string else "") + closers


def parse_json_content(raw: str) -> ProposalPayload:
    """
    Parse an LLM response into a JSON object.

    Tolerates Markdown code fences and raw control characters inside strings.
    A response cut off by the token limit (an object opened but never
    closed) is recovered by appending the missing closing braces.

    Raises:
        ProposalParseError: If the text is not a JSON object even after recovery
    """
    if not isinstance(raw, str):
        raise ProposalParseError(f"Expected a JSON string, got {type(raw).__name__}")

    text = _strip_code_fence(raw.strip())
    logger.debug("Attempting to parse JSON: %s...", text[:100])

    try:
        parsed = json.loads(text, strict=False)
    except json.JSONDecodeError as e:
        closers = _missing_closers(text)
        if "{" not in text or "}" not in closers:
            raise ProposalParseError(f"Failed to parse JSON response: {e.msg}. Received: {text[:200]}...") from e
        try:
            parsed = json.loads(text + closers, strict=False)
        except json.JSONDecodeError as e2:
            raise ProposalParseError(
                f"Failed to parse truncated JSON response: {e.msg}. Received: {text[:200]}..."
            ) from e2
        logger.info("Recovered truncated JSON response by appending %r", closers)

    if not isinstance(parsed, dict):
        raise ProposalParseError(f"Expected a JSON object, got {type(parsed).__name__}. Received: {text[:200]}")
    return parsed


def _split_entries(raw_splits: Any) -> list[tuple[str, Any]] | None:
    """(user_id, raw_amount) pairs from a users mapping or a splits list."""
    if isinstance(raw_splits, dict):
        return [(str(user_id), amount) for user_id, amount in raw_splits.items()]
    if isinstance(raw_splits, list):
        entries = []
        for item in raw_splits:
            if isinstance(item, dict):
                entries.append((str(item.get("userId", "")), item.get("amount")))
            elif isinstance(item, Split):
                entries.append((item.user_id, item.amount))
            else:
                return None
        return entries
    return None


class TransactionValidator:
    """
    Validates transaction payloads against a fund's current membership.

    Accepts the LLM proposal shape (desc, totalAmount, payer, users) and the
    stored transaction shape (description, amount, paidBy, splits).
    """

    def __init__(self, members: Iterable[User], policy: ValidationPolicy | None = None):
        self.members = list(members)
        self.member_ids = {member.id for member in self.members}
        self.policy = policy or ValidationPolicy()

    def validate_json(self, raw: str) -> ValidationResult:
        """Parse an LLM response and validate it."""
        return self.validate_response(parse_json_content(raw))

    def validate_response(self, payload: ProposalPayload) -> ValidationResult:
        """
        Validate a payload and build the trusted draft.

        Raises:
            TransactionValidationError: If any check produced an error
        """
        issues, draft = self.collect_issues(payload)

        for issue in issues:
            if not issue.is_error:
                logger.warning("Transaction validation warning (%s): %s", issue.field, issue.message)

        if has_errors(issues) or draft is None:
            raise TransactionValidationError(issues)

        return ValidationResult(draft=draft, warnings=[issue for issue in issues if not issue.is_error])

    def collect_issues(self, payload: Any) -> tuple[list[ValidationIssue], TransactionDraft | None]:
        """Run every check; the draft is None when the payload is unusable."""
        if not isinstance(payload, dict):
            return [ValidationIssue("payload", "Transaction payload must be a JSON object", Severity.ERROR)], None

        description = payload.get("desc", payload.get("description"))
        total = payload["totalAmount"] if "totalAmount" in payload else payload.get("amount")
        payer = payload.get("payer", payload.get("paidBy"))
        raw_splits = payload["users"] if "users" in payload else payload.get("splits")
        reasoning = payload.get("reasoning")

        issues: list[ValidationIssue] = []
        entries = self._check_structure(description, total, payer, raw_splits, issues)
        self._check_identifiers(payer, entries, issues)
        splits = self._check_balance(entries, issues)
        self._check_narrative(reasoning, entries, issues)

        if has_errors(issues):
            return issues, None

        draft = TransactionDraft(
            description=description.strip() if isinstance(description, str) and description.strip() else DEFAULT_TRANSACTION_DESCRIPTION,
            amount=normalize_number(total),
            paid_by=str(payer),
            splits=splits,
            reasoning=reasoning if isinstance(reasoning, str) else None,
            ai_prompt=payload.get("aiPrompt") if isinstance(payload.get("aiPrompt"), str) else None,
            ai_generated=bool(payload.get("aiGenerated", "users" in payload)),
        )
        return issues, draft

    def _check_structure(
        self,
        description: Any,
        total: Any,
        payer: Any,
        raw_splits: Any,
        issues: list[ValidationIssue],
    ) -> list[tuple[str, Any]]:
        if not isinstance(description, str) or not description.strip():
            issues.append(ValidationIssue("desc", 'Missing "desc" field in transaction', Severity.WARNING))

        if isinstance(total, bool) or not isinstance(total, (int, float)) or not total > 0:
            issues.append(
                ValidationIssue("totalAmount", 'Invalid "totalAmount": must be a positive number', Severity.ERROR)
            )

        if payer is None or (isinstance(payer, str) and not payer.strip()):
            issues.append(ValidationIssue("payer", 'Missing "payer" field in transaction', Severity.ERROR))

        entries = _split_entries(raw_splits)
        if not entries:
            issues.append(ValidationIssue("users", 'Missing or invalid "users" field in transaction', Severity.ERROR))
            return []
        return entries

    def _check_identifiers(self, payer: Any, entries: list[tuple[str, Any]], issues: list[ValidationIssue]) -> None:
        if payer is not None and str(payer).strip() and str(payer) not in self.member_ids:
            issues.append(
                ValidationIssue("payer", f'Payer with ID "{payer}" not found in fund members list', Severity.ERROR)
            )

        for user_id, _ in entries:
            if user_id not in self.member_ids:
                issues.append(
                    ValidationIssue("users", f'User with ID "{user_id}" not found in fund members list', Severity.ERROR)
                )

    def _check_balance(self, entries: list[tuple[str, Any]], issues: list[ValidationIssue]) -> list[Split]:
        splits: list[Split] = []
        for user_id, raw_amount in entries:
            amount = to_amount(raw_amount)
            if amount is None:
                issues.append(
                    ValidationIssue("users", f'Amount "{raw_amount}" for user "{user_id}" is not a number; counted as 0', Severity.WARNING)
                )
                amount = 0
            splits.append(Split(user_id=user_id, amount=amount))

        if not splits:
            return splits

        imbalance = sum_amounts(split.amount for split in splits)
        logger.debug("Total splits: %s", imbalance)
        magnitude = abs(imbalance)

        if magnitude > self.policy.reject_tolerance:
            issues.append(ValidationIssue("users", f"Amounts do not balance, off by {imbalance}", Severity.ERROR))
        elif magnitude > self.policy.silent_tolerance:
            issues.append(
                ValidationIssue(
                    "users",
                    f"Transaction splits don't perfectly balance: off by {format_vnd(imbalance, signed=True)}. "
                    "User can adjust manually.",
                    Severity.WARNING,
                )
            )
        return splits

    def _check_narrative(self, reasoning: Any, entries: list[tuple[str, Any]], issues: list[ValidationIssue]) -> None:
        if not isinstance(reasoning, str) or not reasoning.strip() or not entries:
            return

        report = reconcile(reasoning, dict(entries), self.members, tolerance=self.policy.narrative_tolerance)
        for mismatch in report.mismatches:
            issues.append(ValidationIssue("reasoning", mismatch.describe(), Severity.WARNING))
