#!/usr/bin/env python3
"""
Transaction Form Validator

Field-level checks for manually entered transactions. Every finding carries
the form field it belongs to so it can be shown next to that field.
"""

import logging
from typing import Iterable

from ..core.currency import Amount, parse_vnd_string, sum_amounts, to_amount
from ..core.models import Split, User
from .models import Severity, ValidationIssue, has_errors

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 3
SUSPICIOUSLY_SMALL_AMOUNT = 1_000
SUSPICIOUSLY_LARGE_AMOUNT = 100_000_000


def parse_form_amount(text: str) -> Amount | None:
    """Amount typed into the form, in dong; None if it is not a number."""
    value = parse_vnd_string(text)
    if value is None:
        value = to_amount(text)
    return value


class TransactionFormValidator:
    """Validates the manual transaction form for a fund's members."""

    def __init__(self, members: Iterable[User], silent_tolerance: Amount = 10):
        self.members = list(members)
        self.silent_tolerance = silent_tolerance

    def validate_description(self, description: str | None) -> list[ValidationIssue]:
        if not description or not description.strip():
            return [ValidationIssue("description", "Please enter a transaction description", Severity.ERROR)]
        if len(description) < MIN_DESCRIPTION_LENGTH:
            return [
                ValidationIssue(
                    "description",
                    f"Description is too short, enter at least {MIN_DESCRIPTION_LENGTH} characters",
                    Severity.WARNING,
                )
            ]
        return []

    def validate_amount(self, amount: str | None) -> list[ValidationIssue]:
        if not amount or not amount.strip():
            return [ValidationIssue("amount", "Please enter an amount", Severity.ERROR)]

        value = parse_form_amount(amount)
        if value is None:
            return [ValidationIssue("amount", "Amount is not a valid number", Severity.ERROR)]
        if value <= 0:
            return [ValidationIssue("amount", "Amount must be greater than 0", Severity.ERROR)]
        if value < SUSPICIOUSLY_SMALL_AMOUNT:
            return [ValidationIssue("amount", "Amount is very small, are some zeros missing?", Severity.WARNING)]
        if value > SUSPICIOUSLY_LARGE_AMOUNT:
            return [ValidationIssue("amount", "Amount is very large, please double-check it", Severity.WARNING)]
        return []

    def validate_splits(self, splits: list[Split]) -> list[ValidationIssue]:
        if not splits:
            return [ValidationIssue("splits", "No split information", Severity.ERROR)]

        issues = []
        if all(split.amount == 0 for split in splits):
            issues.append(ValidationIssue("splits", "Please divide the amount among the members", Severity.ERROR))

        total = sum_amounts(split.amount for split in splits)
        if abs(total) > self.silent_tolerance:
            issues.append(
                ValidationIssue(
                    "splits",
                    f"Split amounts do not balance, off by ({total}). Please adjust them",
                    Severity.ERROR,
                )
            )
        return issues

    def validate_form(self, description: str | None, amount: str | None, splits: list[Split]) -> list[ValidationIssue]:
        """
        Validate the whole form.

        Splits are only checked once the amount itself has no errors.
        """
        issues = self.validate_description(description)
        amount_issues = self.validate_amount(amount)
        issues.extend(amount_issues)

        if not has_errors(amount_issues):
            issues.extend(self.validate_splits(splits))

        if issues:
            logger.debug("Form validation found %d issue(s)", len(issues))
        return issues

    def is_valid(self, description: str | None, amount: str | None, splits: list[Split]) -> bool:
        return not has_errors(self.validate_form(description, amount, splits))
