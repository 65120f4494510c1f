#!/usr/bin/env python3
"""
AI Response Reconciler

Cross-checks the free-text reasoning an LLM returns against the structured
split amounts it claims to justify.

The reasoning is expected to end with a block such as:

    FINAL AMOUNTS:
    - Hưng (payer): +200.000đ
    - Linh: -100.000đ
    - Minh: -100.000đ

Each line is parsed, its name matched to a fund member, and the amount
compared with that member's structured split. Disagreements point at LLM
arithmetic drift; they are reported, never enforced.

Known limitation: names are matched by substring containment in roster
order and the first match wins, so duplicate or overlapping display names
can be attributed to the wrong member.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ..core.currency import Amount, format_vnd, parse_vnd_string, to_amount
from ..core.models import User

logger = logging.getLogger(__name__)

FINAL_AMOUNTS_PATTERN = re.compile(r"FINAL AMOUNTS:.*?(?=\n[ \t]*\n|\Z)", re.IGNORECASE | re.DOTALL)

# "<name>: <±amount><currency>", one per line or comma-separated inline
ENTRY_PATTERN = re.compile(
    r"(?P<name>[^:\n,]+?)\s*:\s*(?P<amount>[+-]?\s*\d[\d.,]*)\s*(?:đ|₫|VND|vnd)",
)


@dataclass(frozen=True)
class NarrativeEntry:
    """One "name: amount" entry from the FINAL AMOUNTS block."""

    name: str
    amount: Amount
    user_id: str | None


@dataclass(frozen=True)
class AmountMismatch:
    """A member whose narrative amount disagrees with the structured split."""

    user_id: str
    structured_amount: Amount
    narrative_amount: Amount

    @property
    def difference(self) -> Amount:
        return self.narrative_amount - self.structured_amount

    def describe(self) -> str:
        return (
            f"Inconsistency detected: User {self.user_id} has amount {format_vnd(self.structured_amount, signed=True)} "
            f"in JSON but {format_vnd(self.narrative_amount, signed=True)} in reasoning"
        )


@dataclass
class ReconciliationReport:
    """Outcome of comparing narrative amounts with structured splits."""

    section: str | None = None
    entries: list[NarrativeEntry] = field(default_factory=list)
    mismatches: list[AmountMismatch] = field(default_factory=list)

    @property
    def has_section(self) -> bool:
        return self.section is not None

    @property
    def narrative_amounts(self) -> dict[str, Amount]:
        """Amount per matched user; a later line for the same user wins."""
        return {entry.user_id: entry.amount for entry in self.entries if entry.user_id is not None}

    @property
    def unmatched_names(self) -> list[str]:
        return [entry.name for entry in self.entries if entry.user_id is None]

    @property
    def is_consistent(self) -> bool:
        return not self.mismatches


def extract_final_amounts_section(reasoning: str) -> str | None:
    """Text from "FINAL AMOUNTS:" to the next blank line or end of text."""
    if not reasoning:
        return None
    match = FINAL_AMOUNTS_PATTERN.search(reasoning)
    return match.group(0) if match else None


def normalize_amount(text: str) -> Amount | None:
    """
    Numeric value of a narrative amount such as "+150.000" or "-1,5".

    See core.currency.parse_vnd_string for the separator rules.
    """
    return parse_vnd_string(text)


def _clean_name(name: str) -> str:
    return name.strip().lstrip("-*•").strip()


def match_member(name_text: str, members: Iterable[User]) -> User | None:
    """First member (roster order) whose display name occurs in name_text."""
    haystack = name_text.casefold()
    for member in members:
        if member.display_name and member.display_name.casefold() in haystack:
            return member
    return None


def parse_final_amounts(section: str, members: Iterable[User]) -> list[NarrativeEntry]:
    """Parse every "name: amount" entry of a FINAL AMOUNTS block."""
    roster = list(members)
    entries: list[NarrativeEntry] = []
    for match in ENTRY_PATTERN.finditer(section):
        name = _clean_name(match.group("name"))
        amount = normalize_amount(match.group("amount"))
        if amount is None or not name:
            continue
        member = match_member(name, roster)
        entries.append(NarrativeEntry(name=name, amount=amount, user_id=member.id if member else None))
    return entries


def reconcile(
    reasoning: str | None,
    users: Mapping[str, Any],
    members: Iterable[User],
    tolerance: Amount = 10,
) -> ReconciliationReport:
    """
    Compare the FINAL AMOUNTS block of reasoning with structured amounts.

    Args:
        reasoning: LLM narrative (may be None or lack the block)
        users: Structured amounts by user id (numbers or numeric strings)
        members: Fund roster used to resolve names
        tolerance: Allowed absolute difference per user

    Returns:
        ReconciliationReport; an empty report when there is nothing to compare
    """
    section = extract_final_amounts_section(reasoning or "")
    if section is None:
        return ReconciliationReport()

    entries = parse_final_amounts(section, members)
    report = ReconciliationReport(section=section, entries=entries)

    narrative = report.narrative_amounts
    for user_id, raw_amount in users.items():
        if user_id not in narrative:
            continue
        structured = to_amount(raw_amount)
        if structured is None:
            structured = 0
        if abs(narrative[user_id] - structured) > tolerance:
            mismatch = AmountMismatch(
                user_id=user_id,
                structured_amount=structured,
                narrative_amount=narrative[user_id],
            )
            report.mismatches.append(mismatch)
            logger.warning(mismatch.describe())

    if report.unmatched_names:
        logger.debug("FINAL AMOUNTS names without a member: %s", ", ".join(report.unmatched_names))

    return report
