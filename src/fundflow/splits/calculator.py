#!/usr/bin/env python3
"""
Split Calculator for fund transactions.

Turns a total amount and a participant set into signed splits that net to
zero. The payer's split is what the others owe them; everyone else's split is
minus their consumption share.

Key Features:
- Even, selective, percentage and custom distribution strategies
- Explicit payer-participates policy (payer consumed a share vs. fronted the
  money for others only)
- Floor-division shares with deterministic remainder allocation
- Manual overrides with optional payer auto-adjustment
"""

import math
from enum import Enum
from typing import Iterable, Mapping

from ..core.currency import (
    Amount,
    allocate_remainder,
    floor_share,
    normalize_number,
    parse_vnd_string,
    sum_amounts,
    to_amount,
)
from ..core.models import Split


class SplitCalculationError(Exception):
    """Raised when split inputs are invalid"""

    pass


class SplitStrategy(Enum):
    """How a transaction's amount is distributed among participants."""

    EVEN = "even"
    PERCENTAGE = "percentage"
    CUSTOM = "custom"
    SELECTIVE = "selective"


def _unique(ids: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for user_id in ids:
        if user_id not in seen:
            seen.append(user_id)
    return seen


def _check_amount(amount: Amount) -> None:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
        raise SplitCalculationError(f"Amount must be a number, got {amount!r}")
    if amount <= 0:
        raise SplitCalculationError(f"Amount must be positive, got {amount}")


def _consumers(participant_ids: Iterable[str], payer_id: str, payer_participates: bool | None) -> tuple[list[str], bool]:
    """Resolve who consumes a share and whether the payer is one of them."""
    consumers = _unique(participant_ids)
    if payer_participates is None:
        payer_participates = payer_id in consumers
    if payer_participates and payer_id not in consumers:
        consumers.append(payer_id)
    elif not payer_participates and payer_id in consumers:
        consumers.remove(payer_id)
    return consumers, payer_participates


def distribute_evenly(
    amount: Amount,
    participant_ids: Iterable[str],
    payer_id: str,
    payer_participates: bool | None = None,
) -> list[Split]:
    """
    Split an amount evenly among the consumers.

    Every consumer's share is floor(amount / consumers). Non-payer consumers
    get -share.

    Payer participates: the payer's split is share * (consumers - 1), what the
    others owe them. The division remainder stays in the payer's own
    consumption, so the splits sum to exactly zero.

    Payer external: the payer's split is +amount (full reimbursement) and the
    remainder goes to the last consumer, so the consumers owe exactly amount.

    Args:
        amount: Total paid (positive)
        participant_ids: Users who consumed, in display order
        payer_id: User who fronted the money
        payer_participates: Whether the payer consumed a share. None infers it
            from whether payer_id is in participant_ids.

    Returns:
        Splits with the payer first, then consumers in input order

    Raises:
        SplitCalculationError: Non-positive amount or nobody to split with

    Examples:
        distribute_evenly(300, ["A", "B", "C"], "A", True)
            -> A +200, B -100, C -100
        distribute_evenly(300, ["B", "C"], "A", False)
            -> A +300, B -150, C -150
    """
    _check_amount(amount)
    consumers, payer_participates = _consumers(participant_ids, payer_id, payer_participates)
    if not consumers:
        raise SplitCalculationError("At least one participant is required")

    share = floor_share(amount, len(consumers))
    others = [user_id for user_id in consumers if user_id != payer_id]

    if payer_participates:
        debts = [share] * len(others)
        payer_amount: Amount = share * len(others)
    else:
        debts = allocate_remainder([share] * len(others), amount)
        payer_amount = normalize_number(amount)

    splits = [Split(user_id=payer_id, amount=payer_amount)]
    splits.extend(Split(user_id=user_id, amount=-debt) for user_id, debt in zip(others, debts))
    return splits


def distribute_selective(
    amount: Amount,
    selected_ids: Iterable[str],
    payer_id: str,
    member_ids: Iterable[str],
    payer_participates: bool | None = None,
) -> list[Split]:
    """
    Even distribution restricted to an explicitly chosen subset of members.

    Raises:
        SplitCalculationError: If nobody is selected or a selected id (or the
            payer) is not a fund member
    """
    members = set(member_ids)
    selected = _unique(selected_ids)
    if not selected:
        raise SplitCalculationError("Select at least one participant")

    unknown = [user_id for user_id in selected if user_id not in members]
    if unknown:
        raise SplitCalculationError(f"Selected participants are not fund members: {', '.join(unknown)}")
    if payer_id not in members:
        raise SplitCalculationError(f"Payer {payer_id} is not a fund member")

    return distribute_evenly(amount, selected, payer_id, payer_participates)


def distribute_by_percentage(
    amount: Amount,
    percentages: Mapping[str, float],
    payer_id: str,
) -> list[Split]:
    """
    Distribute consumption by percentage weights.

    Shares are floored and the remainder is allocated to the last
    participant so that the consumption shares total exactly amount. The
    payer's split is amount minus their own share (0 if they have none).

    Raises:
        SplitCalculationError: If weights are negative or do not total 100
    """
    _check_amount(amount)
    if not percentages:
        raise SplitCalculationError("At least one participant is required")
    if any(pct < 0 for pct in percentages.values()):
        raise SplitCalculationError("Percentages must be non-negative")
    total_pct = sum(percentages.values())
    if abs(total_pct - 100) > 0.01:
        raise SplitCalculationError(f"Percentages must total 100, got {total_pct:g}")

    user_ids = list(percentages)
    shares = [int(math.floor(amount * percentages[user_id] / 100)) for user_id in user_ids]
    shares = allocate_remainder(shares, amount)
    return _splits_from_shares(amount, dict(zip(user_ids, shares)), payer_id)


def distribute_custom(
    amount: Amount,
    shares: Mapping[str, Amount],
    payer_id: str,
) -> list[Split]:
    """
    Distribute explicit consumption amounts.

    The payer is owed the sum of everyone else's share, so the result always
    balances even when the shares do not add up to amount. Reconciling the
    shares with amount is left to validation.
    """
    _check_amount(amount)
    if not shares:
        raise SplitCalculationError("At least one participant is required")
    if any(share < 0 for share in shares.values()):
        raise SplitCalculationError("Custom shares must be non-negative")

    others_total = sum_amounts(share for user_id, share in shares.items() if user_id != payer_id)
    payer_share = shares.get(payer_id, 0)
    return _splits_from_shares(others_total + payer_share, dict(shares), payer_id)


def _splits_from_shares(amount: Amount, shares: dict[str, Amount], payer_id: str) -> list[Split]:
    payer_amount = normalize_number(amount - shares.get(payer_id, 0))
    splits = [Split(user_id=payer_id, amount=payer_amount)]
    splits.extend(
        Split(user_id=user_id, amount=-normalize_number(share))
        for user_id, share in shares.items()
        if user_id != payer_id
    )
    return splits


def compute_splits(
    strategy: SplitStrategy,
    amount: Amount,
    payer_id: str,
    participant_ids: Iterable[str] = (),
    member_ids: Iterable[str] = (),
    weights: Mapping[str, Amount] | None = None,
    payer_participates: bool | None = None,
) -> list[Split]:
    """
    Compute splits for the requested distribution strategy.

    Args:
        strategy: Distribution strategy
        amount: Total paid
        payer_id: User who fronted the money
        participant_ids: Consumers (EVEN, SELECTIVE)
        member_ids: Fund members (SELECTIVE membership check; EVEN falls back
            to all members when no participants are given)
        weights: Percentages (PERCENTAGE) or consumption amounts (CUSTOM)
        payer_participates: Payer policy for EVEN and SELECTIVE

    Returns:
        Signed splits
    """
    if strategy == SplitStrategy.EVEN:
        participants = list(participant_ids) or list(member_ids)
        return distribute_evenly(amount, participants, payer_id, payer_participates)
    if strategy == SplitStrategy.SELECTIVE:
        return distribute_selective(amount, participant_ids, payer_id, member_ids, payer_participates)
    if strategy == SplitStrategy.PERCENTAGE:
        return distribute_by_percentage(amount, weights or {}, payer_id)
    if strategy == SplitStrategy.CUSTOM:
        return distribute_custom(amount, weights or {}, payer_id)
    raise SplitCalculationError(f"Unsupported split strategy: {strategy}")


def parse_manual_amount(text: str, negative: bool) -> Amount:
    """
    Parse a free-text split amount entered with a sign toggle.

    Any sign typed into the text is ignored; the toggle decides. Blank or
    unparseable text counts as 0.

    Examples:
        parse_manual_amount("50.000", negative=True) -> -50000
        parse_manual_amount("10000", negative=False) -> 10000
    """
    value = parse_vnd_string(text) if text else None
    if value is None:
        value = to_amount(text) if text else None
    if value is None:
        return 0
    magnitude = abs(value)
    return -magnitude if negative and magnitude else magnitude


def override_split(
    splits: list[Split],
    user_id: str,
    amount: Amount,
    payer_id: str | None = None,
) -> list[Split]:
    """
    Set one user's split to an arbitrary signed value.

    Bypasses the distribution formulas entirely and does not enforce zero-sum.
    When payer_id is given (and differs from user_id) the payer's split is
    recomputed as minus the sum of everyone else's, keeping the transaction
    balanced.

    Returns:
        New split list; users without a split are appended
    """
    updated = [Split(user_id=s.user_id, amount=s.amount) for s in splits]
    target = next((s for s in updated if s.user_id == user_id), None)
    if target is None:
        updated.append(Split(user_id=user_id, amount=normalize_number(amount)))
    else:
        target.amount = normalize_number(amount)

    if payer_id is not None and payer_id != user_id:
        payer_split = next((s for s in updated if s.user_id == payer_id), None)
        if payer_split is None:
            payer_split = Split(user_id=payer_id, amount=0)
            updated.insert(0, payer_split)
        payer_split.amount = normalize_number(-sum_amounts(s.amount for s in updated if s.user_id != payer_id))

    return updated


def reset_splits(member_ids: Iterable[str]) -> list[Split]:
    """Zero split for every member (used when the amount changes)."""
    return [Split(user_id=user_id, amount=0) for user_id in _unique(member_ids)]
