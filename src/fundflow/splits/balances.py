#!/usr/bin/env python3
"""
Balance Aggregation

Folds a fund's transactions into one signed balance per user, and derives
the expense figures shown on fund dashboards.

Balances are not stored. They are recomputed in full from the transaction
list on every call; fund sizes are tens to low hundreds of transactions.
"""

from datetime import datetime
from typing import Iterable

import pandas as pd

from ..core.currency import Amount, normalize_number, sum_amounts
from ..core.models import Balance, Transaction


def calculate_balances(fund_id: str, transactions: Iterable[Transaction]) -> list[Balance]:
    """
    Net balance per user for one fund.

    Every split of every transaction in the fund is added to its user's
    running total. Users appear in order of first appearance.

    Args:
        fund_id: Fund to aggregate
        transactions: Any transaction list; other funds are filtered out

    Returns:
        One Balance per user seen in the fund's splits
    """
    totals: dict[str, Amount] = {}
    for transaction in transactions:
        if transaction.fund_id != fund_id:
            continue
        for split in transaction.splits:
            totals[split.user_id] = totals.get(split.user_id, 0) + split.amount

    return [Balance(user_id=user_id, amount=normalize_number(amount)) for user_id, amount in totals.items()]


def sort_balances_for_display(balances: Iterable[Balance]) -> list[Balance]:
    """Largest creditor first, largest debtor last."""
    return sorted(balances, key=lambda b: b.amount, reverse=True)


def balances_total(balances: Iterable[Balance]) -> Amount:
    """
    Sum of all balances.

    Zero whenever every contributing transaction balances; anything else is
    the combined imbalance of the fund's transactions.
    """
    return sum_amounts(b.amount for b in balances)


def balance_for(balances: Iterable[Balance], user_id: str) -> Amount:
    """A user's balance, 0 if they have no splits."""
    for balance in balances:
        if balance.user_id == user_id:
            return balance.amount
    return 0


def calculate_transaction_amount(transaction: Transaction) -> Amount:
    """Expense value of a transaction: the sum of its positive splits."""
    return sum_amounts(split.amount for split in transaction.splits if split.amount > 0)


def calculate_total_expense(transactions: Iterable[Transaction]) -> Amount:
    """Sum of calculate_transaction_amount over transactions."""
    return sum_amounts(calculate_transaction_amount(t) for t in transactions)


def personal_transactions(user_id: str, transactions: Iterable[Transaction]) -> list[Transaction]:
    """Transactions the user paid for or has a split in, newest first."""
    involved = [t for t in transactions if t.involves(user_id)]
    return sorted(involved, key=lambda t: t.effective_date, reverse=True)


def calculate_daily_expenses(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Daily expense totals.

    Transactions are bucketed by their local calendar day (date, falling back
    to created_at).

    Returns:
        DataFrame with columns date (datetime.date), expense and count,
        sorted by date. Empty input gives an empty frame with those columns.
    """
    rows = [
        {
            "date": datetime.fromtimestamp(t.effective_date / 1000).date(),
            "expense": calculate_transaction_amount(t),
            "count": 1,
        }
        for t in transactions
    ]
    if not rows:
        return pd.DataFrame(columns=["date", "expense", "count"])

    df = pd.DataFrame(rows)
    daily = df.groupby("date", as_index=False).agg(expense=("expense", "sum"), count=("count", "sum"))
    return daily.sort_values("date").reset_index(drop=True)
