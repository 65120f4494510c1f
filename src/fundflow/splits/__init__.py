"""
Splits Package

Split arithmetic and balance aggregation for fund transactions.

Key Components:
- calculator: even / selective / percentage / custom distributions, manual overrides
- balances: per-user net balances and expense summaries
- settlement: repayment transactions between members
"""

from .balances import (
    balance_for,
    balances_total,
    calculate_balances,
    calculate_daily_expenses,
    calculate_total_expense,
    calculate_transaction_amount,
    personal_transactions,
    sort_balances_for_display,
)
from .calculator import (
    SplitCalculationError,
    SplitStrategy,
    compute_splits,
    distribute_by_percentage,
    distribute_custom,
    distribute_evenly,
    distribute_selective,
    override_split,
    parse_manual_amount,
    reset_splits,
)
from .settlement import build_repayment, outstanding_debt

__all__ = [
    # Split calculation
    "SplitCalculationError",
    "SplitStrategy",
    "compute_splits",
    "distribute_by_percentage",
    "distribute_custom",
    "distribute_evenly",
    "distribute_selective",
    "override_split",
    "parse_manual_amount",
    "reset_splits",
    # Balances
    "balance_for",
    "balances_total",
    "calculate_balances",
    "calculate_daily_expenses",
    "calculate_total_expense",
    "calculate_transaction_amount",
    "personal_transactions",
    "sort_balances_for_display",
    # Repayment
    "build_repayment",
    "outstanding_debt",
]
