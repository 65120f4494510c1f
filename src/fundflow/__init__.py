"""
Fund Flow - Shared Expense Tracking

Group expense sharing: members of a fund log shared transactions, costs are
split into signed per-member amounts, and running balances show who owes whom.

Key Features:
- Even, selective, percentage and custom split calculation
- Balance aggregation recomputed from the full transaction set
- Validation of AI-generated transaction proposals (identifiers, zero-sum,
  narrative consistency)
- Transaction lifecycle with local cache, polling refresh and notifications

Domain Packages:
- core: Amounts, data models, configuration, document store
- splits: Split arithmetic, balances, repayments
- ai: LLM parser, proposal validator and reconciler
- services: Funds, users, transactions and session orchestration
- cli: Command-line interface

Example Usage:
    from fundflow.splits import distribute_evenly, calculate_balances
    from fundflow.ai import TransactionValidator
    from fundflow.core.currency import format_vnd
"""

__version__ = "0.1.0"
__author__ = "Fund Flow Team"

from .core.config import Environment, get_config
from .core.currency import format_vnd, parse_vnd_string
from .core.models import Balance, Fund, Split, Transaction, TransactionInput, User
from .splits.balances import calculate_balances
from .splits.calculator import distribute_evenly

__all__ = [
    # Amounts
    "format_vnd",
    "parse_vnd_string",
    # Core models
    "Balance",
    "Fund",
    "Split",
    "Transaction",
    "TransactionInput",
    "User",
    # Splits
    "calculate_balances",
    "distribute_evenly",
    # Configuration
    "get_config",
    "Environment",
]
