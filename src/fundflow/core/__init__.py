"""
Core Utilities Package

Shared building blocks used across the Fund Flow domains.

This package provides:
- Amount parsing and formatting for Vietnamese dong
- Data models for users, funds, transactions, splits and balances
- Configuration management for environment-specific settings
- The document store interface and its in-memory / JSON-file implementations
- A TTL cache for user lookups
"""

from .cache import TTLCache
from .config import (
    Config,
    Environment,
    get_config,
    reload_config,
)
from .currency import (
    Amount,
    allocate_remainder,
    format_vnd,
    is_balanced,
    parse_vnd_string,
    sum_amounts,
    to_amount,
)
from .datastore import (
    DocumentNotFoundError,
    DocumentStore,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    StoreError,
)
from .models import (
    AIApiKey,
    Balance,
    BankAccount,
    Fund,
    Split,
    Transaction,
    TransactionInput,
    User,
)

__all__ = [
    # Models
    "AIApiKey",
    "Balance",
    "BankAccount",
    "Fund",
    "Split",
    "Transaction",
    "TransactionInput",
    "User",
    # Amounts
    "Amount",
    "allocate_remainder",
    "format_vnd",
    "is_balanced",
    "parse_vnd_string",
    "sum_amounts",
    "to_amount",
    # Configuration
    "Config",
    "Environment",
    "get_config",
    "reload_config",
    # Persistence
    "DocumentNotFoundError",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "StoreError",
    "TTLCache",
]
