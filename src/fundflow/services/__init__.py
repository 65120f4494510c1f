"""
Services Package

Store-backed services and the session-level orchestration built on them.

Key Components:
- funds / users / transactions: document store access per collection
- lifecycle: create, update and delete with cache and notification effects
- proposal: AI-assisted entry state machine with stale-result protection
- refresher / session: selected-fund polling and context switching
"""

from .funds import FundService
from .lifecycle import SplitRequest, TransactionLifecycle
from .notifications import (
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    TransactionNotification,
    build_transaction_notification,
    send_transaction_notification,
)
from .proposal import InvalidTransitionError, ProposalFlow, ProposalState
from .refresher import FundRefresher
from .session import FundSession
from .transactions import TransactionService
from .users import UserDirectory

__all__ = [
    "FundService",
    "TransactionService",
    "UserDirectory",
    "SplitRequest",
    "TransactionLifecycle",
    "LoggingNotificationDispatcher",
    "NotificationDispatcher",
    "TransactionNotification",
    "build_transaction_notification",
    "send_transaction_notification",
    "InvalidTransitionError",
    "ProposalFlow",
    "ProposalState",
    "FundRefresher",
    "FundSession",
]
