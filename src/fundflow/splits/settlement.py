#!/usr/bin/env python3
"""
Repayments between fund members.

A repayment is an ordinary transaction: the member paying back is credited
and the recipient is debited by the same amount, moving both balances
towards zero.
"""

from typing import Iterable

from ..core.currency import Amount, normalize_number
from ..core.models import Balance, Split, TransactionInput, User
from .balances import balance_for
from .calculator import SplitCalculationError


def outstanding_debt(balances: Iterable[Balance], user_id: str) -> Amount:
    """
    What the user still owes the fund, as a positive number.

    Returns 0 when the user's balance is zero or positive.
    """
    balance = balance_for(balances, user_id)
    return normalize_number(-balance) if balance < 0 else 0


def build_repayment(fund_id: str, payer_id: str, recipient: User, amount: Amount) -> TransactionInput:
    """
    Build the "pay back" transaction from payer_id to recipient.

    Raises:
        SplitCalculationError: If amount is not positive or the payer pays themselves
    """
    if isinstance(amount, bool) or amount <= 0:
        raise SplitCalculationError("Repayment amount must be positive")
    if recipient.id == payer_id:
        raise SplitCalculationError("Cannot repay yourself")

    return TransactionInput(
        fund_id=fund_id,
        description=f"Trả tiền cho {recipient.display_name}",
        amount=normalize_number(amount),
        paid_by=payer_id,
        splits=[
            Split(user_id=recipient.id, amount=-normalize_number(amount)),
            Split(user_id=payer_id, amount=normalize_number(amount)),
        ],
    )
