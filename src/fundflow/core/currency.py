#!/usr/bin/env python3
"""
Currency Handling Utilities

Amount handling for the Fund Flow system. All amounts are Vietnamese dong.

Currency Conventions:
- Amounts are whole dong by convention (no minor unit)
- Fractional amounts are tolerated (e.g. after currency conversion)
- Split amounts are signed: positive = is owed, negative = owes
- Display uses dot thousands separators and a dong suffix: "150.000đ"

Key Principles:
- Keep integral values as int so zero-sum checks stay exact
- Parse untrusted text leniently, never raise on display paths
- Validate calculations with sum checks
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Union

Amount = Union[int, float]

CURRENCY_SUFFIXES = ("đ", "₫", "vnd", "VND", "dong")


def normalize_number(value: Amount) -> Amount:
    """
    Collapse integral floats to int.

    Example:
        normalize_number(150000.0) -> 150000
        normalize_number(1.5) -> 1.5
    """
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_amount(value: Any) -> Amount | None:
    """
    Convert a JSON value (number or numeric string) to an amount.

    Booleans, empty strings and non-numeric text return None.

    Examples:
        to_amount("-150000") -> -150000
        to_amount(" +2500.5 ") -> 2500.5
        to_amount(True) -> None
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return normalize_number(value)
    if not isinstance(value, str):
        return None

    clean = value.strip().replace(" ", "")
    if not clean:
        return None
    try:
        decimal_amount = Decimal(clean)
    except InvalidOperation:
        return None
    if not decimal_amount.is_finite():
        return None
    if decimal_amount == decimal_amount.to_integral_value():
        return int(decimal_amount)
    return float(decimal_amount)


def parse_vnd_string(text: str) -> Amount | None:
    """
    Parse a human-formatted dong amount.

    Handles sign, thousands separators and the comma-as-decimal vs
    dot-as-thousands ambiguity:
    - Both separators present: the last one is the decimal separator
    - One separator kind, used more than once: thousands separator
    - One separator followed by exactly three digits: thousands separator
    - Otherwise: decimal separator

    Examples:
        parse_vnd_string("+150.000đ") -> 150000
        parse_vnd_string("-1.234.567") -> -1234567
        parse_vnd_string("1,5") -> 1.5
        parse_vnd_string("12.345,67") -> 12345.67
        parse_vnd_string("abc") -> None
    """
    clean = text.strip()
    for suffix in CURRENCY_SUFFIXES:
        if clean.endswith(suffix):
            clean = clean[: -len(suffix)]
            break
    clean = clean.replace(" ", "")

    if not clean:
        return None

    is_negative = clean.startswith("-")
    if clean[0] in "+-":
        clean = clean[1:]

    if not clean or not re.fullmatch(r"[\d.,]+", clean) or not clean[0].isdigit():
        return None

    has_dot = "." in clean
    has_comma = "," in clean

    if has_dot and has_comma:
        decimal_sep = "." if clean.rfind(".") > clean.rfind(",") else ","
        thousands_sep = "," if decimal_sep == "." else "."
        clean = clean.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif has_dot or has_comma:
        sep = "." if has_dot else ","
        parts = clean.split(sep)
        if len(parts) > 2 or len(parts[-1]) == 3:
            clean = "".join(parts)
        else:
            clean = ".".join(parts)

    amount = to_amount(clean)
    if amount is None:
        return None
    return -amount if is_negative else amount


def format_vnd(amount: Amount, signed: bool = False) -> str:
    """
    Format an amount as a dong string with dot thousands separators.

    Fractions are rounded to whole dong for display.

    Examples:
        format_vnd(150000) -> "150.000đ"
        format_vnd(-25000) -> "-25.000đ"
        format_vnd(25000, signed=True) -> "+25.000đ"
    """
    rounded = int(round(amount))
    grouped = f"{abs(rounded):,}".replace(",", ".")
    if rounded < 0:
        sign = "-"
    elif signed and rounded > 0:
        sign = "+"
    else:
        sign = ""
    return f"{sign}{grouped}đ"


def sum_amounts(amounts: Iterable[Amount]) -> Amount:
    """Sum amounts, keeping integral results as int."""
    return normalize_number(sum(amounts))


def is_balanced(amounts: Iterable[Amount], tolerance: Amount = 0) -> bool:
    """
    Check that signed amounts net to zero within a tolerance.

    Args:
        amounts: Signed split amounts
        tolerance: Allowed absolute imbalance (default: 0 for exact match)

    Returns:
        True if |sum| <= tolerance
    """
    return abs(sum_amounts(amounts)) <= tolerance


def allocate_remainder(amounts: list[Amount], total: Amount) -> list[Amount]:
    """
    Allocate remainder from integer division to ensure exact sum.

    The last item gets any remainder to guarantee the sum equals the total.

    Args:
        amounts: List of calculated amounts before remainder allocation
        total: Target total that amounts should sum to

    Returns:
        List of amounts with remainder allocated to last item
    """
    if not amounts:
        return amounts

    amounts_copy = amounts.copy()
    current_sum = sum(amounts_copy[:-1])
    amounts_copy[-1] = normalize_number(total - current_sum)
    return amounts_copy


def floor_share(amount: Amount, count: int) -> int:
    """
    Per-person share using floor division.

    Example:
        floor_share(301, 3) -> 100
    """
    if count <= 0:
        raise ValueError("count must be positive")
    return int(math.floor(amount / count))
