"""Ontario and Toronto municipal land transfer tax."""

from decimal import Decimal
from typing import List

from ..models.lookups import (
    LAND_TRANSFER_TAX_BRACKETS,
    ONTARIO_FIRST_TIME_BUYER_REBATE_CAP,
    TORONTO_FIRST_TIME_BUYER_REBATE_CAP,
    TaxBracket,
)
from .money import ZERO, money


def marginal_tax(price: Decimal, brackets: List[TaxBracket]) -> Decimal:
    """Unrounded tax over marginal brackets."""
    if price < 0:
        raise ValueError("Price cannot be negative")
    tax = ZERO
    for bracket in brackets:
        if price <= bracket.lower:
            break
        top = price if bracket.upper is None else min(price, bracket.upper)
        tax += (top - bracket.lower) * bracket.rate
    return tax


def _with_first_time_rebate(tax: Decimal, is_first_time_buyer: bool, cap: Decimal) -> Decimal:
    if is_first_time_buyer:
        tax -= min(tax, cap)
    return money(tax)


def calculate_land_transfer_tax(price: Decimal, is_first_time_buyer: bool = False) -> Decimal:
    """Ontario land transfer tax.

    Args:
        price: Total price (purchase price plus parking and locker).
        is_first_time_buyer: Apply the first-time buyer refund (up to $4,000).

    Returns:
        Tax rounded to cents.

    Example:
        >>> calculate_land_transfer_tax(Decimal("500000"))
        Decimal('6475.00')
    """
    tax = marginal_tax(price, LAND_TRANSFER_TAX_BRACKETS)
    return _with_first_time_rebate(tax, is_first_time_buyer, ONTARIO_FIRST_TIME_BUYER_REBATE_CAP)


def calculate_toronto_land_transfer_tax(price: Decimal, is_first_time_buyer: bool = False) -> Decimal:
    """Toronto municipal land transfer tax (first-time buyer refund up to $4,475)."""
    tax = marginal_tax(price, LAND_TRANSFER_TAX_BRACKETS)
    return _with_first_time_rebate(tax, is_first_time_buyer, TORONTO_FIRST_TIME_BUYER_REBATE_CAP)
