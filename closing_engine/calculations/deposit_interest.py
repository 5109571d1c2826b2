"""Interest owed to the purchaser on deposits held before closing.

Deposits earn daily simple interest: ``amount x rate/100 x days/365``.
When a deposit carries government rate periods, each period contributes
its own term over the part of the period the deposit was actually held.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from ..models.unit import Deposit, DepositInterestPeriod
from .money import DAYS_PER_YEAR, HUNDRED, ZERO, money


def simple_interest(amount: Decimal, annual_rate_pct: Decimal, days: int) -> Decimal:
    """Unrounded daily simple interest."""
    return amount * (annual_rate_pct / HUNDRED) * (Decimal(days) / DAYS_PER_YEAR)


def held_days(
    period: DepositInterestPeriod,
    paid_date: date,
    closing_date: date,
) -> int:
    """Days of ``period`` falling inside ``[paid_date, closing_date]``, or 0."""
    start = max(paid_date, period.period_start)
    end = min(closing_date, period.period_end)
    return max(0, (end - start).days)


def calculate_deposit_interest(deposit: Deposit, closing_date: date) -> Decimal:
    """Unrounded interest on one deposit up to the closing date.

    Rate periods take precedence; the flat deposit rate is used only when
    the deposit has no periods and is interest-eligible.
    """
    if not deposit.counts_toward_interest:
        return ZERO
    paid_date = deposit.paid_date

    if deposit.interest_periods:
        interest = ZERO
        for period in sorted(deposit.interest_periods, key=lambda p: p.period_start):
            days = held_days(period, paid_date, closing_date)
            if days > 0:
                interest += simple_interest(deposit.amount, period.annual_rate, days)
        return interest

    if deposit.is_interest_eligible and deposit.interest_rate is not None:
        days = max(0, (closing_date - paid_date).days)
        return simple_interest(deposit.amount, deposit.interest_rate, days)

    return ZERO


def calculate_total_deposit_interest(deposits: Iterable[Deposit], closing_date: date) -> Decimal:
    """Interest across all deposits, rounded to cents once at the end."""
    return money(sum(
        (calculate_deposit_interest(d, closing_date) for d in deposits),
        ZERO,
    ))


def last_period_rate(deposits: Iterable[Deposit]) -> Optional[Decimal]:
    """Annual rate of the period with the latest end date across all deposits."""
    periods = [p for d in deposits for p in d.interest_periods]
    if not periods:
        return None
    return max(periods, key=lambda p: p.period_end).annual_rate


def calculate_interest_on_interest(
    deposit_interest: Decimal,
    deposits: Iterable[Deposit],
    occupancy_date: Optional[date],
    closing_date: Optional[date],
) -> Decimal:
    """Interest on the accrued deposit interest from occupancy to closing.

    Args:
        deposit_interest: Total deposit interest already computed.
        deposits: The unit's deposits, searched for the last applicable rate.
        occupancy_date: Interim occupancy date.
        closing_date: Final closing date.

    Returns:
        Interest rounded to cents, or zero when there is no interest, a date
        is missing, closing is not after occupancy, or no rate period exists.
    """
    if deposit_interest <= 0:
        return ZERO
    if occupancy_date is None or closing_date is None:
        return ZERO
    if closing_date <= occupancy_date:
        return ZERO

    annual_rate = last_period_rate(deposits)
    if annual_rate is None or annual_rate <= 0:
        return ZERO

    days = (closing_date - occupancy_date).days
    return money(simple_interest(deposit_interest, annual_rate, days))
