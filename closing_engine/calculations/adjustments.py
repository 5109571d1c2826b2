"""Fee lookups, levy caps and closing-date prorations for the SOA."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from ..models.lookups import (
    ESTIMATED_ANNUAL_TAX_RATE,
    ESTIMATED_MAINTENANCE_PER_SQFT,
    LEGAL_FEE_BANDS,
    LEGAL_FEE_MAX,
    TARION_FEE_BANDS,
    TARION_FEE_MAX,
    ExcessLevyResponsibility,
)
from ..models.project import LevyCap
from .money import ZERO, money


def _band_lookup(price: Decimal, bands: List[Tuple[Decimal, Decimal]], top: Decimal) -> Decimal:
    for upper, amount in bands:
        if price <= upper:
            return amount
    return top


def calculate_tarion_fee(price: Decimal) -> Decimal:
    """Tarion warranty enrolment fee for the total price."""
    return _band_lookup(price, TARION_FEE_BANDS, TARION_FEE_MAX)


def estimate_legal_fees(price: Decimal) -> Decimal:
    """Closing legal fee estimate by price band."""
    return _band_lookup(price, LEGAL_FEE_BANDS, LEGAL_FEE_MAX)


@dataclass
class LevyCapResult:
    charged: Decimal  # Amount charged to the purchaser
    builder_absorbed: Decimal  # Excess over the cap carried by the builder


def apply_levy_cap(actual: Decimal, cap: Optional[LevyCap]) -> LevyCapResult:
    """Apply a levy cap to the actual charge.

    Above the cap the purchaser pays only the cap when the builder absorbs
    the excess, or the full actual charge when the buyer is responsible.
    """
    if cap is None or actual <= cap.cap_amount:
        return LevyCapResult(charged=actual, builder_absorbed=ZERO)
    if cap.excess_responsibility is ExcessLevyResponsibility.BUILDER:
        return LevyCapResult(charged=cap.cap_amount, builder_absorbed=actual - cap.cap_amount)
    return LevyCapResult(charged=actual, builder_absorbed=ZERO)


def calculate_property_tax_adjustment(
    closing_date: Optional[date],
    purchase_price: Decimal,
    actual_annual_land_tax: Optional[Decimal] = None,
) -> Decimal:
    """Purchaser's share of the year's land tax, already paid by the vendor.

    The purchaser reimburses the vendor for the days of the closing year
    after the closing date. Without an actual tax bill the annual tax is
    estimated at 1% of the purchase price.
    """
    if closing_date is None:
        return ZERO

    if actual_annual_land_tax is not None and actual_annual_land_tax > 0:
        annual_tax = actual_annual_land_tax
    else:
        annual_tax = purchase_price * ESTIMATED_ANNUAL_TAX_RATE

    year_start = closing_date + relativedelta(month=1, day=1)
    days_in_year = ((year_start + relativedelta(years=1)) - year_start).days
    year_end = closing_date + relativedelta(month=12, day=31)
    purchaser_days = (year_end - closing_date).days

    return money(annual_tax * purchaser_days / days_in_year)


def calculate_common_expense_adjustment(
    closing_date: Optional[date],
    square_footage: Decimal,
    actual_monthly_maintenance_fee: Optional[Decimal] = None,
) -> Decimal:
    """Purchaser's share of the closing month's common expenses.

    Covers the days of the closing month after the closing date. Without an
    actual fee the monthly amount is estimated at $0.60 per square foot.
    """
    if closing_date is None:
        return ZERO

    if actual_monthly_maintenance_fee is not None and actual_monthly_maintenance_fee > 0:
        monthly_fee = actual_monthly_maintenance_fee
    else:
        monthly_fee = square_footage * ESTIMATED_MAINTENANCE_PER_SQFT

    month_end = closing_date + relativedelta(day=31)
    days_in_month = month_end.day
    days_remaining = days_in_month - closing_date.day

    return money(monthly_fee / days_in_month * days_remaining)
