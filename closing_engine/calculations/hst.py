"""HST on new homes and the federal/Ontario new housing rebates."""

from dataclasses import dataclass
from decimal import Decimal

from ..models.lookups import DEFAULT_HST_PARAMS, HSTParams
from .money import ZERO, money


@dataclass
class HSTResult:
    """HST owing on a new home and the rebates that offset it."""

    hst_amount: Decimal
    is_rebate_eligible: bool
    federal_rebate: Decimal
    ontario_rebate: Decimal
    is_rebate_assigned_to_builder: bool
    net_payable: Decimal

    @property
    def total_rebate(self) -> Decimal:
        return self.federal_rebate + self.ontario_rebate


def calculate_federal_rebate(price: Decimal, params: HSTParams = DEFAULT_HST_PARAMS) -> Decimal:
    """Federal new housing rebate: 36% of the GST portion, capped.

    Full below the lower threshold, phased out linearly to zero at the upper
    threshold.
    """
    gst_portion = price * params.federal_rate
    full_rebate = gst_portion * params.federal_rebate_pct

    if price <= params.federal_full_rebate_limit:
        return min(full_rebate, params.federal_rebate_cap)
    if price <= params.federal_phase_out_limit:
        phase_band = params.federal_phase_out_limit - params.federal_full_rebate_limit
        factor = (params.federal_phase_out_limit - price) / phase_band
        return min(full_rebate * factor, params.federal_rebate_cap)
    return ZERO


def calculate_ontario_rebate(price: Decimal, params: HSTParams = DEFAULT_HST_PARAMS) -> Decimal:
    """Ontario new housing rebate: 75% of the provincial portion, capped.

    Available at any price for new construction.
    """
    pst_portion = price * params.provincial_rate
    return min(pst_portion * params.provincial_rebate_pct, params.provincial_rebate_cap)


def calculate_hst(
    price: Decimal,
    is_primary_residence: bool,
    is_rebate_assigned_to_builder: bool = True,
    params: HSTParams = DEFAULT_HST_PARAMS,
) -> HSTResult:
    """Calculate HST and rebates for a new home purchase.

    Args:
        price: Total price (purchase price plus parking and locker).
        is_primary_residence: Rebates require the purchaser to live in the unit.
        is_rebate_assigned_to_builder: When the rebate is assigned (the usual
            pre-construction arrangement) the purchaser pays HST net of it;
            otherwise the full HST is payable and the rebate is claimed later.
        params: HST rates and rebate thresholds.

    Returns:
        HSTResult with amounts rounded to cents.

    Example:
        >>> result = calculate_hst(Decimal("300000"), is_primary_residence=True)
        >>> result.net_payable
        Decimal('15600.00')
    """
    hst_amount = money(price * params.hst_rate)

    federal_rebate = ZERO
    ontario_rebate = ZERO
    if is_primary_residence:
        federal_rebate = money(calculate_federal_rebate(price, params))
        ontario_rebate = money(calculate_ontario_rebate(price, params))

    net_payable = hst_amount - (federal_rebate + ontario_rebate) if is_rebate_assigned_to_builder else hst_amount

    return HSTResult(
        hst_amount=hst_amount,
        is_rebate_eligible=is_primary_residence,
        federal_rebate=federal_rebate,
        ontario_rebate=ontario_rebate,
        is_rebate_assigned_to_builder=is_rebate_assigned_to_builder,
        net_payable=net_payable,
    )
