"""Shortfall analysis and closing-risk classification.

Compares the cash a purchaser must bring to closing with the funds they
have declared, then picks a remedy:

1. Mutual release when deposits plus personal funds cover the mutual
   release threshold (takes priority over everything else).
2. Otherwise a tiered recommendation by shortfall percentage and credit
   score, evaluated in order, first match wins.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from ..models.lookups import (
    DEFAULT_MAX_CREDIT_SCORE,
    DISCOUNT_MAX_SHORTFALL_PCT,
    MUTUAL_RELEASE_GAP_DIVISOR,
    RECOMMENDATION_STATUS,
    RISK_TIERS,
    VTB_FIRST_MAX_LTV,
    VTB_FIRST_MAX_SHORTFALL_PCT,
    VTB_FIRST_MIN_CREDIT_SCORE,
    VTB_SECOND_MAX_SHORTFALL_PCT,
    ClosingRecommendation,
    RiskLevel,
    UnitStatus,
)
from ..models.project import ProjectFinancials
from ..models.statements import ShortfallAnalysis, SOAFigures
from ..models.unit import Unit
from .money import ZERO, money, percent_of
from .trace import trace

R = ClosingRecommendation


def determine_risk_level(shortfall_percentage: Decimal, has_mortgage: bool) -> RiskLevel:
    """Risk tier by shortfall percentage; very high without a mortgage approval."""
    if not has_mortgage:
        return RiskLevel.VERY_HIGH
    for upper, level in RISK_TIERS:
        if shortfall_percentage <= upper:
            return level
    return RiskLevel.VERY_HIGH


def determine_recommendation(shortfall_percentage: Decimal, credit_score: Optional[int] = None) -> ClosingRecommendation:
    """Tiered recommendation, first match wins.

    Shortfalls of 20-50% with a credit score under 700, and shortfalls over
    50% with a score of 600 or more, fall through to a combination of
    discount, VTB and extension. A missing credit score never qualifies for
    a VTB first mortgage and never classifies as a default.
    """
    if shortfall_percentage <= 0:
        return R.PROCEED_TO_CLOSE
    if shortfall_percentage <= DISCOUNT_MAX_SHORTFALL_PCT:
        return R.CLOSE_WITH_DISCOUNT
    if shortfall_percentage <= VTB_SECOND_MAX_SHORTFALL_PCT:
        return R.VTB_SECOND_MORTGAGE
    if shortfall_percentage <= VTB_FIRST_MAX_SHORTFALL_PCT and (credit_score or 0) >= VTB_FIRST_MIN_CREDIT_SCORE:
        return R.VTB_FIRST_MORTGAGE
    if (
        shortfall_percentage > VTB_FIRST_MAX_SHORTFALL_PCT
        and credit_score is not None
        and credit_score < DEFAULT_MAX_CREDIT_SCORE
    ):
        return R.HIGH_RISK_DEFAULT
    return R.COMBINATION_SUGGESTION


def calculate_mutual_release_threshold(purchase_price: Decimal, appraised_value: Optional[Decimal]) -> Optional[Decimal]:
    """Funds the purchaser must have committed to be released from the contract.

    Only defined when the appraisal came in below the purchase price:
    ``price - (price - appraised) / 3``.
    """
    exact = _exact_release_threshold(purchase_price, appraised_value)
    return None if exact is None else money(exact)


def _exact_release_threshold(purchase_price: Decimal, appraised_value: Optional[Decimal]) -> Optional[Decimal]:
    if appraised_value is None or appraised_value <= 0 or appraised_value >= purchase_price:
        return None
    return purchase_price - (purchase_price - appraised_value) / MUTUAL_RELEASE_GAP_DIVISOR


def status_for_recommendation(recommendation: ClosingRecommendation) -> UnitStatus:
    return RECOMMENDATION_STATUS.get(recommendation, UnitStatus.UNDER_REVIEW)


@dataclass
class Allocation:
    """Suggested closing assistance for one unit; None means not offered."""

    discount: Optional[Decimal] = None
    vtb: Optional[Decimal] = None


def _positive_or_none(value: Decimal) -> Optional[Decimal]:
    return value if value > 0 else None


def allocate_assistance(
    recommendation: ClosingRecommendation,
    shortfall: Decimal,
    purchase_price: Decimal,
    financials: Optional[ProjectFinancials],
    unsold_units: int,
) -> Allocation:
    """Split a unit's shortfall between a discount and a VTB mortgage.

    With project financials each unsold unit gets an equal share of the
    profit (discount) and builder capital (VTB) pools. Without them the full
    shortfall goes to the single instrument the recommendation implies.

    Args:
        recommendation: The unit's recommendation.
        shortfall: Shortfall amount.
        purchase_price: APS purchase price, for the VTB first mortgage cap.
        financials: Project budget, if configured.
        unsold_units: Units in the project that have not closed.

    Returns:
        Allocation with amounts rounded to cents.
    """
    if financials is None:
        if recommendation is R.CLOSE_WITH_DISCOUNT:
            return Allocation(discount=shortfall)
        if recommendation in (R.VTB_SECOND_MORTGAGE, R.VTB_FIRST_MORTGAGE):
            return Allocation(vtb=shortfall)
        return Allocation()

    unsold_units = max(unsold_units, 1)
    profit_per_unit = financials.profit_available / unsold_units
    vtb_cap_per_unit = financials.max_builder_capital / unsold_units
    discount = money(min(shortfall, profit_per_unit))
    vtb = money(min(shortfall - discount, vtb_cap_per_unit))

    if recommendation is R.CLOSE_WITH_DISCOUNT:
        return Allocation(discount=discount)
    if recommendation is R.VTB_SECOND_MORTGAGE:
        return Allocation(discount=_positive_or_none(discount), vtb=vtb)
    if recommendation is R.VTB_FIRST_MORTGAGE:
        vtb_first_cap = min(purchase_price * VTB_FIRST_MAX_LTV, vtb_cap_per_unit)
        return Allocation(
            discount=_positive_or_none(discount),
            vtb=money(min(shortfall - discount, vtb_first_cap)),
        )
    if recommendation is R.COMBINATION_SUGGESTION:
        return Allocation(discount=_positive_or_none(discount), vtb=_positive_or_none(vtb))
    return Allocation()


def _usd(value: Optional[Decimal]) -> str:
    return f"${value or ZERO:,.0f}"


def generate_reasoning(analysis: ShortfallAnalysis, unit: Unit) -> str:
    """Human-readable explanation of the recommendation, one reason per line."""
    reasons: List[str] = []
    rec = analysis.recommendation
    shortfall_text = f"{_usd(analysis.shortfall_amount)} ({analysis.shortfall_percentage}% of purchase price)"

    if rec is R.PROCEED_TO_CLOSE:
        reasons.append("Purchaser has sufficient funds to close. No shortfall detected.")
        reasons.append(f"Mortgage approved: {_usd(analysis.mortgage_approved)}")
        reasons.append(f"Additional cash available: {_usd(analysis.additional_cash_available)}")
    elif rec is R.CLOSE_WITH_DISCOUNT:
        reasons.append(f"Shortfall of {shortfall_text}.")
        reasons.append(f"Recommend offering a discount or credit of {_usd(analysis.suggested_discount)} to enable closing.")
        reasons.append("Purchaser has mortgage approval and can close with minor assistance.")
    elif rec is R.VTB_SECOND_MORTGAGE:
        reasons.append(f"Moderate shortfall of {shortfall_text}.")
        reasons.append(f"Recommend Vendor Take-Back (VTB) second mortgage of {_usd(analysis.suggested_vtb_amount)}.")
        reasons.append("Primary mortgage is in place. VTB would be subordinate to first mortgage.")
    elif rec is R.VTB_FIRST_MORTGAGE:
        reasons.append(f"Significant shortfall of {shortfall_text}.")
        if analysis.mortgage_approved == 0:
            reasons.append("Purchaser has no mortgage approval.")
            reasons.append(f"Recommend VTB first mortgage up to 75% of APS ({_usd(unit.purchase_price * VTB_FIRST_MAX_LTV)} max).")
        else:
            reasons.append(f"Recommend restructuring with VTB first mortgage of {_usd(analysis.suggested_vtb_amount)}.")
        reasons.append("High risk scenario - recommend additional due diligence on purchaser ability to service debt.")
    elif rec in (R.HIGH_RISK_DEFAULT, R.POTENTIAL_DEFAULT):
        reasons.append(f"Critical shortfall of {shortfall_text}.")
        reasons.append("Risk assessment indicates high probability of default.")
        reasons.append("Options: 1) Negotiate assignment sale, 2) Mutual release, 3) Default proceedings.")
        reasons.append("Recommend legal review before proceeding.")
    elif rec is R.MUTUAL_RELEASE:
        reasons.append("Purchaser deposits and personal funds meet the mutual release threshold.")
        reasons.append(f"Mutual release threshold: {_usd(analysis.mutual_release_threshold)}.")
        reasons.append("Purchaser can exit the contract without additional financial loss. No discount or VTB required.")
    elif rec is R.COMBINATION_SUGGESTION:
        reasons.append(f"Shortfall of {shortfall_text}.")
        reasons.append("Suggest a combination approach: partial discount + VTB second mortgage + optional closing extension.")
        if analysis.suggested_discount is not None:
            reasons.append(f"Suggested discount component: {_usd(analysis.suggested_discount)}.")
        if analysis.suggested_vtb_amount is not None:
            reasons.append(f"Suggested VTB component: {_usd(analysis.suggested_vtb_amount)}.")

    if not analysis.funds_declared:
        reasons.append("Note: Purchaser has not declared personal funds; analysis assumes none.")

    appraisal = unit.current_appraisal_value
    if appraisal is not None and appraisal < unit.purchase_price:
        gap = unit.purchase_price - appraisal
        reasons.append(f"Note: Current appraisal ({_usd(appraisal)}) is {_usd(gap)} below purchase price.")

    return "\n".join(reasons)


def _purchaser_inputs(unit: Unit) -> Tuple[Decimal, bool, Optional[int], Optional[Decimal], Optional[Decimal]]:
    """Mortgage, approval flag, credit score, appraisal and declared funds of the primary purchaser."""
    purchaser = unit.primary_purchaser
    mortgage = purchaser.mortgage if purchaser else None
    financials = purchaser.financials if purchaser else None

    approved = (mortgage.approved_amount if mortgage else None) or ZERO
    has_approval = mortgage.has_mortgage_approval if mortgage else False
    credit_score = mortgage.credit_score if mortgage else None
    purchaser_appraisal = mortgage.purchaser_appraisal_value if mortgage else None
    funds = financials.funds_available if financials else None
    return approved, has_approval, credit_score, purchaser_appraisal, funds


def calculate_shortfall(
    unit: Unit,
    figures: SOAFigures,
    financials: Optional[ProjectFinancials],
    unsold_units: int,
    at: datetime,
) -> ShortfallAnalysis:
    """Analyze a unit's shortfall against its statement of adjustments.

    Args:
        unit: The unit with purchasers, deposits and appraisal.
        figures: The unit's current SOA figures.
        financials: Project budget for discount/VTB allocation, if any.
        unsold_units: Units in the project that have not closed.
        at: Calculation timestamp.

    Returns:
        A new ShortfallAnalysis.
    """
    uid = unit.id
    approved, has_approval, credit_score, purchaser_appraisal, declared_funds = _purchaser_inputs(unit)
    deposits_paid = unit.deposits_paid
    # Undeclared funds count as zero only from here on
    funds_declared = declared_funds is not None
    personal_funds = declared_funds if funds_declared else ZERO

    total_funds = trace("shortfall.funds_available", approved + deposits_paid + personal_funds, {
        "soa.mortgage_amount": approved,
        "soa.deposits_paid": deposits_paid,
        "purchaser_funds": personal_funds,
    }, unit_id=uid)

    shortfall = trace("shortfall.amount", max(ZERO, figures.cash_required_to_close - personal_funds), {
        "soa.cash_required_to_close": figures.cash_required_to_close,
        "purchaser_funds": personal_funds,
    }, unit_id=uid)
    shortfall_pct = trace("shortfall.percentage", percent_of(shortfall, unit.purchase_price), {
        "shortfall.amount": shortfall,
        "inputs.purchase_price": unit.purchase_price,
    }, unit_id=uid)

    # Purchaser-reported appraisal takes precedence over the builder's
    appraised_value = purchaser_appraisal if purchaser_appraisal is not None else unit.current_appraisal_value
    threshold = calculate_mutual_release_threshold(unit.purchase_price, appraised_value)
    if threshold is not None:
        trace("shortfall.mutual_release_threshold", threshold,
              {"inputs.purchase_price": unit.purchase_price, "appraised_value": appraised_value}, unit_id=uid)

    # Compared unrounded; only the stored threshold is in cents
    exact_threshold = _exact_release_threshold(unit.purchase_price, appraised_value)
    if exact_threshold is not None and deposits_paid + personal_funds >= exact_threshold:
        recommendation = R.MUTUAL_RELEASE
    else:
        recommendation = determine_recommendation(shortfall_pct, credit_score)

    allocation = allocate_assistance(recommendation, shortfall, unit.purchase_price, financials, unsold_units)
    if allocation.discount is not None:
        trace("allocation.discount", allocation.discount, {"shortfall.amount": shortfall}, unit_id=uid)
    if allocation.vtb is not None:
        trace("allocation.vtb", allocation.vtb, {"shortfall.amount": shortfall}, unit_id=uid)

    analysis = ShortfallAnalysis(
        unit_id=uid,
        soa_amount=figures.balance_due_on_closing,
        mortgage_approved=approved,
        deposits_paid=deposits_paid,
        additional_cash_available=personal_funds,
        funds_declared=funds_declared,
        total_funds_available=total_funds,
        shortfall_amount=shortfall,
        shortfall_percentage=shortfall_pct,
        risk_level=determine_risk_level(shortfall_pct, has_approval),
        recommendation=recommendation,
        calculated_at=at,
        suggested_discount=allocation.discount,
        suggested_vtb_amount=allocation.vtb,
        mutual_release_threshold=threshold,
    )
    analysis.recommendation_reasoning = generate_reasoning(analysis, unit)
    return analysis
