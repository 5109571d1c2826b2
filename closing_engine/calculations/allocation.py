"""Project-wide allocation of the shared discount/VTB budget and rollup.

Each unit's suggestion is sized against an equal share of the project
budget, but shares are not reserved: when the suggestions of all open units
add up to more than the pool, every non-zero suggestion is scaled by the
same factor. Cents lost or gained in rounding go to the largest suggestion
so the total equals the pool exactly.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from ..models.lookups import ClosingRecommendation, UnitStatus
from ..models.project import ProjectFinancials
from ..models.statements import ProjectSummary, ShortfallAnalysis, UnitSummaryRow
from ..models.unit import Unit
from .money import ZERO, money, percent_of, total
from .trace import trace

R = ClosingRecommendation

NEEDS_VTB = (R.VTB_SECOND_MORTGAGE, R.VTB_FIRST_MORTGAGE)
DEFAULTS = (R.HIGH_RISK_DEFAULT, R.POTENTIAL_DEFAULT)


def scale_to_budget(
    amounts: Mapping[int, Optional[Decimal]],
    budget: Decimal,
) -> Optional[Dict[int, Optional[Decimal]]]:
    """Scale suggestions proportionally so they sum to exactly ``budget``.

    Each amount is rounded to cents; the rounding remainder is added to the
    largest suggestion.

    Args:
        amounts: Suggested amount per unit id; None or zero means no suggestion.
        budget: Pool available for this instrument.

    Returns:
        Scaled amounts (rounded to cents) keyed like ``amounts``, or None when
        the suggestions already fit the budget.
    """
    requested = total(a for a in amounts.values() if a)
    if requested <= budget or requested <= 0:
        return None
    factor = budget / requested
    scaled = {
        unit_id: money(amount * factor) if amount and amount > 0 else amount
        for unit_id, amount in amounts.items()
    }
    largest = max((uid for uid, amount in amounts.items() if amount and amount > 0), key=lambda uid: amounts[uid])
    scaled[largest] += money(budget) - total(a for a in scaled.values() if a)
    return scaled


@dataclass
class ScalingResult:
    """Outcome of fitting open units' suggestions to the project budget."""

    discounts: Optional[Dict[int, Optional[Decimal]]] = None
    vtbs: Optional[Dict[int, Optional[Decimal]]] = None

    @property
    def changed(self) -> bool:
        return self.discounts is not None or self.vtbs is not None

    def apply(self, analyses: Mapping[int, ShortfallAnalysis]) -> List[ShortfallAnalysis]:
        """Write scaled amounts onto the analyses and return those touched."""
        touched: Dict[int, ShortfallAnalysis] = {}
        for unit_id, amount in (self.discounts or {}).items():
            analyses[unit_id].suggested_discount = amount
            touched[unit_id] = analyses[unit_id]
        for unit_id, amount in (self.vtbs or {}).items():
            analyses[unit_id].suggested_vtb_amount = amount
            touched[unit_id] = analyses[unit_id]
        return list(touched.values())


def fit_to_budget(
    open_analyses: Mapping[int, ShortfallAnalysis],
    financials: ProjectFinancials,
) -> ScalingResult:
    """Scale discounts to the profit pool and VTBs to the builder capital pool.

    The two pools are scaled independently.
    """
    discounts = scale_to_budget(
        {uid: a.suggested_discount for uid, a in open_analyses.items()},
        financials.profit_available,
    )
    vtbs = scale_to_budget(
        {uid: a.suggested_vtb_amount for uid, a in open_analyses.items()},
        financials.max_builder_capital,
    )
    if discounts is not None:
        requested = total(a.suggested_discount or ZERO for a in open_analyses.values())
        trace("allocation.discount_scale", financials.profit_available / requested,
              {"allocation.discount": requested})
    if vtbs is not None:
        requested = total(a.suggested_vtb_amount or ZERO for a in open_analyses.values())
        trace("allocation.vtb_scale", financials.max_builder_capital / requested,
              {"allocation.vtb": requested})
    return ScalingResult(discounts=discounts, vtbs=vtbs)


def summarize_project(
    project_id: int,
    units: List[Unit],
    analyses: Mapping[int, ShortfallAnalysis],
    at: datetime,
) -> ProjectSummary:
    """Roll unit recommendations and analyses up into a fresh project summary.

    Args:
        project_id: Project being summarized.
        units: Every unit in the project.
        analyses: Shortfall analyses by unit id (units without one are skipped
            in the financial totals).
        at: Calculation timestamp.

    Returns:
        A new ProjectSummary.
    """
    summary = ProjectSummary(project_id=project_id, calculated_at=at, total_units=len(units))
    if not units:
        return summary

    def count(*recommendations: ClosingRecommendation) -> int:
        return sum(1 for u in units if u.recommendation in recommendations)

    n = len(units)
    summary.units_ready_to_close = count(R.PROCEED_TO_CLOSE)
    summary.units_needing_discount = count(R.CLOSE_WITH_DISCOUNT)
    summary.units_needing_vtb = count(*NEEDS_VTB)
    summary.units_at_risk = count(*DEFAULTS)
    summary.units_mutual_release = count(R.MUTUAL_RELEASE)
    summary.units_combination = count(R.COMBINATION_SUGGESTION)
    summary.units_pending_data = sum(1 for u in units if u.status is UnitStatus.PENDING)

    summary.percent_ready_to_close = percent_of(summary.units_ready_to_close, n)
    summary.percent_needing_discount = percent_of(summary.units_needing_discount, n)
    summary.percent_needing_vtb = percent_of(summary.units_needing_vtb, n)
    summary.percent_at_risk = percent_of(summary.units_at_risk, n)

    summary.total_sales_value = total(u.purchase_price for u in units)
    summary.total_discount_required = total(
        analyses[u.id].suggested_discount or ZERO
        for u in units
        if u.id in analyses and u.recommendation is R.CLOSE_WITH_DISCOUNT
    )
    summary.discount_percent_of_sales = percent_of(summary.total_discount_required, summary.total_sales_value)
    summary.total_investment_at_risk = total(u.purchase_price for u in units if u.recommendation in DEFAULTS)
    summary.total_shortfall = total(analyses[u.id].shortfall_amount for u in units if u.id in analyses)
    summary.total_fund_needed_to_close = trace("allocation.fund_needed_to_close", total(
        analyses[u.id].remaining_after_assistance
        for u in units
        if u.id in analyses and u.is_open
    ), {})
    summary.closing_probability_percent = percent_of(
        summary.units_ready_to_close + summary.units_needing_discount + summary.units_needing_vtb, n
    )

    for unit in units:
        analysis = analyses.get(unit.id)
        summary.units.append(UnitSummaryRow(
            unit_id=unit.id,
            unit_number=unit.unit_number,
            status=unit.status,
            recommendation=unit.recommendation,
            purchase_price=unit.purchase_price,
            shortfall_amount=analysis.shortfall_amount if analysis else ZERO,
            suggested_discount=(analysis.suggested_discount or ZERO) if analysis else ZERO,
            suggested_vtb_amount=(analysis.suggested_vtb_amount or ZERO) if analysis else ZERO,
            remaining_after_assistance=analysis.remaining_after_assistance if analysis else ZERO,
        ))

    return summary
