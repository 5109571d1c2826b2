"""Calculation modules for the closing engine."""

from .money import money, percent, percent_of, rate, to_decimal
from .fees import FeeSchedule, SystemFeeConfig
from .deposit_interest import (
    calculate_deposit_interest,
    calculate_interest_on_interest,
    calculate_total_deposit_interest,
)
from .land_transfer import calculate_land_transfer_tax, calculate_toronto_land_transfer_tax
from .hst import HSTResult, calculate_hst
from .adjustments import (
    LevyCapResult,
    apply_levy_cap,
    calculate_common_expense_adjustment,
    calculate_property_tax_adjustment,
    calculate_tarion_fee,
    estimate_legal_fees,
)
from .soa import CreditBreakdown, calculate_soa, categorize_credits
from .shortfall import (
    Allocation,
    allocate_assistance,
    calculate_mutual_release_threshold,
    calculate_shortfall,
    determine_recommendation,
    determine_risk_level,
    generate_reasoning,
    status_for_recommendation,
)
from .allocation import ScalingResult, fit_to_budget, scale_to_budget, summarize_project
from .formula_registry import FormulaCategory, FormulaDefinition, FormulaRegistry
from .trace import TraceContext, TracedValue, trace

__all__ = [
    "money",
    "percent",
    "percent_of",
    "rate",
    "to_decimal",
    "FeeSchedule",
    "SystemFeeConfig",
    "calculate_deposit_interest",
    "calculate_interest_on_interest",
    "calculate_total_deposit_interest",
    "calculate_land_transfer_tax",
    "calculate_toronto_land_transfer_tax",
    "HSTResult",
    "calculate_hst",
    "LevyCapResult",
    "apply_levy_cap",
    "calculate_common_expense_adjustment",
    "calculate_property_tax_adjustment",
    "calculate_tarion_fee",
    "estimate_legal_fees",
    "CreditBreakdown",
    "calculate_soa",
    "categorize_credits",
    "Allocation",
    "allocate_assistance",
    "calculate_mutual_release_threshold",
    "calculate_shortfall",
    "determine_recommendation",
    "determine_risk_level",
    "generate_reasoning",
    "status_for_recommendation",
    "ScalingResult",
    "fit_to_budget",
    "scale_to_budget",
    "summarize_project",
    "FormulaCategory",
    "FormulaDefinition",
    "FormulaRegistry",
    "TraceContext",
    "TracedValue",
    "trace",
]
