"""Enumerations and statutory rate tables for Ontario pre-construction closings."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class FeeType(Enum):
    """Project-level fee categories charged on the statement of adjustments."""

    DEVELOPMENT_CHARGES = "development_charges"
    EDUCATION_DEVELOPMENT_CHARGES = "education_development_charges"  # EDCs
    PARKLAND_LEVY = "parkland_levy"
    COMMUNITY_BENEFIT_CHARGES = "community_benefit_charges"  # CBC
    UTILITY_CONNECTION = "utility_connection"
    SEWER_CONNECTION = "sewer_connection"
    WATER_CONNECTION = "water_connection"
    HYDRO_CONNECTION = "hydro_connection"
    GAS_CONNECTION = "gas_connection"
    METER_INSTALLATION = "meter_installation"
    LEGAL_FEES = "legal_fees"
    OTHER = "other"


UTILITY_FEE_TYPES: FrozenSet[FeeType] = frozenset({
    FeeType.UTILITY_CONNECTION,
    FeeType.SEWER_CONNECTION,
    FeeType.WATER_CONNECTION,
    FeeType.HYDRO_CONNECTION,
    FeeType.GAS_CONNECTION,
    FeeType.METER_INSTALLATION,
})


class ExcessLevyResponsibility(Enum):
    """Who pays the part of a capped levy above the cap."""

    BUILDER = "builder"
    BUYER = "buyer"


class ProjectStatus(Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    ARCHIVED = "archived"


class UnitStatus(Enum):
    """Closing status of a unit."""

    PENDING = "pending"  # Waiting for purchaser data
    DATA_COMPLETE = "data_complete"
    UNDER_REVIEW = "under_review"
    READY_TO_CLOSE = "ready_to_close"
    NEEDS_DISCOUNT = "needs_discount"
    NEEDS_VTB = "needs_vtb"
    AT_RISK = "at_risk"
    CLOSED = "closed"
    DEFAULTED = "defaulted"
    CANCELLED = "cancelled"


class ClosingRecommendation(Enum):
    """Recommended path to closing, ordered by severity of the remedy."""

    PROCEED_TO_CLOSE = "proceed_to_close"
    CLOSE_WITH_DISCOUNT = "close_with_discount"
    VTB_SECOND_MORTGAGE = "vtb_second_mortgage"
    VTB_FIRST_MORTGAGE = "vtb_first_mortgage"
    HIGH_RISK_DEFAULT = "high_risk_default"
    POTENTIAL_DEFAULT = "potential_default"
    MUTUAL_RELEASE = "mutual_release"
    COMBINATION_SUGGESTION = "combination_suggestion"


class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class SOAVersionSource(Enum):
    """Origin of an SOA version snapshot."""

    SYSTEM_CALCULATION = "system_calculation"
    LAWYER_UPLOAD = "lawyer_upload"
    BUILDER_UPLOAD = "builder_upload"
    LAWYER_SOA_CONFIRMATION = "lawyer_soa_confirmation"


class ConfirmingParty(Enum):
    BUILDER = "builder"
    LAWYER = "lawyer"


class BuilderDecisionAction(Enum):
    """Builder response to the suggested remedy."""

    ACCEPTED = "Accepted"
    MODIFIED = "Modified"
    REJECTED = "Rejected"


class DepositHolder(Enum):
    BUILDER = "builder"
    TRUST = "trust"
    LAWYER = "lawyer"


# Unit status implied by each recommendation
RECOMMENDATION_STATUS: Dict[ClosingRecommendation, UnitStatus] = {
    ClosingRecommendation.PROCEED_TO_CLOSE: UnitStatus.READY_TO_CLOSE,
    ClosingRecommendation.CLOSE_WITH_DISCOUNT: UnitStatus.NEEDS_DISCOUNT,
    ClosingRecommendation.VTB_SECOND_MORTGAGE: UnitStatus.NEEDS_VTB,
    ClosingRecommendation.VTB_FIRST_MORTGAGE: UnitStatus.NEEDS_VTB,
    ClosingRecommendation.HIGH_RISK_DEFAULT: UnitStatus.AT_RISK,
    ClosingRecommendation.POTENTIAL_DEFAULT: UnitStatus.AT_RISK,
    ClosingRecommendation.MUTUAL_RELEASE: UnitStatus.AT_RISK,
    ClosingRecommendation.COMBINATION_SUGGESTION: UnitStatus.NEEDS_VTB,
}


@dataclass(frozen=True)
class TaxBracket:
    """One marginal band of a land transfer tax schedule."""

    lower: Decimal
    upper: Optional[Decimal]  # None for the open top band
    rate: Decimal


# Ontario land transfer tax (2024). Toronto's municipal tax uses the same bands.
LAND_TRANSFER_TAX_BRACKETS: List[TaxBracket] = [
    TaxBracket(Decimal("0"), Decimal("55000"), Decimal("0.005")),
    TaxBracket(Decimal("55000"), Decimal("250000"), Decimal("0.01")),
    TaxBracket(Decimal("250000"), Decimal("400000"), Decimal("0.015")),
    TaxBracket(Decimal("400000"), Decimal("2000000"), Decimal("0.02")),
    TaxBracket(Decimal("2000000"), None, Decimal("0.025")),
]

ONTARIO_FIRST_TIME_BUYER_REBATE_CAP = Decimal("4000")
TORONTO_FIRST_TIME_BUYER_REBATE_CAP = Decimal("4475")

# Former municipalities amalgamated into the City of Toronto
TORONTO_CITIES: FrozenSet[str] = frozenset({
    "toronto",
    "north york",
    "scarborough",
    "etobicoke",
    "york",
    "east york",
})


# Tarion warranty enrolment fee by total price (upper bound inclusive, fee)
TARION_FEE_BANDS: List[Tuple[Decimal, Decimal]] = [
    (Decimal("100000"), Decimal("300")),
    (Decimal("150000"), Decimal("430")),
    (Decimal("200000"), Decimal("515")),
    (Decimal("250000"), Decimal("610")),
    (Decimal("300000"), Decimal("720")),
    (Decimal("350000"), Decimal("835")),
    (Decimal("400000"), Decimal("950")),
    (Decimal("500000"), Decimal("1130")),
    (Decimal("600000"), Decimal("1350")),
    (Decimal("700000"), Decimal("1550")),
    (Decimal("850000"), Decimal("1850")),
    (Decimal("1000000"), Decimal("2150")),
]
TARION_FEE_MAX = Decimal("2450")

# Legal fee estimate when the project has no legal fee configured
LEGAL_FEE_BANDS: List[Tuple[Decimal, Decimal]] = [
    (Decimal("500000"), Decimal("1500")),
    (Decimal("1000000"), Decimal("2000")),
]
LEGAL_FEE_MAX = Decimal("2500")


@dataclass(frozen=True)
class HSTParams:
    """Ontario HST and new housing rebate parameters."""

    hst_rate: Decimal = Decimal("0.13")
    federal_rate: Decimal = Decimal("0.05")  # GST portion
    provincial_rate: Decimal = Decimal("0.08")  # PST portion
    federal_rebate_pct: Decimal = Decimal("0.36")
    federal_rebate_cap: Decimal = Decimal("6300")
    federal_full_rebate_limit: Decimal = Decimal("350000")
    federal_phase_out_limit: Decimal = Decimal("450000")
    provincial_rebate_pct: Decimal = Decimal("0.75")
    provincial_rebate_cap: Decimal = Decimal("24000")


DEFAULT_HST_PARAMS = HSTParams()

# Multiplier for admin fees that carry HST on top of the configured amount
SYSTEM_FEE_HST_MULTIPLIER = Decimal("1.13")

# Keys of the admin-configured closing fees
SYSTEM_FEE_KEYS: Tuple[str, ...] = ("HCRA", "ElectronicReg", "StatusCert", "TransactionLevy")

# Estimates used when the builder has not entered actual figures
ESTIMATED_ANNUAL_TAX_RATE = Decimal("0.01")  # of purchase price
ESTIMATED_MAINTENANCE_PER_SQFT = Decimal("0.60")  # monthly

# Shortfall classification thresholds (percent of purchase price)
DISCOUNT_MAX_SHORTFALL_PCT = Decimal("10")
VTB_SECOND_MAX_SHORTFALL_PCT = Decimal("20")
VTB_FIRST_MAX_SHORTFALL_PCT = Decimal("50")
VTB_FIRST_MIN_CREDIT_SCORE = 700
DEFAULT_MAX_CREDIT_SCORE = 600

# Risk tiers (percent of purchase price, upper bound inclusive)
RISK_TIERS: List[Tuple[Decimal, RiskLevel]] = [
    (Decimal("5"), RiskLevel.LOW),
    (Decimal("15"), RiskLevel.MEDIUM),
    (Decimal("25"), RiskLevel.HIGH),
]

# VTB first mortgage is capped at this share of the purchase price
VTB_FIRST_MAX_LTV = Decimal("0.75")

# Share of the appraisal gap the purchaser must cover for a mutual release
MUTUAL_RELEASE_GAP_DIVISOR = Decimal("3")

# Credit row name fragments, matched in this order
CREDIT_NAME_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("design", "design_credits"),
    ("upgrade", "free_upgrades_value"),
    ("cash", "cash_back_incentives"),
)


def is_toronto_property(city: Optional[str]) -> bool:
    """Whether a project city attracts the Toronto municipal land transfer tax."""
    return (city or "").strip().lower() in TORONTO_CITIES
