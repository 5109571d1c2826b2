"""Data models for the closing engine."""

from .lookups import (
    BuilderDecisionAction,
    ClosingRecommendation,
    ConfirmingParty,
    DepositHolder,
    ExcessLevyResponsibility,
    FeeType,
    ProjectStatus,
    RiskLevel,
    SOAVersionSource,
    UnitStatus,
)
from .project import LevyCap, Project, ProjectFee, ProjectFinancials
from .unit import (
    Deposit,
    DepositInterestPeriod,
    MortgageInfo,
    OccupancyFee,
    Purchaser,
    PurchaserFinancials,
    Unit,
    UnitFee,
)
from .statements import (
    AuditLogEntry,
    LockState,
    ProjectSummary,
    ShortfallAnalysis,
    SOAFigures,
    SOAVersion,
    StatementOfAdjustments,
    UnitSummaryRow,
)

__all__ = [
    "BuilderDecisionAction",
    "ClosingRecommendation",
    "ConfirmingParty",
    "DepositHolder",
    "ExcessLevyResponsibility",
    "FeeType",
    "ProjectStatus",
    "RiskLevel",
    "SOAVersionSource",
    "UnitStatus",
    "LevyCap",
    "Project",
    "ProjectFee",
    "ProjectFinancials",
    "Deposit",
    "DepositInterestPeriod",
    "MortgageInfo",
    "OccupancyFee",
    "Purchaser",
    "PurchaserFinancials",
    "Unit",
    "UnitFee",
    "AuditLogEntry",
    "LockState",
    "ProjectSummary",
    "ShortfallAnalysis",
    "SOAFigures",
    "SOAVersion",
    "StatementOfAdjustments",
    "UnitSummaryRow",
]
