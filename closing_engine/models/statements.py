"""Closing snapshots: statement of adjustments, shortfall analysis, project summary.

The statement of adjustments (SOA) is a two-column statement. The vendor
column lists amounts the purchaser owes the vendor; the purchaser column
lists amounts credited back to the purchaser. Once both builder and lawyer
have confirmed the figures the SOA can be locked, and a locked SOA is
immutable until it is explicitly unlocked.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd

from ..errors import LockedStateError, PreconditionNotMetError
from .lookups import (
    BuilderDecisionAction,
    ClosingRecommendation,
    ConfirmingParty,
    RiskLevel,
    SOAVersionSource,
    UnitStatus,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class SOAFigures:
    """Every line item and total of one SOA calculation."""

    # === Vendor column (credit vendor) ===
    purchase_price: Decimal = ZERO
    total_price: Decimal = ZERO  # Purchase price + parking + locker
    development_charges: Decimal = ZERO
    builder_absorbed_levies: Decimal = ZERO  # Excess over levy cap, not charged
    education_development_charges: Decimal = ZERO
    parkland_levy: Decimal = ZERO
    community_benefit_charges: Decimal = ZERO
    tarion_fee: Decimal = ZERO
    utility_connection_fees: Decimal = ZERO
    property_tax_adjustment: Decimal = ZERO
    common_expense_adjustment: Decimal = ZERO
    occupancy_fees_chargeable: Decimal = ZERO
    occupancy_fees_paid: Decimal = ZERO
    occupancy_fees_owing: Decimal = ZERO
    parking_price: Decimal = ZERO
    locker_price: Decimal = ZERO
    upgrades: Decimal = ZERO
    legal_fees_estimate: Decimal = ZERO
    other_debits: Decimal = ZERO

    # HST and new housing rebates
    hst_amount: Decimal = ZERO
    is_hst_rebate_eligible: bool = False
    hst_rebate_federal: Decimal = ZERO
    hst_rebate_ontario: Decimal = ZERO
    hst_rebate_total: Decimal = ZERO
    is_hst_rebate_assigned_to_builder: bool = True
    net_hst_payable: Decimal = ZERO

    # Admin-configured closing fees
    hcra_fee: Decimal = ZERO
    electronic_reg_fee: Decimal = ZERO
    status_cert_fee: Decimal = ZERO
    transaction_levy_fee: Decimal = ZERO

    # Informational: paid to the province / city, not to the vendor
    land_transfer_tax: Decimal = ZERO
    toronto_land_transfer_tax: Decimal = ZERO

    total_vendor_credits: Decimal = ZERO

    # === Purchaser column (credit purchaser) ===
    deposits_paid: Decimal = ZERO
    deposit_interest: Decimal = ZERO
    interest_on_deposit_interest: Decimal = ZERO
    security_deposit_refund: Decimal = ZERO
    builder_credits: Decimal = ZERO  # Sum of the four categories below
    design_credits: Decimal = ZERO
    free_upgrades_value: Decimal = ZERO
    cash_back_incentives: Decimal = ZERO
    other_credits: Decimal = ZERO

    total_purchaser_credits: Decimal = ZERO

    # === Closing ===
    balance_due_on_closing: Decimal = ZERO
    mortgage_amount: Decimal = ZERO
    cash_required_to_close: Decimal = ZERO

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class LockState(Enum):
    """Confirmation and lock workflow of an SOA.

    UNLOCKED -> AWAITING_LAWYER (builder confirmed) or AWAITING_BUILDER
    (lawyer confirmed) -> CONFIRMED (both) -> LOCKED. Unlock returns to
    UNLOCKED with both confirmations cleared.
    """

    UNLOCKED = "unlocked"
    AWAITING_LAWYER = "awaiting_lawyer"
    AWAITING_BUILDER = "awaiting_builder"
    CONFIRMED = "confirmed"
    LOCKED = "locked"


_CONFIRM_TRANSITIONS: Dict[tuple, LockState] = {
    (LockState.UNLOCKED, ConfirmingParty.BUILDER): LockState.AWAITING_LAWYER,
    (LockState.UNLOCKED, ConfirmingParty.LAWYER): LockState.AWAITING_BUILDER,
    (LockState.AWAITING_LAWYER, ConfirmingParty.LAWYER): LockState.CONFIRMED,
    (LockState.AWAITING_BUILDER, ConfirmingParty.BUILDER): LockState.CONFIRMED,
}


@dataclass
class Confirmation:
    user_id: str
    confirmed_at: datetime


@dataclass
class StatementOfAdjustments:
    """The current SOA snapshot for a unit, overwritten in place on recalculation."""

    unit_id: int
    figures: SOAFigures
    calculated_at: datetime
    calculation_version: int = 1
    recalculated_at: Optional[datetime] = None

    lock_state: LockState = LockState.UNLOCKED
    builder_confirmation: Optional[Confirmation] = None
    lawyer_confirmation: Optional[Confirmation] = None
    locked_at: Optional[datetime] = None
    locked_by_user_id: Optional[str] = None

    # Balance from the lawyer's own statement, when uploaded
    lawyer_uploaded_balance_due: Optional[Decimal] = None

    @property
    def is_locked(self) -> bool:
        return self.lock_state is LockState.LOCKED

    @property
    def is_confirmed_by_builder(self) -> bool:
        return self.lock_state in (LockState.AWAITING_LAWYER, LockState.CONFIRMED, LockState.LOCKED)

    @property
    def is_confirmed_by_lawyer(self) -> bool:
        return self.lock_state in (LockState.AWAITING_BUILDER, LockState.CONFIRMED, LockState.LOCKED)

    @property
    def balance_due_on_closing(self) -> Decimal:
        return self.figures.balance_due_on_closing

    @property
    def cash_required_to_close(self) -> Decimal:
        return self.figures.cash_required_to_close

    def apply_calculation(self, figures: SOAFigures, at: datetime) -> None:
        """Overwrite the figures with a fresh calculation.

        New figures invalidate any partial confirmation.

        Raises:
            LockedStateError: If the SOA is locked.
        """
        if self.is_locked:
            raise LockedStateError(self.unit_id)
        self.figures = figures
        self.calculation_version += 1
        self.recalculated_at = at
        self.lock_state = LockState.UNLOCKED
        self.builder_confirmation = None
        self.lawyer_confirmation = None

    def record_lawyer_balance(self, balance_due: Decimal) -> Optional[Decimal]:
        """Store the lawyer's balance due and return the previous one."""
        if self.is_locked:
            raise LockedStateError(self.unit_id)
        previous = self.lawyer_uploaded_balance_due
        self.lawyer_uploaded_balance_due = balance_due
        return previous

    def confirm(self, party: ConfirmingParty, user_id: str, at: datetime) -> bool:
        """Record a party's confirmation.

        Returns:
            False if that party had already confirmed, True otherwise.

        Raises:
            LockedStateError: If the SOA is locked.
        """
        if self.is_locked:
            raise LockedStateError(self.unit_id)
        next_state = _CONFIRM_TRANSITIONS.get((self.lock_state, party))
        if next_state is None:
            return False
        self.lock_state = next_state
        if party is ConfirmingParty.BUILDER:
            self.builder_confirmation = Confirmation(user_id, at)
        else:
            self.lawyer_confirmation = Confirmation(user_id, at)
        return True

    def lock(self, user_id: str, at: datetime) -> None:
        """Lock the SOA.

        Raises:
            PreconditionNotMetError: Unless both parties have confirmed.
        """
        if self.lock_state is not LockState.CONFIRMED:
            raise PreconditionNotMetError(
                f"SOA for unit {self.unit_id} needs builder and lawyer confirmation "
                f"before locking (state: {self.lock_state.value})"
            )
        self.lock_state = LockState.LOCKED
        self.locked_at = at
        self.locked_by_user_id = user_id

    def unlock(self) -> None:
        """Unlock and clear both confirmations.

        Raises:
            PreconditionNotMetError: If the SOA is not locked.
        """
        if not self.is_locked:
            raise PreconditionNotMetError(f"SOA for unit {self.unit_id} is not locked")
        self.lock_state = LockState.UNLOCKED
        self.locked_at = None
        self.locked_by_user_id = None
        self.builder_confirmation = None
        self.lawyer_confirmation = None


@dataclass(frozen=True)
class SOAVersion:
    """Append-only record of one SOA calculation or upload."""

    unit_id: int
    version_number: int
    source: SOAVersionSource
    balance_due_on_closing: Decimal
    total_vendor_credits: Decimal
    total_purchaser_credits: Decimal
    cash_required_to_close: Decimal
    created_by_user_id: str
    created_by_role: str
    created_at: datetime
    uploaded_file_path: Optional[str] = None
    notes: str = ""


@dataclass(frozen=True)
class AuditLogEntry:
    entity_type: str
    entity_id: int
    action: str
    timestamp: datetime
    user_id: Optional[str] = None
    user_role: Optional[str] = None
    old_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ShortfallAnalysis:
    """Funds available versus cash required to close, with the suggested remedy."""

    unit_id: int
    soa_amount: Decimal
    mortgage_approved: Decimal
    deposits_paid: Decimal
    additional_cash_available: Decimal
    funds_declared: bool  # False when the purchaser has not submitted any funds
    total_funds_available: Decimal
    shortfall_amount: Decimal
    shortfall_percentage: Decimal
    risk_level: RiskLevel
    recommendation: ClosingRecommendation
    calculated_at: datetime
    suggested_discount: Optional[Decimal] = None
    suggested_vtb_amount: Optional[Decimal] = None
    mutual_release_threshold: Optional[Decimal] = None
    recommendation_reasoning: str = ""
    recalculated_at: Optional[datetime] = None

    # Builder decision on the suggestion
    decision_action: Optional[BuilderDecisionAction] = None
    decision_by_user_id: Optional[str] = None
    decision_at: Optional[datetime] = None
    builder_modified_suggestion: Optional[str] = None

    @property
    def remaining_after_assistance(self) -> Decimal:
        """Shortfall still uncovered after the suggested discount and VTB."""
        remaining = (
            self.shortfall_amount
            - (self.suggested_discount or ZERO)
            - (self.suggested_vtb_amount or ZERO)
        )
        return max(ZERO, remaining)


@dataclass
class UnitSummaryRow:
    """One unit's line in a project rollup."""

    unit_id: int
    unit_number: str
    status: UnitStatus
    recommendation: Optional[ClosingRecommendation]
    purchase_price: Decimal
    shortfall_amount: Decimal
    suggested_discount: Decimal
    suggested_vtb_amount: Decimal
    remaining_after_assistance: Decimal


@dataclass
class ProjectSummary:
    """Project-wide rollup of unit recommendations and closing financials."""

    project_id: int
    calculated_at: datetime
    total_units: int = 0
    units_ready_to_close: int = 0
    units_needing_discount: int = 0
    units_needing_vtb: int = 0
    units_at_risk: int = 0
    units_mutual_release: int = 0
    units_combination: int = 0
    units_pending_data: int = 0
    percent_ready_to_close: Decimal = ZERO
    percent_needing_discount: Decimal = ZERO
    percent_needing_vtb: Decimal = ZERO
    percent_at_risk: Decimal = ZERO
    total_sales_value: Decimal = ZERO
    total_discount_required: Decimal = ZERO
    discount_percent_of_sales: Decimal = ZERO
    total_investment_at_risk: Decimal = ZERO
    total_shortfall: Decimal = ZERO
    total_fund_needed_to_close: Decimal = ZERO
    closing_probability_percent: Decimal = ZERO
    units: List[UnitSummaryRow] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        """Per-unit rollup as a DataFrame indexed by unit id."""
        columns = [f.name for f in fields(UnitSummaryRow)]
        rows = []
        for row in self.units:
            record = {name: getattr(row, name) for name in columns}
            record["status"] = row.status.value
            record["recommendation"] = row.recommendation.value if row.recommendation else None
            rows.append(record)
        return pd.DataFrame(rows, columns=columns).set_index("unit_id")
