"""Unit data model: pricing, dates, deposits, purchasers and their funds."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from .lookups import ClosingRecommendation, DepositHolder, UnitStatus


@dataclass
class DepositInterestPeriod:
    """A government-prescribed deposit interest rate over a date range."""

    period_start: date
    period_end: date
    annual_rate: Decimal  # Percent, e.g. 1.5 for 1.5%


@dataclass
class Deposit:
    """A purchaser deposit toward the purchase price."""

    deposit_name: str
    amount: Decimal
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    is_paid: bool = False
    holder: DepositHolder = DepositHolder.BUILDER
    is_interest_eligible: bool = False
    interest_rate: Optional[Decimal] = None  # Flat annual percent, used when no periods
    interest_periods: List[DepositInterestPeriod] = field(default_factory=list)

    @property
    def counts_toward_interest(self) -> bool:
        """Only paid deposits with a known paid date earn interest."""
        return self.is_paid and self.paid_date is not None


@dataclass
class UnitFee:
    """A unit-specific charge (upgrade) or credit (design credit, cash back...)."""

    fee_name: str
    amount: Decimal
    is_credit: bool = False
    description: str = ""


@dataclass
class OccupancyFee:
    """One month of interim occupancy fees."""

    period_start: date
    period_end: date
    total_monthly_fee: Decimal
    interest_component: Decimal = Decimal("0")
    property_tax_component: Decimal = Decimal("0")
    common_expense_component: Decimal = Decimal("0")
    is_paid: bool = False
    paid_date: Optional[date] = None


@dataclass
class MortgageInfo:
    """Purchaser mortgage approval and credit data."""

    has_mortgage_approval: bool = False
    approved_amount: Optional[Decimal] = None
    credit_score: Optional[int] = None
    purchaser_appraisal_value: Optional[Decimal] = None
    provider: str = ""


@dataclass
class PurchaserFinancials:
    """Funds a purchaser has declared toward closing.

    ``None`` means the purchaser has not submitted the figure; zero means
    they submitted zero.
    """

    additional_cash_available: Optional[Decimal] = None
    rrsp_available: Decimal = Decimal("0")
    gift_from_family: Decimal = Decimal("0")
    proceeds_from_sale: Decimal = Decimal("0")
    other_funds_amount: Decimal = Decimal("0")
    total_funds_available: Optional[Decimal] = None
    annual_income: Optional[Decimal] = None

    @classmethod
    def declared(
        cls,
        additional_cash: Decimal = Decimal("0"),
        rrsp: Decimal = Decimal("0"),
        gift: Decimal = Decimal("0"),
        proceeds_from_sale: Decimal = Decimal("0"),
        other_funds: Decimal = Decimal("0"),
    ) -> "PurchaserFinancials":
        """Financials with the total derived from every declared source."""
        return cls(
            additional_cash_available=additional_cash,
            rrsp_available=rrsp,
            gift_from_family=gift,
            proceeds_from_sale=proceeds_from_sale,
            other_funds_amount=other_funds,
            total_funds_available=additional_cash + rrsp + gift + proceeds_from_sale + other_funds,
        )

    @property
    def funds_available(self) -> Optional[Decimal]:
        """Richer total when submitted, else the single cash figure, else None."""
        if self.total_funds_available is not None:
            return self.total_funds_available
        return self.additional_cash_available


@dataclass
class Purchaser:
    """A purchaser on the agreement of purchase and sale."""

    name: str
    is_primary: bool = True
    ownership_percentage: Decimal = Decimal("100")
    mortgage: Optional[MortgageInfo] = None
    financials: Optional[PurchaserFinancials] = None


@dataclass
class Unit:
    """A condominium unit under an agreement of purchase and sale."""

    id: int
    project_id: int
    unit_number: str
    purchase_price: Decimal
    square_footage: Decimal = Decimal("0")

    # Parking & locker
    has_parking: bool = False
    parking_price: Decimal = Decimal("0")
    has_locker: bool = False
    locker_price: Decimal = Decimal("0")

    # Dates
    aps_date: Optional[date] = None
    occupancy_date: Optional[date] = None
    closing_date: Optional[date] = None

    # Tax & rebate eligibility
    is_first_time_buyer: bool = False
    is_primary_residence: bool = True

    # Builder-entered actuals that override estimates
    actual_annual_land_tax: Optional[Decimal] = None
    actual_monthly_maintenance_fee: Optional[Decimal] = None

    current_appraisal_value: Optional[Decimal] = None
    security_deposit_refund: Decimal = Decimal("0")

    status: UnitStatus = UnitStatus.PENDING
    recommendation: Optional[ClosingRecommendation] = None

    deposits: List[Deposit] = field(default_factory=list)
    fees: List[UnitFee] = field(default_factory=list)
    occupancy_fees: List[OccupancyFee] = field(default_factory=list)
    purchasers: List[Purchaser] = field(default_factory=list)

    @property
    def parking_amount(self) -> Decimal:
        return self.parking_price if self.has_parking else Decimal("0")

    @property
    def locker_amount(self) -> Decimal:
        return self.locker_price if self.has_locker else Decimal("0")

    @property
    def total_price(self) -> Decimal:
        """Purchase price plus parking and locker, the base for taxes and fees."""
        return self.purchase_price + self.parking_amount + self.locker_amount

    @property
    def primary_purchaser(self) -> Optional[Purchaser]:
        for purchaser in self.purchasers:
            if purchaser.is_primary:
                return purchaser
        return None

    @property
    def deposits_paid(self) -> Decimal:
        return sum((d.amount for d in self.deposits if d.is_paid), Decimal("0"))

    @property
    def is_open(self) -> bool:
        """Units still in play for closing assistance."""
        return self.status != UnitStatus.CLOSED
