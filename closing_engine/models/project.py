"""Project data model: fees, levy caps, and the shared discount/VTB budget."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from .lookups import ExcessLevyResponsibility, FeeType, ProjectStatus


@dataclass
class ProjectFee:
    """A fee charged to every unit in a project."""

    fee_name: str
    fee_type: FeeType
    amount: Decimal
    applies_to_all_units: bool = True
    description: str = ""


@dataclass
class LevyCap:
    """Contractual ceiling on a levy charged to the purchaser."""

    levy_name: str  # e.g., "Development Charges Cap"
    cap_amount: Decimal
    excess_responsibility: ExcessLevyResponsibility = ExcessLevyResponsibility.BUILDER
    description: str = ""


@dataclass
class ProjectFinancials:
    """Builder's budget for closing assistance, shared by every unsold unit."""

    total_revenue: Decimal = Decimal("0")
    total_investment: Decimal = Decimal("0")
    marketing_cost: Decimal = Decimal("0")
    profit_available: Decimal = Decimal("0")  # Discount pool
    max_builder_capital: Decimal = Decimal("0")  # VTB pool
    notes: str = ""

    @classmethod
    def from_budget(
        cls,
        total_revenue: Decimal,
        total_investment: Decimal,
        marketing_cost: Decimal,
        max_builder_capital: Decimal,
    ) -> "ProjectFinancials":
        """Build financials with profit derived as revenue less investment and marketing."""
        return cls(
            total_revenue=total_revenue,
            total_investment=total_investment,
            marketing_cost=marketing_cost,
            profit_available=max(Decimal("0"), total_revenue - total_investment - marketing_cost),
            max_builder_capital=max_builder_capital,
        )


@dataclass
class Project:
    """A pre-construction project.

    Units are not held here; the repository indexes them by ``project_id``.
    """

    id: int
    name: str
    city: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    fees: List[ProjectFee] = field(default_factory=list)
    levy_caps: List[LevyCap] = field(default_factory=list)
    financials: Optional[ProjectFinancials] = None

    def fees_of_type(self, *fee_types: FeeType) -> List[ProjectFee]:
        """Fees matching any of the given types."""
        return [f for f in self.fees if f.fee_type in fee_types]

    def sum_fees(self, *fee_types: FeeType) -> Decimal:
        """Total amount of the fees matching any of the given types."""
        return sum((f.amount for f in self.fees_of_type(*fee_types)), Decimal("0"))

    def find_levy_cap(self, fragment: str) -> Optional[LevyCap]:
        """First levy cap whose name contains ``fragment``."""
        for cap in self.levy_caps:
            if fragment in cap.levy_name:
                return cap
        return None
