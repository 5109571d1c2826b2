"""Formula registry for transparent closing calculations.

Every SOA line, shortfall figure and allocation is registered here with the
formula that produces it, so a traced calculation can be explained line by
line to the builder, the lawyer and the purchaser.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set


class FormulaCategory(str, Enum):
    """Statement column or stage a formula belongs to."""
    INPUT = "Input"
    VENDOR = "Vendor Credits"
    TAX = "Taxes"
    PURCHASER = "Purchaser Credits"
    CLOSING = "Closing"
    SHORTFALL = "Shortfall"
    ALLOCATION = "Allocation"


@dataclass
class FormulaDefinition:
    """How one traced figure is computed.

    Attributes:
        field_path: Dotted path the figure is traced under ("soa.tarion_fee")
        name: Label shown to users ("Tarion Warranty Fee")
        formula: Formula in words and symbols ("band(total_price)")
        inputs: Field paths of the registered figures this one is built from
        category: Statement column or stage
        unit: Display unit ("$", "%", "x")
        notes: Statutory source or caveat
    """
    field_path: str
    name: str
    formula: str
    inputs: List[str]
    category: FormulaCategory
    unit: str = "$"
    notes: str = ""


class FormulaRegistry:
    """Class-level catalogue of closing formulas, populated on first use."""
    _formulas: Dict[str, FormulaDefinition] = {}
    _initialized: bool = False

    @classmethod
    def _catalogue(cls) -> Dict[str, FormulaDefinition]:
        if not cls._initialized:
            cls._initialized = True
            _populate_registry()
        return cls._formulas

    @classmethod
    def register(cls, definition: FormulaDefinition) -> None:
        """Add or replace a definition."""
        cls._formulas[definition.field_path] = definition

    @classmethod
    def get(cls, field_path: str) -> Optional[FormulaDefinition]:
        return cls._catalogue().get(field_path)

    @classmethod
    def get_all(cls) -> Dict[str, FormulaDefinition]:
        return dict(cls._catalogue())

    @classmethod
    def get_by_category(cls, category: FormulaCategory) -> List[FormulaDefinition]:
        return [d for d in cls._catalogue().values() if d.category == category]

    @classmethod
    def get_inputs(cls, field_path: str) -> List[str]:
        definition = cls.get(field_path)
        return list(definition.inputs) if definition else []

    @classmethod
    def get_dependents(cls, field_path: str) -> List[str]:
        """Paths of the formulas that take ``field_path`` as a direct input."""
        return [path for path, d in cls._catalogue().items() if field_path in d.inputs]

    @classmethod
    def get_all_ancestors(cls, field_path: str) -> Set[str]:
        """Every path ``field_path`` depends on, directly or transitively."""
        found: Set[str] = set()

        def collect(path: str) -> None:
            for input_path in cls.get_inputs(path):
                if input_path not in found:
                    found.add(input_path)
                    collect(input_path)

        collect(field_path)
        return found

    @classmethod
    def reset(cls) -> None:
        """Forget every definition; the catalogue is rebuilt on next use."""
        cls._formulas = {}
        cls._initialized = False


def _f(field_path, name, formula, inputs, category, unit="$", notes=""):
    return FormulaDefinition(field_path, name, formula, inputs, category, unit, notes)


def _populate_registry() -> None:
    """Populate the registry with all closing formulas."""
    V, T, P, C = FormulaCategory.VENDOR, FormulaCategory.TAX, FormulaCategory.PURCHASER, FormulaCategory.CLOSING
    S, A, I = FormulaCategory.SHORTFALL, FormulaCategory.ALLOCATION, FormulaCategory.INPUT

    definitions = [
        # === Inputs ===
        _f("inputs.purchase_price", "Purchase Price", "APS price", [], I),
        _f("inputs.parking_price", "Parking Price", "APS parking price if included", [], I),
        _f("inputs.locker_price", "Locker Price", "APS locker price if included", [], I),
        _f("soa.total_price", "Total Price", "purchase_price + parking + locker",
           ["inputs.purchase_price", "inputs.parking_price", "inputs.locker_price"], I),

        # === Taxes ===
        _f("soa.land_transfer_tax", "Ontario Land Transfer Tax",
           "marginal(total_price) - min(tax, 4000 if first-time buyer)", ["soa.total_price"], T,
           notes="Paid to the province through the purchaser's lawyer; informational"),
        _f("soa.toronto_land_transfer_tax", "Toronto Land Transfer Tax",
           "marginal(total_price) - min(tax, 4475 if first-time buyer)", ["soa.total_price"], T,
           notes="Toronto-area projects only; informational"),
        _f("soa.hst_amount", "HST", "total_price x 13%", ["soa.total_price"], T),
        _f("soa.hst_rebate_federal", "Federal New Housing Rebate",
           "min(total_price x 5% x 36% x phase_out, 6300)", ["soa.total_price"], T,
           notes="Full to $350K, linear phase-out to $450K; primary residence only"),
        _f("soa.hst_rebate_ontario", "Ontario New Housing Rebate",
           "min(total_price x 8% x 75%, 24000)", ["soa.total_price"], T,
           notes="Primary residence only"),
        _f("soa.net_hst_payable", "Net HST Payable",
           "hst - federal_rebate - ontario_rebate",
           ["soa.hst_amount", "soa.hst_rebate_federal", "soa.hst_rebate_ontario"], T,
           notes="Full HST when the rebate is not assigned to the builder"),

        # === Vendor column ===
        _f("soa.development_charges", "Development Charges", "min(actual, cap) per levy cap", [], V),
        _f("soa.builder_absorbed_levies", "Builder Absorbed Levies",
           "actual - cap when the builder carries the excess", [], V),
        _f("soa.education_development_charges", "Education Development Charges", "sum(EDC fees)", [], V),
        _f("soa.parkland_levy", "Parkland Levy", "sum(parkland fees)", [], V),
        _f("soa.community_benefit_charges", "Community Benefit Charges", "sum(CBC fees)", [], V),
        _f("soa.tarion_fee", "Tarion Warranty Fee", "band(total_price)", ["soa.total_price"], V),
        _f("soa.utility_connection_fees", "Utility Connection Fees",
           "utility + sewer + water + hydro + gas + meter", [], V),
        _f("soa.property_tax_adjustment", "Property Tax Adjustment",
           "annual_tax x days_after_closing / days_in_year", ["inputs.purchase_price"], V),
        _f("soa.common_expense_adjustment", "Common Expense Adjustment",
           "monthly_fee / days_in_month x days_after_closing", [], V),
        _f("soa.occupancy_fees_chargeable", "Occupancy Fees Chargeable", "sum(occupancy fees)", [], V),
        _f("soa.upgrades", "Upgrades", "sum(unit fees that are not credits)", [], V),
        _f("soa.legal_fees_estimate", "Legal Fees", "project legal fee, else band(total_price)",
           ["soa.total_price"], V),
        _f("soa.system_fees", "System Fees", "hcra + e_reg + status_cert + transaction_levy", [], V,
           notes="Admin-configured, 13% HST added where applicable"),
        _f("soa.total_vendor_credits", "Total Vendor Credits",
           "purchase_price + levies + fees + adjustments + occupancy + parking + locker + net_hst",
           ["inputs.purchase_price", "soa.development_charges", "soa.education_development_charges",
            "soa.parkland_levy", "soa.community_benefit_charges", "soa.tarion_fee",
            "soa.utility_connection_fees", "soa.property_tax_adjustment", "soa.common_expense_adjustment",
            "soa.occupancy_fees_chargeable", "soa.upgrades", "soa.legal_fees_estimate",
            "soa.net_hst_payable", "soa.system_fees"], V),

        # === Purchaser column ===
        _f("soa.deposits_paid", "Deposits Paid", "sum(paid deposits)", [], P),
        _f("soa.deposit_interest", "Deposit Interest",
           "sum(amount x rate/100 x held_days/365) per rate period", [], P),
        _f("soa.interest_on_deposit_interest", "Interest on Deposit Interest",
           "deposit_interest x last_rate/100 x (closing - occupancy)/365", ["soa.deposit_interest"], P),
        _f("soa.builder_credits", "Builder Credits", "design + upgrades + cash_back + other", [], P),
        _f("soa.total_purchaser_credits", "Total Purchaser Credits",
           "deposits + interest + interest_on_interest + occupancy_paid + security_refund + builder_credits",
           ["soa.deposits_paid", "soa.deposit_interest", "soa.interest_on_deposit_interest",
            "soa.builder_credits"], P),

        # === Closing ===
        _f("soa.balance_due_on_closing", "Balance Due on Closing",
           "total_vendor_credits - total_purchaser_credits",
           ["soa.total_vendor_credits", "soa.total_purchaser_credits"], C),
        _f("soa.mortgage_amount", "Mortgage Amount", "primary purchaser approved amount", [], C),
        _f("soa.cash_required_to_close", "Cash Required to Close",
           "balance_due_on_closing - mortgage_amount",
           ["soa.balance_due_on_closing", "soa.mortgage_amount"], C),

        # === Shortfall ===
        _f("shortfall.funds_available", "Funds Available",
           "mortgage + deposits_paid + purchaser_funds", ["soa.mortgage_amount", "soa.deposits_paid"], S),
        _f("shortfall.amount", "Shortfall",
           "max(0, cash_required_to_close - purchaser_funds)", ["soa.cash_required_to_close"], S),
        _f("shortfall.percentage", "Shortfall %", "shortfall / purchase_price x 100",
           ["shortfall.amount", "inputs.purchase_price"], S, unit="%"),
        _f("shortfall.mutual_release_threshold", "Mutual Release Threshold",
           "purchase_price - (purchase_price - appraised_value) / 3", ["inputs.purchase_price"], S),

        # === Allocation ===
        _f("allocation.discount", "Suggested Discount",
           "min(shortfall, profit_available / unsold_units)", ["shortfall.amount"], A),
        _f("allocation.vtb", "Suggested VTB",
           "min(shortfall - discount, max_builder_capital / unsold_units)",
           ["shortfall.amount", "allocation.discount"], A),
        _f("allocation.discount_scale", "Discount Scale Factor",
           "profit_available / sum(suggested_discount)", ["allocation.discount"], A, unit="x"),
        _f("allocation.vtb_scale", "VTB Scale Factor",
           "max_builder_capital / sum(suggested_vtb)", ["allocation.vtb"], A, unit="x"),
        _f("allocation.fund_needed_to_close", "Fund Needed to Close",
           "sum(max(0, shortfall - discount - vtb))", ["allocation.discount", "allocation.vtb"], A),
    ]

    for definition in definitions:
        FormulaRegistry.register(definition)
