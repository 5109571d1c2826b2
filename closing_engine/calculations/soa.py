"""Statement of adjustments calculation.

Builds the two-column statement for one unit from its project context.
The vendor column totals what the purchaser owes the vendor at closing;
the purchaser column totals deposits, interest and credits already in the
vendor's hands. The statement must satisfy, exactly::

    balance_due_on_closing = total_vendor_credits - total_purchaser_credits
    cash_required_to_close = balance_due_on_closing - mortgage_amount
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable

from ..models.lookups import CREDIT_NAME_CATEGORIES, FeeType, UTILITY_FEE_TYPES, is_toronto_property
from ..models.project import Project
from ..models.statements import SOAFigures
from ..models.unit import Unit, UnitFee
from .adjustments import (
    apply_levy_cap,
    calculate_common_expense_adjustment,
    calculate_property_tax_adjustment,
    calculate_tarion_fee,
    estimate_legal_fees,
)
from .deposit_interest import calculate_interest_on_interest, calculate_total_deposit_interest
from .fees import FeeSchedule
from .hst import calculate_hst
from .land_transfer import calculate_land_transfer_tax, calculate_toronto_land_transfer_tax
from .money import ZERO, total
from .trace import trace


@dataclass
class CreditBreakdown:
    """Builder credit rows split by category; each row counted once."""

    design_credits: Decimal = ZERO
    free_upgrades_value: Decimal = ZERO
    cash_back_incentives: Decimal = ZERO
    other_credits: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.design_credits + self.free_upgrades_value + self.cash_back_incentives + self.other_credits


def categorize_credits(fees: Iterable[UnitFee]) -> CreditBreakdown:
    """Split credit rows by the first category fragment found in the fee name."""
    buckets: Dict[str, Decimal] = {
        "design_credits": ZERO,
        "free_upgrades_value": ZERO,
        "cash_back_incentives": ZERO,
        "other_credits": ZERO,
    }
    for fee in fees:
        if not fee.is_credit:
            continue
        name = fee.fee_name.lower()
        bucket = next(
            (category for fragment, category in CREDIT_NAME_CATEGORIES if fragment in name),
            "other_credits",
        )
        buckets[bucket] += fee.amount
    return CreditBreakdown(**buckets)


def mortgage_amount(unit: Unit) -> Decimal:
    """Approved mortgage of the primary purchaser, zero when there is none."""
    purchaser = unit.primary_purchaser
    if purchaser is None or purchaser.mortgage is None:
        return ZERO
    return purchaser.mortgage.approved_amount or ZERO


def calculate_soa(
    unit: Unit,
    project: Project,
    fee_schedule: FeeSchedule,
    as_of: date,
    is_rebate_assigned_to_builder: bool = True,
) -> SOAFigures:
    """Calculate every line of the statement of adjustments for a unit.

    Args:
        unit: The unit, with deposits, fees, occupancy fees and purchasers.
        project: The unit's project, with fees and levy caps.
        fee_schedule: Admin-configured system fees.
        as_of: Interest accrual end date when the unit has no closing date.
        is_rebate_assigned_to_builder: Whether the purchaser assigns the HST
            new housing rebate to the builder (the pre-construction default).

    Returns:
        SOAFigures with every line item and total.
    """
    uid = unit.id
    total_price = trace("soa.total_price", unit.total_price, {
        "inputs.purchase_price": unit.purchase_price,
        "inputs.parking_price": unit.parking_amount,
        "inputs.locker_price": unit.locker_amount,
    }, unit_id=uid)

    # Land transfer taxes, informational
    land_transfer_tax = trace(
        "soa.land_transfer_tax",
        calculate_land_transfer_tax(total_price, unit.is_first_time_buyer),
        {"soa.total_price": total_price}, unit_id=uid,
    )
    toronto_land_transfer_tax = ZERO
    if is_toronto_property(project.city):
        toronto_land_transfer_tax = calculate_toronto_land_transfer_tax(total_price, unit.is_first_time_buyer)
    trace("soa.toronto_land_transfer_tax", toronto_land_transfer_tax,
          {"soa.total_price": total_price}, unit_id=uid)

    # Levies
    actual_dev_charges = project.sum_fees(FeeType.DEVELOPMENT_CHARGES)
    levy = apply_levy_cap(actual_dev_charges, project.find_levy_cap("Development"))
    trace("soa.development_charges", levy.charged, {"actual": actual_dev_charges}, unit_id=uid)
    trace("soa.builder_absorbed_levies", levy.builder_absorbed, {"actual": actual_dev_charges}, unit_id=uid)

    education_development_charges = project.sum_fees(FeeType.EDUCATION_DEVELOPMENT_CHARGES)
    parkland_levy = project.sum_fees(FeeType.PARKLAND_LEVY)
    community_benefit_charges = project.sum_fees(FeeType.COMMUNITY_BENEFIT_CHARGES)
    utility_connection_fees = project.sum_fees(*UTILITY_FEE_TYPES)
    other_debits = total(
        f.amount for f in project.fees_of_type(FeeType.OTHER) if f.applies_to_all_units
    )

    tarion_fee = trace("soa.tarion_fee", calculate_tarion_fee(total_price),
                       {"soa.total_price": total_price}, unit_id=uid)

    # Closing-date prorations
    property_tax_adjustment = trace(
        "soa.property_tax_adjustment",
        calculate_property_tax_adjustment(unit.closing_date, unit.purchase_price, unit.actual_annual_land_tax),
        {"inputs.purchase_price": unit.purchase_price}, unit_id=uid,
    )
    common_expense_adjustment = trace(
        "soa.common_expense_adjustment",
        calculate_common_expense_adjustment(
            unit.closing_date, unit.square_footage, unit.actual_monthly_maintenance_fee
        ),
        {"square_footage": unit.square_footage}, unit_id=uid,
    )

    occupancy_fees_chargeable = total(o.total_monthly_fee for o in unit.occupancy_fees)
    occupancy_fees_paid = total(o.total_monthly_fee for o in unit.occupancy_fees if o.is_paid)

    upgrades = total(f.amount for f in unit.fees if not f.is_credit)

    project_legal_fees = project.sum_fees(FeeType.LEGAL_FEES)
    legal_fees_estimate = trace(
        "soa.legal_fees_estimate",
        project_legal_fees if project_legal_fees > 0 else estimate_legal_fees(total_price),
        {"soa.total_price": total_price}, unit_id=uid,
    )

    hst = calculate_hst(total_price, unit.is_primary_residence, is_rebate_assigned_to_builder)
    trace("soa.hst_amount", hst.hst_amount, {"soa.total_price": total_price}, unit_id=uid)
    trace("soa.net_hst_payable", hst.net_payable, {
        "soa.hst_amount": hst.hst_amount,
        "soa.hst_rebate_federal": hst.federal_rebate,
        "soa.hst_rebate_ontario": hst.ontario_rebate,
    }, unit_id=uid)

    hcra_fee = fee_schedule.effective_fee("HCRA")
    electronic_reg_fee = fee_schedule.effective_fee("ElectronicReg")
    status_cert_fee = fee_schedule.effective_fee("StatusCert")
    transaction_levy_fee = fee_schedule.effective_fee("TransactionLevy")

    total_vendor_credits = trace("soa.total_vendor_credits", (
        unit.purchase_price
        + levy.charged
        + education_development_charges
        + parkland_levy
        + community_benefit_charges
        + tarion_fee
        + utility_connection_fees
        + property_tax_adjustment
        + common_expense_adjustment
        + occupancy_fees_chargeable
        + unit.parking_amount
        + unit.locker_amount
        + upgrades
        + legal_fees_estimate
        + hst.net_payable
        + hcra_fee
        + electronic_reg_fee
        + status_cert_fee
        + transaction_levy_fee
        + other_debits
    ), {
        "inputs.purchase_price": unit.purchase_price,
        "soa.development_charges": levy.charged,
        "soa.net_hst_payable": hst.net_payable,
    }, unit_id=uid)

    # Purchaser column
    interest_end = unit.closing_date or as_of
    deposits_paid = trace("soa.deposits_paid", unit.deposits_paid, {}, unit_id=uid)
    deposit_interest = trace(
        "soa.deposit_interest",
        calculate_total_deposit_interest(unit.deposits, interest_end),
        {}, unit_id=uid,
    )
    interest_on_deposit_interest = trace(
        "soa.interest_on_deposit_interest",
        calculate_interest_on_interest(
            deposit_interest, unit.deposits, unit.occupancy_date, unit.closing_date
        ),
        {"soa.deposit_interest": deposit_interest}, unit_id=uid,
    )
    credits = categorize_credits(unit.fees)
    builder_credits = trace("soa.builder_credits", credits.total, {}, unit_id=uid)

    total_purchaser_credits = trace("soa.total_purchaser_credits", (
        deposits_paid
        + deposit_interest
        + interest_on_deposit_interest
        + occupancy_fees_paid
        + unit.security_deposit_refund
        + builder_credits
    ), {
        "soa.deposits_paid": deposits_paid,
        "soa.deposit_interest": deposit_interest,
        "soa.interest_on_deposit_interest": interest_on_deposit_interest,
        "soa.builder_credits": builder_credits,
    }, unit_id=uid)

    # Closing
    balance_due = trace("soa.balance_due_on_closing", total_vendor_credits - total_purchaser_credits, {
        "soa.total_vendor_credits": total_vendor_credits,
        "soa.total_purchaser_credits": total_purchaser_credits,
    }, unit_id=uid)
    mortgage = trace("soa.mortgage_amount", mortgage_amount(unit), {}, unit_id=uid)
    cash_required = trace("soa.cash_required_to_close", balance_due - mortgage, {
        "soa.balance_due_on_closing": balance_due,
        "soa.mortgage_amount": mortgage,
    }, unit_id=uid)

    return SOAFigures(
        purchase_price=unit.purchase_price,
        total_price=total_price,
        development_charges=levy.charged,
        builder_absorbed_levies=levy.builder_absorbed,
        education_development_charges=education_development_charges,
        parkland_levy=parkland_levy,
        community_benefit_charges=community_benefit_charges,
        tarion_fee=tarion_fee,
        utility_connection_fees=utility_connection_fees,
        property_tax_adjustment=property_tax_adjustment,
        common_expense_adjustment=common_expense_adjustment,
        occupancy_fees_chargeable=occupancy_fees_chargeable,
        occupancy_fees_paid=occupancy_fees_paid,
        occupancy_fees_owing=occupancy_fees_chargeable - occupancy_fees_paid,
        parking_price=unit.parking_amount,
        locker_price=unit.locker_amount,
        upgrades=upgrades,
        legal_fees_estimate=legal_fees_estimate,
        other_debits=other_debits,
        hst_amount=hst.hst_amount,
        is_hst_rebate_eligible=hst.is_rebate_eligible,
        hst_rebate_federal=hst.federal_rebate,
        hst_rebate_ontario=hst.ontario_rebate,
        hst_rebate_total=hst.total_rebate,
        is_hst_rebate_assigned_to_builder=hst.is_rebate_assigned_to_builder,
        net_hst_payable=hst.net_payable,
        hcra_fee=hcra_fee,
        electronic_reg_fee=electronic_reg_fee,
        status_cert_fee=status_cert_fee,
        transaction_levy_fee=transaction_levy_fee,
        land_transfer_tax=land_transfer_tax,
        toronto_land_transfer_tax=toronto_land_transfer_tax,
        total_vendor_credits=total_vendor_credits,
        deposits_paid=deposits_paid,
        deposit_interest=deposit_interest,
        interest_on_deposit_interest=interest_on_deposit_interest,
        security_deposit_refund=unit.security_deposit_refund,
        builder_credits=builder_credits,
        design_credits=credits.design_credits,
        free_upgrades_value=credits.free_upgrades_value,
        cash_back_incentives=credits.cash_back_incentives,
        other_credits=credits.other_credits,
        total_purchaser_credits=total_purchaser_credits,
        balance_due_on_closing=balance_due,
        mortgage_amount=mortgage,
        cash_required_to_close=cash_required,
    )
