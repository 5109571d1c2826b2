"""Tests for shortfall analysis, risk tiers and recommendations."""

from decimal import Decimal

import pytest

from closing_engine.calculations.shortfall import (
    allocate_assistance,
    calculate_mutual_release_threshold,
    calculate_shortfall,
    determine_recommendation,
    determine_risk_level,
    status_for_recommendation,
)
from closing_engine.models import (
    ClosingRecommendation,
    Deposit,
    ProjectFinancials,
    RiskLevel,
    SOAFigures,
    UnitStatus,
)
from tests.fixtures.closing_inputs import FIXED_NOW, make_purchaser, make_unit

R = ClosingRecommendation


def _figures(cash_required: str) -> SOAFigures:
    cash = Decimal(cash_required)
    return SOAFigures(balance_due_on_closing=cash, cash_required_to_close=cash)


def _analyze(unit, cash_required, financials=None, unsold_units=1):
    return calculate_shortfall(unit, _figures(cash_required), financials, unsold_units, FIXED_NOW)


class TestDetermineRecommendation:
    """Tiered recommendation by shortfall percentage and credit score."""

    @pytest.mark.parametrize("pct,score,expected", [
        ("0", 720, R.PROCEED_TO_CLOSE),
        ("0.01", 720, R.CLOSE_WITH_DISCOUNT),
        ("10", 720, R.CLOSE_WITH_DISCOUNT),
        ("10.01", 720, R.VTB_SECOND_MORTGAGE),
        ("20", 500, R.VTB_SECOND_MORTGAGE),
        ("30", 700, R.VTB_FIRST_MORTGAGE),
        ("50", 750, R.VTB_FIRST_MORTGAGE),
        ("30", 650, R.COMBINATION_SUGGESTION),
        ("60", 599, R.HIGH_RISK_DEFAULT),
        ("60", 650, R.COMBINATION_SUGGESTION),
    ])
    def test_tiers(self, pct, score, expected):
        assert determine_recommendation(Decimal(pct), score) is expected

    def test_missing_credit_score(self):
        """No score never qualifies for a VTB first mortgage or a default."""
        assert determine_recommendation(Decimal("30"), None) is R.COMBINATION_SUGGESTION
        assert determine_recommendation(Decimal("60"), None) is R.COMBINATION_SUGGESTION

    def test_severity_never_decreases_with_shortfall(self):
        """With a good credit score a larger shortfall never gets a milder remedy."""
        order = [R.PROCEED_TO_CLOSE, R.CLOSE_WITH_DISCOUNT, R.VTB_SECOND_MORTGAGE, R.VTB_FIRST_MORTGAGE]
        ranks = [order.index(determine_recommendation(Decimal(pct), 720)) for pct in range(0, 51)]

        assert ranks == sorted(ranks)


class TestRiskLevel:

    @pytest.mark.parametrize("pct,expected", [
        ("0", RiskLevel.LOW),
        ("5", RiskLevel.LOW),
        ("15", RiskLevel.MEDIUM),
        ("25", RiskLevel.HIGH),
        ("25.01", RiskLevel.VERY_HIGH),
    ])
    def test_tiers_with_mortgage(self, pct, expected):
        assert determine_risk_level(Decimal(pct), has_mortgage=True) is expected

    def test_no_mortgage_is_very_high(self):
        assert determine_risk_level(Decimal("0"), has_mortgage=False) is RiskLevel.VERY_HIGH


class TestMutualReleaseThreshold:

    def test_threshold_covers_two_thirds_of_gap(self):
        assert calculate_mutual_release_threshold(Decimal("500000"), Decimal("440000")) == Decimal("480000.00")

    @pytest.mark.parametrize("appraised", [None, "0", "500000", "520000"])
    def test_undefined_without_appraisal_gap(self, appraised):
        value = Decimal(appraised) if appraised is not None else None
        assert calculate_mutual_release_threshold(Decimal("500000"), value) is None


class TestAllocateAssistance:
    """Splitting a shortfall between discount and VTB."""

    def test_without_financials_uses_single_instrument(self):
        shortfall = Decimal("30000")
        price = Decimal("500000")

        assert allocate_assistance(R.CLOSE_WITH_DISCOUNT, shortfall, price, None, 1).discount == shortfall
        assert allocate_assistance(R.VTB_SECOND_MORTGAGE, shortfall, price, None, 1).vtb == shortfall
        empty = allocate_assistance(R.HIGH_RISK_DEFAULT, shortfall, price, None, 1)
        assert empty.discount is None and empty.vtb is None

    def test_shares_pools_across_unsold_units(self):
        financials = ProjectFinancials(profit_available=Decimal("100000"), max_builder_capital=Decimal("200000"))

        allocation = allocate_assistance(R.VTB_SECOND_MORTGAGE, Decimal("75000"), Decimal("500000"), financials, 4)

        assert allocation.discount == Decimal("25000.00")
        assert allocation.vtb == Decimal("50000.00")

    def test_vtb_first_capped_by_loan_to_value(self):
        financials = ProjectFinancials(profit_available=Decimal("0"), max_builder_capital=Decimal("1000000"))

        allocation = allocate_assistance(R.VTB_FIRST_MORTGAGE, Decimal("450000"), Decimal("500000"), financials, 1)

        assert allocation.discount is None
        assert allocation.vtb == Decimal("375000.00")

    def test_no_assistance_for_mutual_release(self):
        financials = ProjectFinancials(profit_available=Decimal("100000"), max_builder_capital=Decimal("100000"))

        allocation = allocate_assistance(R.MUTUAL_RELEASE, Decimal("75000"), Decimal("500000"), financials, 1)

        assert allocation.discount is None and allocation.vtb is None


class TestCalculateShortfall:
    """Full analysis of a unit against its SOA figures."""

    def test_sufficient_funds(self):
        analysis = _analyze(make_unit(), "20000")

        assert analysis.shortfall_amount == Decimal("0")
        assert analysis.recommendation is R.PROCEED_TO_CLOSE
        assert analysis.risk_level is RiskLevel.LOW
        assert "No shortfall" in analysis.recommendation_reasoning

    def test_discount_shortfall(self):
        """$30,000 short on a $500,000 unit is 6%."""
        analysis = _analyze(make_unit(), "60000")

        assert analysis.shortfall_amount == Decimal("30000")
        assert analysis.shortfall_percentage == Decimal("6.00")
        assert analysis.recommendation is R.CLOSE_WITH_DISCOUNT
        assert analysis.risk_level is RiskLevel.MEDIUM
        assert analysis.suggested_discount == Decimal("30000")
        assert analysis.suggested_vtb_amount is None

    def test_funds_available(self):
        unit = make_unit()
        unit.deposits = [Deposit("Deposit", Decimal("50000"), is_paid=True)]

        analysis = _analyze(unit, "60000")

        assert analysis.deposits_paid == Decimal("50000")
        assert analysis.total_funds_available == Decimal("480000")

    def test_undeclared_funds_count_as_zero(self):
        unit = make_unit(purchaser=make_purchaser(funds=None))

        analysis = _analyze(unit, "60000")

        assert not analysis.funds_declared
        assert analysis.additional_cash_available == Decimal("0")
        assert analysis.shortfall_amount == Decimal("60000")
        assert "not declared" in analysis.recommendation_reasoning

    def test_shortfall_grows_with_cash_required(self):
        unit = make_unit()
        amounts = [_analyze(unit, cash).shortfall_amount for cash in ("10000", "50000", "90000", "200000")]

        assert amounts == sorted(amounts)

    def test_mutual_release_takes_precedence(self):
        """Deposits plus funds of $485,000 clear the $480,000 threshold despite a 38% shortfall."""
        unit = make_unit(purchaser=make_purchaser(funds="410000"), current_appraisal_value=Decimal("440000"))
        unit.deposits = [Deposit("Deposit", Decimal("75000"), is_paid=True)]

        analysis = _analyze(unit, "600000")

        assert analysis.mutual_release_threshold == Decimal("480000.00")
        assert analysis.recommendation is R.MUTUAL_RELEASE
        assert analysis.suggested_discount is None
        assert analysis.suggested_vtb_amount is None

    def test_mutual_release_overrides_vtb_second(self):
        """A 15% shortfall would need a second VTB, but the funds clear the threshold."""
        unit = make_unit(purchaser=make_purchaser(funds="410000"), current_appraisal_value=Decimal("440000"))
        unit.deposits = [Deposit("Deposit", Decimal("75000"), is_paid=True)]

        analysis = _analyze(unit, "485000")

        assert analysis.shortfall_percentage == Decimal("15.00")
        assert determine_recommendation(analysis.shortfall_percentage, 720) is R.VTB_SECOND_MORTGAGE
        assert analysis.recommendation is R.MUTUAL_RELEASE

    @pytest.mark.parametrize("funds,released", [
        ("499999.33", False),
        ("499999.34", True),
    ])
    def test_mutual_release_compares_unrounded_threshold(self, funds, released):
        """A $2 appraisal gap puts the threshold at $499,999.333..., stored as $499,999.33."""
        unit = make_unit(purchaser=make_purchaser(funds=funds), current_appraisal_value=Decimal("499998"))

        analysis = _analyze(unit, "600000")

        assert analysis.mutual_release_threshold == Decimal("499999.33")
        assert (analysis.recommendation is R.MUTUAL_RELEASE) is released

    def test_purchaser_appraisal_overrides_builder_appraisal(self):
        purchaser = make_purchaser(funds="410000", purchaser_appraisal="500000")
        unit = make_unit(purchaser=purchaser, current_appraisal_value=Decimal("440000"))
        unit.deposits = [Deposit("Deposit", Decimal("75000"), is_paid=True)]

        analysis = _analyze(unit, "600000")

        assert analysis.mutual_release_threshold is None
        assert analysis.recommendation is not R.MUTUAL_RELEASE

    def test_combination_gap_band(self):
        """A 30% shortfall with a 650 score falls through to a combination."""
        unit = make_unit(purchaser=make_purchaser(credit_score=650, funds="0"))
        financials = ProjectFinancials(profit_available=Decimal("50000"), max_builder_capital=Decimal("100000"))

        analysis = _analyze(unit, "150000", financials)

        assert analysis.recommendation is R.COMBINATION_SUGGESTION
        assert analysis.suggested_discount == Decimal("50000.00")
        assert analysis.suggested_vtb_amount == Decimal("100000.00")
        assert analysis.remaining_after_assistance == Decimal("0")


class TestStatusForRecommendation:

    def test_statuses(self):
        assert status_for_recommendation(R.PROCEED_TO_CLOSE) is UnitStatus.READY_TO_CLOSE
        assert status_for_recommendation(R.HIGH_RISK_DEFAULT) is UnitStatus.AT_RISK
        assert status_for_recommendation(R.VTB_FIRST_MORTGAGE) is UnitStatus.NEEDS_VTB
