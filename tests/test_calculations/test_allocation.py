"""Tests for budget scaling and the project rollup."""

from decimal import Decimal

from closing_engine.calculations.allocation import fit_to_budget, scale_to_budget, summarize_project
from closing_engine.calculations.trace import TraceContext
from closing_engine.models import ClosingRecommendation, ProjectFinancials, UnitStatus
from tests.fixtures.closing_inputs import FIXED_NOW, make_analysis, make_unit

R = ClosingRecommendation


class TestScaleToBudget:
    """Proportional scaling of suggestions to a shared pool."""

    def test_scales_proportionally(self):
        """Three $40,000 discounts against a $90,000 pool become $30,000 each."""
        scaled = scale_to_budget({1: Decimal("40000"), 2: Decimal("40000"), 3: Decimal("40000")}, Decimal("90000"))

        assert scaled == {1: Decimal("30000.00"), 2: Decimal("30000.00"), 3: Decimal("30000.00")}
        assert sum(scaled.values()) == Decimal("90000")

    def test_within_budget_unchanged(self):
        assert scale_to_budget({1: Decimal("40000"), 2: Decimal("50000")}, Decimal("90000")) is None

    def test_zero_and_missing_suggestions_stay_put(self):
        scaled = scale_to_budget({1: Decimal("40000"), 2: None, 3: Decimal("0")}, Decimal("20000"))

        assert scaled == {1: Decimal("20000.00"), 2: None, 3: Decimal("0")}

    def test_uneven_amounts_keep_their_ratio(self):
        scaled = scale_to_budget({1: Decimal("30000"), 2: Decimal("10000")}, Decimal("20000"))

        assert scaled[1] == Decimal("15000.00")
        assert scaled[2] == Decimal("5000.00")

    def test_rounding_remainder_keeps_total_on_budget(self):
        """Three $1 suggestions against $2 round to $0.67 each; the extra cent comes off one."""
        scaled = scale_to_budget({1: Decimal("1"), 2: Decimal("1"), 3: Decimal("1")}, Decimal("2"))

        assert sum(scaled.values()) == Decimal("2.00")
        assert sorted(scaled.values()) == [Decimal("0.66"), Decimal("0.67"), Decimal("0.67")]

    def test_rounding_remainder_goes_to_largest(self):
        amounts = {1: Decimal("1"), 2: Decimal("1"), 3: Decimal("1"), 4: Decimal("3")}

        scaled = scale_to_budget(amounts, Decimal("1"))

        assert scaled == {1: Decimal("0.17"), 2: Decimal("0.17"), 3: Decimal("0.17"), 4: Decimal("0.49")}


class TestFitToBudget:
    """Discount and VTB pools are fitted independently."""

    def test_only_oversubscribed_pool_scaled(self):
        analyses = {
            uid: make_analysis(uid, "90000", R.VTB_SECOND_MORTGAGE, discount="40000", vtb="50000")
            for uid in (1, 2, 3)
        }
        financials = ProjectFinancials(profit_available=Decimal("90000"), max_builder_capital=Decimal("1000000"))

        with TraceContext() as ctx:
            scaling = fit_to_budget(analyses, financials)

        assert scaling.changed
        assert scaling.vtbs is None
        touched = scaling.apply(analyses)
        assert len(touched) == 3
        for analysis in analyses.values():
            assert analysis.suggested_discount == Decimal("30000.00")
            assert analysis.suggested_vtb_amount == Decimal("50000")
        assert ctx.get_trace("allocation.discount_scale").value == Decimal("0.75")

    def test_nothing_to_scale(self):
        analyses = {1: make_analysis(1, "10000", R.CLOSE_WITH_DISCOUNT, discount="10000")}
        financials = ProjectFinancials(profit_available=Decimal("90000"), max_builder_capital=Decimal("0"))

        scaling = fit_to_budget(analyses, financials)

        assert not scaling.changed
        assert scaling.apply(analyses) == []


class TestSummarizeProject:
    """Project rollup of recommendations and shortfalls."""

    def _units(self):
        units = [make_unit(uid) for uid in range(1, 6)]
        plan = [
            (R.PROCEED_TO_CLOSE, UnitStatus.READY_TO_CLOSE),
            (R.CLOSE_WITH_DISCOUNT, UnitStatus.NEEDS_DISCOUNT),
            (R.VTB_SECOND_MORTGAGE, UnitStatus.NEEDS_VTB),
            (R.HIGH_RISK_DEFAULT, UnitStatus.AT_RISK),
            (None, UnitStatus.CLOSED),
        ]
        for unit, (recommendation, status) in zip(units, plan):
            unit.recommendation = recommendation
            unit.status = status
        return units

    def _analyses(self):
        return {
            1: make_analysis(1, "0"),
            2: make_analysis(2, "30000", R.CLOSE_WITH_DISCOUNT, discount="30000"),
            3: make_analysis(3, "80000", R.VTB_SECOND_MORTGAGE, discount="20000", vtb="50000"),
            4: make_analysis(4, "300000", R.HIGH_RISK_DEFAULT),
            5: make_analysis(5, "5000"),
        }

    def test_counts_and_percentages(self):
        summary = summarize_project(1, self._units(), self._analyses(), FIXED_NOW)

        assert summary.total_units == 5
        assert summary.units_ready_to_close == 1
        assert summary.units_needing_discount == 1
        assert summary.units_needing_vtb == 1
        assert summary.units_at_risk == 1
        assert summary.units_pending_data == 0
        assert summary.percent_ready_to_close == Decimal("20.00")
        assert summary.closing_probability_percent == Decimal("60.00")

    def test_financial_totals(self):
        summary = summarize_project(1, self._units(), self._analyses(), FIXED_NOW)

        assert summary.total_sales_value == Decimal("2500000")
        assert summary.total_discount_required == Decimal("30000")
        assert summary.discount_percent_of_sales == Decimal("1.20")
        assert summary.total_investment_at_risk == Decimal("500000")
        assert summary.total_shortfall == Decimal("415000")

    def test_closed_units_need_no_funds(self):
        """Only open units contribute to the fund needed to close."""
        summary = summarize_project(1, self._units(), self._analyses(), FIXED_NOW)

        assert summary.total_fund_needed_to_close == Decimal("310000")

    def test_empty_project(self):
        summary = summarize_project(7, [], {}, FIXED_NOW)

        assert summary.total_units == 0
        assert summary.percent_ready_to_close == Decimal("0")

    def test_to_frame(self):
        frame = summarize_project(1, self._units(), self._analyses(), FIXED_NOW).to_frame()

        assert list(frame.index) == [1, 2, 3, 4, 5]
        assert frame.loc[3, "remaining_after_assistance"] == Decimal("10000")
        assert frame.loc[4, "recommendation"] == "high_risk_default"
        assert frame.loc[5, "status"] == "closed"
