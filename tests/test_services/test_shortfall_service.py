"""Tests for the shortfall analysis service."""

from decimal import Decimal

import pytest

from closing_engine.errors import LockedStateError, NotFoundError
from closing_engine.models import (
    BuilderDecisionAction,
    ClosingRecommendation,
    ConfirmingParty,
    RiskLevel,
    UnitStatus,
)

UNIT_ID = 1


class TestAnalyzeShortfall:
    """Analysis of a unit against its current SOA."""

    def test_calculates_soa_when_missing(self, shortfall_service, repository):
        analysis = shortfall_service.analyze_shortfall(UNIT_ID)

        assert repository.get_soa(UNIT_ID) is not None
        assert repository.get_analysis(UNIT_ID) is analysis
        assert analysis.soa_amount == Decimal("547872.33")

    def test_full_unit_needs_vtb_first(self, shortfall_service, full_unit):
        """$117,872.33 short on $500,000 is 23.57% with a 720 credit score."""
        analysis = shortfall_service.analyze_shortfall(UNIT_ID)

        assert analysis.shortfall_amount == Decimal("117872.33")
        assert analysis.shortfall_percentage == Decimal("23.57")
        assert analysis.risk_level is RiskLevel.HIGH
        assert analysis.recommendation is ClosingRecommendation.VTB_FIRST_MORTGAGE
        assert analysis.suggested_vtb_amount == Decimal("117872.33")
        assert full_unit.recommendation is ClosingRecommendation.VTB_FIRST_MORTGAGE
        assert full_unit.status is UnitStatus.NEEDS_VTB

    def test_reanalysis_keeps_history(self, shortfall_service):
        first = shortfall_service.analyze_shortfall(UNIT_ID)
        shortfall_service.record_builder_decision(UNIT_ID, BuilderDecisionAction.ACCEPTED, "builder-1")

        second = shortfall_service.recalculate_shortfall(UNIT_ID)

        assert second.calculated_at == first.calculated_at
        assert second.recalculated_at is not None
        assert second.decision_action is BuilderDecisionAction.ACCEPTED
        assert second.decision_by_user_id == "builder-1"

    def test_recalculation_refreshes_soa(self, shortfall_service, full_unit):
        first = shortfall_service.analyze_shortfall(UNIT_ID)
        full_unit.security_deposit_refund += Decimal("2500")

        second = shortfall_service.recalculate_shortfall(UNIT_ID)

        assert second.shortfall_amount == first.shortfall_amount - Decimal("2500")

    def test_locked_soa_analyzed_but_not_recalculated(self, shortfall_service, soa_service):
        """Analysis reads a locked SOA; recalculating it must wait for an unlock."""
        soa_service.calculate_soa(UNIT_ID)
        soa_service.confirm_soa(UNIT_ID, ConfirmingParty.BUILDER, "builder-1")
        soa_service.confirm_soa(UNIT_ID, ConfirmingParty.LAWYER, "lawyer-1")

        analysis = shortfall_service.analyze_shortfall(UNIT_ID)

        assert analysis.soa_amount == Decimal("547872.33")
        with pytest.raises(LockedStateError):
            shortfall_service.recalculate_shortfall(UNIT_ID)

        soa_service.unlock_soa(UNIT_ID, "builder-1", "Revised upgrade credits")
        assert shortfall_service.recalculate_shortfall(UNIT_ID).soa_amount == Decimal("547872.33")

    def test_closed_unit_keeps_status(self, shortfall_service, full_unit):
        full_unit.status = UnitStatus.CLOSED

        shortfall_service.analyze_shortfall(UNIT_ID)

        assert full_unit.status is UnitStatus.CLOSED

    def test_unknown_unit(self, shortfall_service):
        with pytest.raises(NotFoundError):
            shortfall_service.analyze_shortfall(42)


class TestBuilderDecision:

    def test_decision_recorded_and_audited(self, shortfall_service, audit_sink):
        shortfall_service.analyze_shortfall(UNIT_ID)

        analysis = shortfall_service.record_builder_decision(
            UNIT_ID, BuilderDecisionAction.MODIFIED, "builder-1", "Discount $20,000 plus VTB"
        )

        assert analysis.decision_action is BuilderDecisionAction.MODIFIED
        assert analysis.builder_modified_suggestion == "Discount $20,000 plus VTB"
        [entry] = audit_sink.entries(UNIT_ID, "BuilderDecision")
        assert entry.new_values["decision_action"] == "Modified"

    def test_modified_needs_suggestion(self, shortfall_service):
        shortfall_service.analyze_shortfall(UNIT_ID)

        with pytest.raises(ValueError):
            shortfall_service.record_builder_decision(UNIT_ID, BuilderDecisionAction.MODIFIED, "builder-1")

    def test_decision_without_analysis(self, shortfall_service):
        with pytest.raises(NotFoundError):
            shortfall_service.record_builder_decision(UNIT_ID, BuilderDecisionAction.REJECTED, "builder-1")
