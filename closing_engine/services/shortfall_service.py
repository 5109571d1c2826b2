"""Shortfall analysis service: classifies a unit and records the builder's decision."""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..calculations.shortfall import calculate_shortfall, status_for_recommendation
from ..errors import NotFoundError
from ..models.lookups import BuilderDecisionAction
from ..models.statements import AuditLogEntry, ShortfallAnalysis
from .audit import AuditSink, InMemoryAuditSink
from .repository import ClosingRepository
from .soa_service import SOAService

logger = logging.getLogger(__name__)


class ShortfallService:
    """Runs the shortfall classifier against a unit's current SOA.

    Args:
        repository: Source of units and store of analyses.
        soa_service: Used to calculate the SOA when a unit has none yet.
        audit_sink: Receives builder-decision audit entries.
        clock: Returns the current time.
    """

    def __init__(
        self,
        repository: ClosingRepository,
        soa_service: Optional[SOAService] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.audit_sink = audit_sink or InMemoryAuditSink()
        self.clock = clock
        self.soa_service = soa_service or SOAService(repository, audit_sink=self.audit_sink, clock=clock)

    def analyze_shortfall(self, unit_id: int) -> ShortfallAnalysis:
        """Analyze the unit's shortfall and update its recommendation and status.

        The SOA is calculated first if the unit does not have one. An existing
        analysis keeps its original ``calculated_at`` and builder decision.

        Raises:
            NotFoundError: If the unit or its project does not exist.
            LockedStateError: If the SOA has to be calculated but is locked.
        """
        with self.repository.transaction():
            unit = self.repository.get_unit(unit_id)
            project = self.repository.get_project(unit.project_id)

            soa = self.repository.get_soa(unit_id)
            if soa is None:
                soa = self.soa_service.recalculate(unit_id)

            now = self.clock()
            analysis = calculate_shortfall(
                unit,
                soa.figures,
                project.financials,
                unsold_units=self.repository.count_open_units(project.id),
                at=now,
            )

            existing = self.repository.get_analysis(unit_id)
            if existing is not None:
                analysis.calculated_at = existing.calculated_at
                analysis.recalculated_at = now
                analysis.decision_action = existing.decision_action
                analysis.decision_by_user_id = existing.decision_by_user_id
                analysis.decision_at = existing.decision_at
                analysis.builder_modified_suggestion = existing.builder_modified_suggestion
            self.repository.save_analysis(analysis)

            unit.recommendation = analysis.recommendation
            if unit.is_open:
                unit.status = status_for_recommendation(analysis.recommendation)

        logger.info(
            "Shortfall analysis for Unit %s: Shortfall=%s (%s%%), Recommendation=%s",
            unit_id, analysis.shortfall_amount, analysis.shortfall_percentage, analysis.recommendation.value,
        )
        return analysis

    def recalculate_shortfall(self, unit_id: int) -> ShortfallAnalysis:
        """Recalculate the SOA, then re-analyze the unit.

        Raises:
            NotFoundError: If the unit or its project does not exist.
            LockedStateError: If the SOA is locked; unlock it first.
        """
        with self.repository.transaction():
            self.soa_service.recalculate(unit_id)
            return self.analyze_shortfall(unit_id)

    def record_builder_decision(
        self,
        unit_id: int,
        action: BuilderDecisionAction,
        user_id: str,
        modified_suggestion: Optional[str] = None,
    ) -> ShortfallAnalysis:
        """Record the builder accepting, modifying or rejecting the suggestion.

        Raises:
            NotFoundError: If the unit has not been analyzed.
            ValueError: If the action is ``MODIFIED`` without a modified suggestion.
        """
        if action is BuilderDecisionAction.MODIFIED and not modified_suggestion:
            raise ValueError("A modified decision needs the builder's suggestion")

        with self.repository.transaction():
            analysis = self.repository.get_analysis(unit_id)
            if analysis is None:
                raise NotFoundError("ShortfallAnalysis", unit_id)

            now = self.clock()
            old_values = {"decision_action": analysis.decision_action.value if analysis.decision_action else None}
            analysis.decision_action = action
            analysis.decision_by_user_id = user_id
            analysis.decision_at = now
            analysis.builder_modified_suggestion = modified_suggestion
            self.audit_sink.record(AuditLogEntry(
                entity_type="ShortfallAnalysis",
                entity_id=unit_id,
                action="BuilderDecision",
                timestamp=now,
                user_id=user_id,
                user_role="Builder",
                old_values=old_values,
                new_values={"decision_action": action.value, "modified_suggestion": modified_suggestion},
            ))

        logger.info("Builder %s %s suggestion for Unit %s", user_id, action.value.lower(), unit_id)
        return analysis
