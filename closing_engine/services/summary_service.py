"""Project summary service: fits suggestions to the project budget and rolls up units."""

import logging
from datetime import datetime
from typing import Callable, List

from ..calculations.allocation import fit_to_budget, summarize_project
from ..models.lookups import ProjectStatus
from ..models.statements import ProjectSummary
from .repository import ClosingRepository

logger = logging.getLogger(__name__)


class SummaryService:
    """Builds project summaries from the stored unit analyses."""

    def __init__(self, repository: ClosingRepository, clock: Callable[[], datetime] = datetime.now):
        self.repository = repository
        self.clock = clock

    def calculate_project_summary(self, project_id: int) -> ProjectSummary:
        """Scale open units' suggestions to the budget, then summarize the project.

        Scaled analyses are written back as one batch, so readers see either
        all of the old suggestions or all of the new ones.

        Raises:
            NotFoundError: If the project does not exist.
        """
        with self.repository.transaction():
            project = self.repository.get_project(project_id)
            units = self.repository.units_in_project(project_id)
            analyses = {}
            for unit in units:
                analysis = self.repository.get_analysis(unit.id)
                if analysis is not None:
                    analyses[unit.id] = analysis

            if project.financials is not None:
                open_analyses = {u.id: analyses[u.id] for u in units if u.is_open and u.id in analyses}
                scaling = fit_to_budget(open_analyses, project.financials)
                if scaling.changed:
                    touched = scaling.apply(open_analyses)
                    self.repository.save_analyses(touched)
                    logger.info("Scaled suggestions for %d units in Project %s to fit budget", len(touched), project_id)

            summary = summarize_project(project_id, units, analyses, self.clock())
            self.repository.save_summary(summary)

        logger.info(
            "Project %s summary: %d units, %s%% ready to close",
            project_id, summary.total_units, summary.percent_ready_to_close,
        )
        return summary

    def refresh_all_project_summaries(self) -> List[ProjectSummary]:
        """Recalculate the summary of every active project."""
        summaries = [
            self.calculate_project_summary(project.id)
            for project in self.repository.projects()
            if project.status is ProjectStatus.ACTIVE
        ]
        logger.info("Refreshed %d project summaries", len(summaries))
        return summaries
