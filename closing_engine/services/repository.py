"""Id-keyed in-memory store for units, projects and their closing snapshots.

Entities reference each other by id only; joins are resolved here and the
resolved objects are handed to the pure calculation functions.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from ..calculations.fees import FeeSchedule
from ..errors import NotFoundError
from ..models.project import Project
from ..models.statements import ProjectSummary, ShortfallAnalysis, SOAVersion, StatementOfAdjustments
from ..models.unit import Unit


class ClosingRepository:
    """In-memory arena of closing data.

    ``transaction()`` holds a re-entrant lock; services wrap every per-unit
    read-modify-write and every project-wide batch in it.
    """

    def __init__(self, fee_schedule: Optional[FeeSchedule] = None):
        self.fee_schedule = fee_schedule or FeeSchedule()
        self._projects: Dict[int, Project] = {}
        self._units: Dict[int, Unit] = {}
        self._units_by_project: Dict[int, List[int]] = defaultdict(list)
        self._soas: Dict[int, StatementOfAdjustments] = {}
        self._analyses: Dict[int, ShortfallAnalysis] = {}
        self._versions: Dict[int, List[SOAVersion]] = defaultdict(list)
        self._summaries: Dict[int, ProjectSummary] = {}
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator["ClosingRepository"]:
        with self._lock:
            yield self

    # === Projects & units ===

    def add_project(self, project: Project) -> Project:
        self._projects[project.id] = project
        return project

    def add_unit(self, unit: Unit) -> Unit:
        if unit.project_id not in self._projects:
            raise NotFoundError("Project", unit.project_id)
        if unit.id not in self._units:
            self._units_by_project[unit.project_id].append(unit.id)
        self._units[unit.id] = unit
        return unit

    def get_project(self, project_id: int) -> Project:
        try:
            return self._projects[project_id]
        except KeyError:
            raise NotFoundError("Project", project_id) from None

    def get_unit(self, unit_id: int) -> Unit:
        try:
            return self._units[unit_id]
        except KeyError:
            raise NotFoundError("Unit", unit_id) from None

    def projects(self) -> List[Project]:
        return list(self._projects.values())

    def units_in_project(self, project_id: int) -> List[Unit]:
        return [self._units[uid] for uid in self._units_by_project.get(project_id, [])]

    def count_open_units(self, project_id: int) -> int:
        return sum(1 for unit in self.units_in_project(project_id) if unit.is_open)

    # === Snapshots ===

    def get_soa(self, unit_id: int) -> Optional[StatementOfAdjustments]:
        return self._soas.get(unit_id)

    def save_soa(self, soa: StatementOfAdjustments) -> None:
        self._soas[soa.unit_id] = soa

    def get_analysis(self, unit_id: int) -> Optional[ShortfallAnalysis]:
        return self._analyses.get(unit_id)

    def save_analysis(self, analysis: ShortfallAnalysis) -> None:
        self._analyses[analysis.unit_id] = analysis

    def save_analyses(self, analyses: Iterable[ShortfallAnalysis]) -> None:
        """Store a batch of analyses under one lock acquisition."""
        with self._lock:
            for analysis in analyses:
                self._analyses[analysis.unit_id] = analysis

    def get_summary(self, project_id: int) -> Optional[ProjectSummary]:
        return self._summaries.get(project_id)

    def save_summary(self, summary: ProjectSummary) -> None:
        self._summaries[summary.project_id] = summary

    # === Version log (append-only) ===

    def versions(self, unit_id: int) -> List[SOAVersion]:
        return list(self._versions.get(unit_id, []))

    def last_version_number(self, unit_id: int) -> int:
        versions = self._versions.get(unit_id)
        return versions[-1].version_number if versions else 0

    def append_version(self, version: SOAVersion) -> SOAVersion:
        """Append a version; numbers must continue the unit's sequence."""
        expected = self.last_version_number(version.unit_id) + 1
        if version.version_number != expected:
            raise ValueError(
                f"SOA version {version.version_number} for unit {version.unit_id} "
                f"does not follow {expected - 1}"
            )
        self._versions[version.unit_id].append(version)
        return version
