"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from closing_engine.calculations.formula_registry import FormulaRegistry
from closing_engine.services import InMemoryAuditSink, SOAService, ShortfallService, SummaryService
from tests.fixtures.closing_inputs import (
    fixed_clock,
    get_fee_schedule,
    make_full_unit,
    make_project,
    make_repository,
)


@pytest.fixture
def fee_schedule():
    """Admin-configured system fees."""
    return get_fee_schedule()


@pytest.fixture
def project():
    """Markham project with capped development charges."""
    return make_project()


@pytest.fixture
def full_unit():
    """Unit with deposits, credits, upgrades and occupancy fees."""
    return make_full_unit()


@pytest.fixture
def repository(project, full_unit):
    """Repository holding the project and its full unit."""
    return make_repository(project, full_unit)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def soa_service(repository, audit_sink):
    return SOAService(repository, audit_sink=audit_sink, clock=fixed_clock)


@pytest.fixture
def shortfall_service(repository, soa_service, audit_sink):
    return ShortfallService(repository, soa_service, audit_sink=audit_sink, clock=fixed_clock)


@pytest.fixture
def summary_service(repository):
    return SummaryService(repository, clock=fixed_clock)


@pytest.fixture(autouse=True)
def fresh_formula_registry():
    """Each test sees a freshly populated formula registry."""
    FormulaRegistry.reset()
    yield
