"""Shared fixtures for the bay capacity tests."""

from datetime import date
from typing import Optional

import pytest

from bay_capacity.domain import (
    ManufacturingBay,
    ManufacturingPhase,
    ManufacturingSchedule,
    Project,
)
from bay_capacity.services import CapacityPlanningService

EVEN_SPLIT = {
    ManufacturingPhase.FABRICATION: 20.0,
    ManufacturingPhase.PAINT: 10.0,
    ManufacturingPhase.PRODUCTION: 50.0,
    ManufacturingPhase.IT: 10.0,
    ManufacturingPhase.NTC: 5.0,
    ManufacturingPhase.QC: 5.0,
}


def make_schedule(
    schedule_id: str,
    start: date,
    end: date,
    *,
    bay_id: str = "bay-a",
    project_id: str = "p1",
    total_hours: Optional[float] = None,
    row: int = 0,
) -> ManufacturingSchedule:
    return ManufacturingSchedule(
        id=schedule_id,
        project_id=project_id,
        bay_id=bay_id,
        start_date=start,
        end_date=end,
        total_hours=total_hours,
        row=row,
    )


@pytest.fixture
def even_project():
    """Project whose phase weights sum to exactly 100 percent."""
    return Project(
        id="p1",
        project_number="804601",
        name="Rescue Unit",
        total_hours=140,
        phase_percentages=dict(EVEN_SPLIT),
    )


@pytest.fixture
def bay_a():
    """Bay with two people at 40 hours, i.e. 80 hours per week."""
    return ManufacturingBay(
        id="bay-a", name="Bay A", staff_count=2, hours_per_person_per_week=40, team="Chavez"
    )


@pytest.fixture
def scenario_schedule():
    """140 hours over the two weeks 2025-01-06..2025-01-19."""
    return make_schedule(
        "s1", date(2025, 1, 6), date(2025, 1, 19), total_hours=140
    )


@pytest.fixture
def planner():
    return CapacityPlanningService()
