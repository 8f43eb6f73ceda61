"""Capacity scheduling and forecasting engine for staffed manufacturing bays.

This package provides the bay, project and schedule records, phase-weighted
weekly utilization, lane placement within a bay timeline, forward capacity
forecasts and schedule variance against the original plan.
"""

from .domain import (
    BayAvailability,
    CapacityWeek,
    ForecastMonth,
    LaneAssignment,
    ManufacturingBay,
    ManufacturingPhase,
    ManufacturingSchedule,
    Milestone,
    PhaseWindow,
    Project,
    ProjectStatus,
    VarianceReport,
    WeeklyUtilization,
)
from .repository import PlanningSnapshot
from .services import (
    CapacityOptions,
    CapacityPlanningService,
    ScheduleAction,
    ScheduleCommand,
    ScheduleResult,
)

__all__ = [
    "BayAvailability",
    "CapacityWeek",
    "ForecastMonth",
    "LaneAssignment",
    "ManufacturingBay",
    "ManufacturingPhase",
    "ManufacturingSchedule",
    "Milestone",
    "PhaseWindow",
    "Project",
    "ProjectStatus",
    "VarianceReport",
    "WeeklyUtilization",
    "PlanningSnapshot",
    "CapacityOptions",
    "CapacityPlanningService",
    "ScheduleAction",
    "ScheduleCommand",
    "ScheduleResult",
]
