"""Core data structures for the manufacturing bay capacity engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple


class ManufacturingPhase(str, Enum):
    """Manufacturing phases in the order they run inside a bay schedule."""

    FABRICATION = "fabrication"
    PAINT = "paint"
    PRODUCTION = "production"
    IT = "it"
    NTC = "ntc"
    QC = "qc"

    @property
    def label(self) -> str:
        return {
            ManufacturingPhase.FABRICATION: "FAB",
            ManufacturingPhase.PAINT: "PAINT",
            ManufacturingPhase.PRODUCTION: "PRODUCTION",
            ManufacturingPhase.IT: "IT",
            ManufacturingPhase.NTC: "NTC",
            ManufacturingPhase.QC: "QC",
        }[self]


PHASE_ORDER: Tuple[ManufacturingPhase, ...] = (
    ManufacturingPhase.FABRICATION,
    ManufacturingPhase.PAINT,
    ManufacturingPhase.PRODUCTION,
    ManufacturingPhase.IT,
    ManufacturingPhase.NTC,
    ManufacturingPhase.QC,
)

DEFAULT_PHASE_PERCENTAGES: Mapping[ManufacturingPhase, float] = {
    ManufacturingPhase.FABRICATION: 27.0,
    ManufacturingPhase.PAINT: 7.0,
    ManufacturingPhase.PRODUCTION: 60.0,
    ManufacturingPhase.IT: 7.0,
    ManufacturingPhase.NTC: 7.0,
    ManufacturingPhase.QC: 7.0,
}


class Milestone(str, Enum):
    """Project milestones that carry an actual and an original-plan date."""

    FABRICATION = "fabrication"
    PAINT = "paint"
    PRODUCTION = "production"
    IT = "it"
    NTC = "ntc"
    QC = "qc"
    DELIVERY = "delivery"


class ProjectStatus(str, Enum):
    """Lifecycle stages for a project."""

    ACTIVE = "active"
    DELAYED = "delayed"
    COMPLETED = "completed"
    ARCHIVED = "archived"
    CRITICAL = "critical"
    DELIVERED = "delivered"


class ScheduleStatus(str, Enum):
    """Lifecycle stages for a bay schedule."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    MAINTENANCE = "maintenance"


@dataclass(slots=True)
class Project:
    """Project master data as read by the engine.

    Phase percentages left as ``None`` fall back to
    :data:`DEFAULT_PHASE_PERCENTAGES`; they are never normalized to 100.
    """

    id: str
    project_number: str
    name: str = ""
    total_hours: Optional[float] = None
    phase_percentages: Dict[ManufacturingPhase, Optional[float]] = field(
        default_factory=dict
    )
    milestone_dates: Dict[Milestone, date] = field(default_factory=dict)
    original_plan_dates: Dict[Milestone, date] = field(default_factory=dict)
    status: ProjectStatus = ProjectStatus.ACTIVE

    def __post_init__(self) -> None:
        for phase, percentage in self.phase_percentages.items():
            if percentage is not None and percentage < 0:
                raise ValueError(
                    f"Phase percentage for {phase.value} must not be negative"
                )
        if self.total_hours is not None and self.total_hours < 0:
            raise ValueError("Project total hours must not be negative")

    def phase_percentage(self, phase: ManufacturingPhase) -> float:
        value = self.phase_percentages.get(phase)
        if value is None:
            return DEFAULT_PHASE_PERCENTAGES[phase]
        return value


@dataclass(slots=True)
class ManufacturingBay:
    """A staffed manufacturing bay with a finite weekly hour capacity."""

    id: str
    name: str
    staff_count: int = 0
    hours_per_person_per_week: float = 40.0
    team: Optional[str] = None
    bay_number: Optional[int] = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.staff_count < 0:
            raise ValueError("Staff count must not be negative")
        if self.hours_per_person_per_week < 0:
            raise ValueError("Hours per person per week must not be negative")

    @property
    def weekly_capacity(self) -> float:
        return self.staff_count * self.hours_per_person_per_week


@dataclass(slots=True)
class ManufacturingSchedule:
    """Assignment of a project to a bay over an inclusive date range."""

    id: str
    project_id: str
    bay_id: str
    start_date: date
    end_date: date
    total_hours: Optional[float] = None
    row: int = 0
    status: ScheduleStatus = ScheduleStatus.SCHEDULED

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError("Schedule start date must not be after its end date")
        if self.total_hours is not None and self.total_hours < 0:
            raise ValueError("Schedule total hours must not be negative")
        if self.row < 0:
            raise ValueError("Schedule row must not be negative")

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(slots=True)
class PhaseWindow:
    """Portion of a schedule's hours attributed to one phase.

    ``start_offset_days`` and ``duration_days`` are fractional day offsets
    from ``schedule_start``. ``window_start``/``window_end`` are the inclusive
    calendar days the window touches.
    """

    project_id: str
    schedule_id: str
    phase: ManufacturingPhase
    window_start: date
    window_end: date
    hours: float
    start_offset_days: float
    duration_days: float
    schedule_start: date


@dataclass(slots=True)
class WeeklyUtilization:
    """Scheduled load of one bay during one week."""

    bay_id: str
    bay_name: str
    team: Optional[str]
    week_start: date
    week_end: date
    scheduled_hours: float
    weekly_capacity: float
    utilization_percentage: float
    aligned_phases: List[PhaseWindow] = field(default_factory=list)
    project_count: int = 0


@dataclass(slots=True)
class TeamUtilization:
    """Combined load across all bays of a team for one week."""

    team: str
    week_start: date
    week_end: date
    bay_ids: Tuple[str, ...]
    scheduled_hours: float
    weekly_capacity: float
    utilization_percentage: float
    project_count: int


@dataclass(slots=True)
class LaneAssignment:
    """Lane chosen for a schedule inside its bay timeline."""

    schedule_id: str
    bay_id: str
    lane: int
    previous_row: int

    @property
    def moved(self) -> bool:
        return self.lane != self.previous_row


@dataclass(slots=True)
class BayMonthUtilization:
    """Average projected utilization of one bay over one month."""

    bay_id: str
    bay_name: str
    team: Optional[str]
    utilization_percentage: float
    project_count: int
    week_count: int


@dataclass(slots=True)
class ForecastMonth:
    """Projected utilization of all counted bays for one month."""

    month: date
    label: str
    per_bay_utilization: List[BayMonthUtilization]
    average_utilization: float


@dataclass(slots=True)
class BayAvailability:
    """When a bay frees up next."""

    bay_id: str
    bay_name: str
    next_available_date: date
    days_until_free: int
    current_project_id: Optional[str] = None
    current_schedule_id: Optional[str] = None


@dataclass(slots=True)
class CapacityWeek:
    """Clamped whole-shop capacity figure for one forecast week."""

    week_start: date
    week_end: date
    total_capacity: float
    used_capacity: float
    available_capacity: float
    utilization: float


@dataclass(slots=True)
class MilestoneVariance:
    """Comparison of one actual milestone date against its plan date."""

    milestone: Milestone
    actual: date
    planned: date
    on_time: bool
    variance_days: int
    delay_days: int
    recovered: bool


@dataclass(slots=True)
class ProjectVariance:
    """All comparable milestones of one project."""

    project_id: str
    project_number: str
    milestones: List[MilestoneVariance] = field(default_factory=list)

    @property
    def comparable(self) -> bool:
        return bool(self.milestones)

    @property
    def recovered(self) -> bool:
        return any(variance.recovered for variance in self.milestones)


@dataclass(slots=True)
class MilestoneVarianceSummary:
    """Aggregate variance figures for one milestone across projects."""

    milestone: Milestone
    compared_count: int
    on_time_count: int
    delayed_count: int
    recovered_count: int
    on_time_rate: float
    average_delay_days: Optional[float]


@dataclass(slots=True)
class VarianceReport:
    """Schedule adherence against the original plan."""

    project_count: int
    comparable_project_count: int
    on_time_rate: float
    recovery_rate: float
    average_delay_days: Optional[float]
    per_phase_breakdown: List[MilestoneVarianceSummary] = field(default_factory=list)
    projects: List[ProjectVariance] = field(default_factory=list)


__all__ = [
    "ManufacturingPhase",
    "PHASE_ORDER",
    "DEFAULT_PHASE_PERCENTAGES",
    "Milestone",
    "ProjectStatus",
    "ScheduleStatus",
    "Project",
    "ManufacturingBay",
    "ManufacturingSchedule",
    "PhaseWindow",
    "WeeklyUtilization",
    "TeamUtilization",
    "LaneAssignment",
    "BayMonthUtilization",
    "ForecastMonth",
    "BayAvailability",
    "CapacityWeek",
    "MilestoneVariance",
    "ProjectVariance",
    "MilestoneVarianceSummary",
    "VarianceReport",
]
