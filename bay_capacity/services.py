"""Service layer exposing the capacity engine use-cases."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from .domain import (
    BayAvailability,
    CapacityWeek,
    ForecastMonth,
    LaneAssignment,
    ManufacturingBay,
    ManufacturingPhase,
    ManufacturingSchedule,
    Milestone,
    Project,
    ProjectStatus,
    TeamUtilization,
    VarianceReport,
    WeeklyUtilization,
)
from .forecasting import (
    DEFAULT_CAPACITY_WEEKS,
    FORECAST_HOURS_PER_BAY,
    capacity_forecast,
    clamp_months,
    forecast_bay_utilization,
    next_available_bays,
)
from .lanes import assign_lanes, resolve_requested_lane
from .records import bay_from_mapping, project_from_mapping, schedules_from_mappings
from .repository import InMemoryRepository, PlanningSnapshot, RecordNotFoundError, RepositoryError
from .utilization import (
    DEFAULT_EXCLUDED_TEAMS,
    calculate_weekly_utilization,
    counted_bays,
    start_of_week,
    team_week_utilization,
)
from .variance import TRACKED_MILESTONES, build_variance_report

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CapacityOptions:
    """Tuning parameters shared by the utilization and forecast views."""

    excluded_teams: Tuple[str, ...] = DEFAULT_EXCLUDED_TEAMS
    utilization_weeks: int = 26
    forecast_months: int = 6
    capacity_forecast_weeks: int = DEFAULT_CAPACITY_WEEKS
    forecast_hours_per_bay: float = FORECAST_HOURS_PER_BAY
    variance_milestones: Tuple[Milestone, ...] = TRACKED_MILESTONES


class ScheduleAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ScheduleErrorCode(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"


@dataclass(slots=True)
class ScheduleCommand:
    """A single create, update or delete request for a bay schedule."""

    action: ScheduleAction
    project_id: str = ""
    bay_id: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    schedule_id: Optional[str] = None
    total_hours: Optional[float] = None
    row: Optional[int] = None


@dataclass(slots=True)
class ScheduleError:
    code: ScheduleErrorCode
    message: str


@dataclass(slots=True)
class ScheduleResult:
    """Outcome of a :class:`ScheduleCommand`."""

    schedule_id: Optional[str] = None
    error: Optional[ScheduleError] = None
    lane_changes: List[LaneAssignment] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, code: ScheduleErrorCode, message: str) -> "ScheduleResult":
        return cls(error=ScheduleError(code=code, message=message))


class CapacityPlanningService:
    """Facade that exposes bay capacity use-cases to clients."""

    def __init__(
        self,
        project_repo: Optional[InMemoryRepository[Project]] = None,
        bay_repo: Optional[InMemoryRepository[ManufacturingBay]] = None,
        schedule_repo: Optional[InMemoryRepository[ManufacturingSchedule]] = None,
        options: Optional[CapacityOptions] = None,
    ) -> None:
        self.projects = project_repo if project_repo is not None else InMemoryRepository()
        self.bays = bay_repo if bay_repo is not None else InMemoryRepository()
        self.schedules = (
            schedule_repo if schedule_repo is not None else InMemoryRepository()
        )
        self.options = options or CapacityOptions()
        self._version = 0

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> PlanningSnapshot:
        return PlanningSnapshot.of(
            self.projects.list(),
            self.bays.list(),
            self.schedules.list(),
            version=self._version,
        )

    def _touch(self) -> None:
        self._version += 1

    # ------------------------------------------------------------------
    # Master data
    # ------------------------------------------------------------------
    def register_project(
        self,
        project_number: str,
        *,
        name: str = "",
        total_hours: Optional[float] = None,
        phase_percentages: Optional[Dict[ManufacturingPhase, Optional[float]]] = None,
        milestone_dates: Optional[Dict[Milestone, date]] = None,
        original_plan_dates: Optional[Dict[Milestone, date]] = None,
        status: ProjectStatus = ProjectStatus.ACTIVE,
    ) -> Project:
        project = Project(
            id=str(uuid4()),
            project_number=project_number,
            name=name,
            total_hours=total_hours,
            phase_percentages=dict(phase_percentages or {}),
            milestone_dates=dict(milestone_dates or {}),
            original_plan_dates=dict(original_plan_dates or {}),
            status=status,
        )
        self.projects.add(project.id, project)
        self._touch()
        return project

    def register_bay(
        self,
        name: str,
        *,
        staff_count: int,
        hours_per_person_per_week: float = 40.0,
        team: Optional[str] = None,
        bay_number: Optional[int] = None,
    ) -> ManufacturingBay:
        bay = ManufacturingBay(
            id=str(uuid4()),
            name=name,
            staff_count=staff_count,
            hours_per_person_per_week=hours_per_person_per_week,
            team=team,
            bay_number=bay_number,
        )
        self.bays.add(bay.id, bay)
        self._touch()
        return bay

    def update_bay(
        self,
        bay_id: str,
        *,
        name: Optional[str] = None,
        team: Optional[str] = None,
        staff_count: Optional[int] = None,
        hours_per_person_per_week: Optional[float] = None,
    ) -> ManufacturingBay:
        bay = self.bays.get(bay_id)
        updated = replace(
            bay,
            name=bay.name if name is None else name,
            team=bay.team if team is None else team,
            staff_count=bay.staff_count if staff_count is None else staff_count,
            hours_per_person_per_week=(
                bay.hours_per_person_per_week
                if hours_per_person_per_week is None
                else hours_per_person_per_week
            ),
        )
        self.bays.upsert(updated.id, updated)
        self._touch()
        return updated

    def remove_bay(self, bay_id: str) -> None:
        if self.schedules.list_by("bay_id", bay_id):
            raise ValueError(f"Bay {bay_id!r} still has schedules assigned")
        self.bays.remove(bay_id)
        self._touch()

    def import_records(
        self,
        *,
        projects: Iterable[Mapping[str, Any]] = (),
        bays: Iterable[Mapping[str, Any]] = (),
        schedules: Iterable[Mapping[str, Any]] = (),
    ) -> Dict[str, int]:
        """Upsert dashboard payloads and re-lane every bay that received schedules.

        Records without an id, and schedules pointing at an unknown project or
        bay, are skipped with a warning.
        """

        counts = {"projects": 0, "bays": 0, "schedules": 0}
        for project in map(project_from_mapping, projects):
            if not project.id:
                logger.warning("Skipping project %r without an id", project.project_number)
                continue
            self.projects.upsert(project.id, project)
            counts["projects"] += 1
        for bay in map(bay_from_mapping, bays):
            if not bay.id:
                logger.warning("Skipping bay %r without an id", bay.name)
                continue
            self.bays.upsert(bay.id, bay)
            counts["bays"] += 1
        touched_bays = set()
        for schedule in schedules_from_mappings(schedules):
            if not schedule.id:
                logger.warning("Skipping schedule on bay %r without an id", schedule.bay_id)
                continue
            if schedule.project_id not in self.projects or schedule.bay_id not in self.bays:
                logger.warning(
                    "Skipping schedule %s: unknown project %r or bay %r",
                    schedule.id,
                    schedule.project_id,
                    schedule.bay_id,
                )
                continue
            self.schedules.upsert(schedule.id, schedule)
            touched_bays.add(schedule.bay_id)
            counts["schedules"] += 1
        if any(counts.values()):
            self._touch()
        for bay_id in sorted(touched_bays):
            self.relane_bay(bay_id)
        logger.info(
            "Imported %(projects)s project(s), %(bays)s bay(s), %(schedules)s schedule(s)",
            counts,
        )
        return counts

    def update_options(
        self,
        *,
        excluded_teams: Optional[Sequence[str]] = None,
        utilization_weeks: Optional[int] = None,
        forecast_months: Optional[int] = None,
        capacity_forecast_weeks: Optional[int] = None,
        forecast_hours_per_bay: Optional[float] = None,
    ) -> CapacityOptions:
        """Apply new view parameters, clamping out-of-range values."""

        current = self.options
        self.options = CapacityOptions(
            excluded_teams=(
                current.excluded_teams
                if excluded_teams is None
                else tuple(team for team in excluded_teams if team.strip())
            ),
            utilization_weeks=(
                current.utilization_weeks
                if utilization_weeks is None
                else max(utilization_weeks, 1)
            ),
            forecast_months=(
                current.forecast_months
                if forecast_months is None
                else clamp_months(forecast_months)
            ),
            capacity_forecast_weeks=(
                current.capacity_forecast_weeks
                if capacity_forecast_weeks is None
                else max(capacity_forecast_weeks, 1)
            ),
            forecast_hours_per_bay=(
                current.forecast_hours_per_bay
                if forecast_hours_per_bay is None
                else max(forecast_hours_per_bay, 0.0)
            ),
            variance_milestones=current.variance_milestones,
        )
        return self.options

    # ------------------------------------------------------------------
    # Schedule commands
    # ------------------------------------------------------------------
    def submit_schedule_change(self, command: ScheduleCommand) -> ScheduleResult:
        """Apply one schedule mutation and re-lane the affected bays."""

        try:
            if command.action == ScheduleAction.DELETE:
                return self._delete_schedule(command)
            return self._save_schedule(command)
        except RecordNotFoundError as exc:
            return ScheduleResult.failure(ScheduleErrorCode.NOT_FOUND, str(exc))
        except ValueError as exc:
            return ScheduleResult.failure(ScheduleErrorCode.VALIDATION, str(exc))
        except RepositoryError as exc:
            logger.warning("Schedule command %s failed: %s", command.action.value, exc)
            return ScheduleResult.failure(ScheduleErrorCode.PERSISTENCE, str(exc))

    def _save_schedule(self, command: ScheduleCommand) -> ScheduleResult:
        if command.start_date is None or command.end_date is None:
            raise ValueError("Schedules need both a start and an end date")
        if command.project_id not in self.projects:
            raise RecordNotFoundError(f"Project {command.project_id!r} does not exist")
        if command.bay_id not in self.bays:
            raise RecordNotFoundError(f"Bay {command.bay_id!r} does not exist")

        previous: Optional[ManufacturingSchedule] = None
        if command.action == ScheduleAction.UPDATE:
            if not command.schedule_id:
                raise ValueError("Updating a schedule requires its id")
            previous = self.schedules.get(command.schedule_id)
            schedule_id = previous.id
            total_hours = (
                previous.total_hours if command.total_hours is None else command.total_hours
            )
            preferred_row: Optional[int] = (
                previous.row if command.row is None else command.row
            )
        else:
            schedule_id = str(uuid4())
            total_hours = command.total_hours
            preferred_row = command.row

        candidate = ManufacturingSchedule(
            id=schedule_id,
            project_id=command.project_id,
            bay_id=command.bay_id,
            start_date=command.start_date,
            end_date=command.end_date,
            total_hours=total_hours,
            row=max(preferred_row or 0, 0),
        )
        if previous is not None:
            candidate = replace(candidate, status=previous.status)
        bay_schedules = self.schedules.list_by("bay_id", candidate.bay_id)
        lane = resolve_requested_lane(bay_schedules, candidate, preferred_row)
        candidate = replace(candidate, row=lane)
        self.schedules.upsert(candidate.id, candidate)
        self._touch()
        logger.info(
            "%s schedule %s on bay %s (%s..%s, lane %s)",
            command.action.value.capitalize(),
            candidate.id,
            candidate.bay_id,
            candidate.start_date,
            candidate.end_date,
            lane,
        )

        changes: List[LaneAssignment] = []
        if command.row is not None:
            # explicit drops keep their row unless it collides
            if lane != command.row:
                changes.append(
                    LaneAssignment(
                        schedule_id=candidate.id,
                        bay_id=candidate.bay_id,
                        lane=lane,
                        previous_row=command.row,
                    )
                )
        else:
            changes.extend(self.relane_bay(candidate.bay_id))
        if previous is not None and previous.bay_id != candidate.bay_id:
            changes.extend(self.relane_bay(previous.bay_id))
        return ScheduleResult(schedule_id=candidate.id, lane_changes=changes)

    def _delete_schedule(self, command: ScheduleCommand) -> ScheduleResult:
        if not command.schedule_id:
            raise ValueError("Deleting a schedule requires its id")
        schedule = self.schedules.get(command.schedule_id)
        self.schedules.remove(schedule.id)
        self._touch()
        logger.info("Deleted schedule %s from bay %s", schedule.id, schedule.bay_id)
        return ScheduleResult(
            schedule_id=schedule.id, lane_changes=self.relane_bay(schedule.bay_id)
        )

    def relane_bay(self, bay_id: str) -> List[LaneAssignment]:
        """Recompute lanes for ``bay_id`` and persist rows that moved."""

        assignments = self.bay_lanes(bay_id)
        moved = [assignment for assignment in assignments if assignment.moved]
        for assignment in moved:
            schedule = self.schedules.get(assignment.schedule_id)
            self.schedules.upsert(schedule.id, replace(schedule, row=assignment.lane))
        if moved:
            self._touch()
            logger.info("Re-laned %s schedule(s) on bay %s", len(moved), bay_id)
        return moved

    # ------------------------------------------------------------------
    # Engine views
    # ------------------------------------------------------------------
    def bay_lanes(self, bay_id: str) -> List[LaneAssignment]:
        return assign_lanes(self.schedules.list_by("bay_id", bay_id))

    def _counted_bays(self, snapshot: PlanningSnapshot) -> List[ManufacturingBay]:
        return counted_bays(snapshot.bays, self.options.excluded_teams)

    def weekly_utilization(
        self,
        *,
        window_start: Optional[date] = None,
        weeks: Optional[int] = None,
    ) -> List[WeeklyUtilization]:
        snapshot = self.snapshot()
        return calculate_weekly_utilization(
            snapshot.schedules,
            snapshot.projects,
            self._counted_bays(snapshot),
            window_start or start_of_week(date.today()),
            self.options.utilization_weeks if weeks is None else max(weeks, 0),
        )

    def team_utilization(
        self, team: str, *, week_start: Optional[date] = None
    ) -> TeamUtilization:
        snapshot = self.snapshot()
        return team_week_utilization(
            snapshot.schedules,
            snapshot.projects,
            [bay for bay in snapshot.bays if bay.is_active],
            team,
            week_start or start_of_week(date.today()),
        )

    def monthly_forecast(
        self, *, months: Optional[int] = None, today: Optional[date] = None
    ) -> List[ForecastMonth]:
        return forecast_bay_utilization(
            self.snapshot(),
            self.options.forecast_months if months is None else months,
            today or date.today(),
            self.options.excluded_teams,
        )

    def bay_availability(self, *, today: Optional[date] = None) -> List[BayAvailability]:
        snapshot = self.snapshot()
        active = [bay for bay in snapshot.bays if bay.is_active]
        return next_available_bays(snapshot, today or date.today(), active)

    def capacity_outlook(
        self, *, weeks: Optional[int] = None, window_start: Optional[date] = None
    ) -> List[CapacityWeek]:
        return capacity_forecast(
            self.snapshot(),
            self.options.capacity_forecast_weeks if weeks is None else weeks,
            window_start or start_of_week(date.today()),
            hours_per_bay=self.options.forecast_hours_per_bay,
            excluded_teams=self.options.excluded_teams,
        )

    def variance_report(
        self, *, statuses: Optional[Iterable[ProjectStatus]] = None
    ) -> VarianceReport:
        projects = self.projects.list()
        if statuses is not None:
            wanted = set(statuses)
            projects = [project for project in projects if project.status in wanted]
        return build_variance_report(projects, self.options.variance_milestones)


__all__ = [
    "CapacityPlanningService",
    "CapacityOptions",
    "ScheduleAction",
    "ScheduleCommand",
    "ScheduleError",
    "ScheduleErrorCode",
    "ScheduleResult",
]
