"""Weekly bay utilization from phase-weighted schedule hours.

Utilization here is deliberately left unclamped: a bay booked beyond its
staffed capacity reports more than 100 percent so over-commitment stays
visible. The clamped whole-shop figure lives in
:func:`bay_capacity.forecasting.capacity_forecast`.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from .domain import (
    ManufacturingBay,
    ManufacturingSchedule,
    PhaseWindow,
    Project,
    TeamUtilization,
    WeeklyUtilization,
)
from .phases import phase_hours_in_range, resolve_phase_windows

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_TEAMS: Tuple[str, ...] = ("LIBBY",)


def week_bounds(window_start: date, week_index: int) -> Tuple[date, date]:
    week_start = window_start + timedelta(days=7 * week_index)
    return week_start, week_start + timedelta(days=6)


def start_of_week(day: date) -> date:
    """Monday of the week containing ``day``."""

    return day - timedelta(days=day.weekday())


def counted_bays(
    bays: Iterable[ManufacturingBay],
    excluded_teams: Iterable[str] = DEFAULT_EXCLUDED_TEAMS,
) -> List[ManufacturingBay]:
    """Active bays whose team is not excluded from aggregate figures."""

    excluded = {team.strip().upper() for team in excluded_teams}
    return [
        bay
        for bay in bays
        if bay.is_active and (bay.team or "").strip().upper() not in excluded
    ]


def utilization_percentage(scheduled_hours: float, capacity: float) -> float:
    if capacity <= 0:
        return 0.0
    return scheduled_hours / capacity * 100.0


def _load_for_week(
    schedules: Sequence[ManufacturingSchedule],
    projects: Mapping[str, Project],
    week_start: date,
    week_end: date,
) -> Tuple[float, List[PhaseWindow]]:
    hours = 0.0
    aligned: List[PhaseWindow] = []
    for schedule in schedules:
        if not schedule.overlaps(week_start, week_end):
            continue
        project = projects.get(schedule.project_id)
        if project is None:
            logger.debug(
                "Skipping schedule %s: project %s not in snapshot",
                schedule.id,
                schedule.project_id,
            )
            continue
        for window in resolve_phase_windows(schedule, project):
            portion = phase_hours_in_range(window, week_start, week_end)
            if portion <= 0:
                continue
            hours += portion
            aligned.append(window)
    return hours, aligned


def _group_by_bay(
    schedules: Iterable[ManufacturingSchedule],
) -> Dict[str, List[ManufacturingSchedule]]:
    grouped: Dict[str, List[ManufacturingSchedule]] = {}
    for schedule in schedules:
        grouped.setdefault(schedule.bay_id, []).append(schedule)
    return grouped


def _index_projects(projects: Iterable[Project]) -> Dict[str, Project]:
    return {project.id: project for project in projects}


def _range_capacity(bay: ManufacturingBay, range_start: date, range_end: date) -> float:
    days = (range_end - range_start).days + 1
    if days == 7:
        return bay.weekly_capacity
    return bay.weekly_capacity * days / 7.0


def calculate_range_utilization(
    schedules: Iterable[ManufacturingSchedule],
    projects: Iterable[Project],
    bays: Iterable[ManufacturingBay],
    ranges: Sequence[Tuple[date, date]],
) -> List[WeeklyUtilization]:
    """Compute utilization for every bay over each inclusive date range.

    A range shorter than a week is measured against the matching share of the
    bay's weekly capacity. Results are ordered range by range, bays in the
    order given.
    """

    by_bay = _group_by_bay(schedules)
    project_index = _index_projects(projects)
    bay_list = list(bays)
    results: List[WeeklyUtilization] = []
    for week_start, week_end in ranges:
        for bay in bay_list:
            hours, aligned = _load_for_week(
                by_bay.get(bay.id, ()), project_index, week_start, week_end
            )
            capacity = _range_capacity(bay, week_start, week_end)
            results.append(
                WeeklyUtilization(
                    bay_id=bay.id,
                    bay_name=bay.name,
                    team=bay.team,
                    week_start=week_start,
                    week_end=week_end,
                    scheduled_hours=hours,
                    weekly_capacity=capacity,
                    utilization_percentage=utilization_percentage(hours, capacity),
                    aligned_phases=aligned,
                    project_count=len({window.project_id for window in aligned}),
                )
            )
    return results


def calculate_weekly_utilization(
    schedules: Iterable[ManufacturingSchedule],
    projects: Iterable[Project],
    bays: Iterable[ManufacturingBay],
    window_start: date,
    weeks: int,
) -> List[WeeklyUtilization]:
    """Compute :class:`WeeklyUtilization` for every bay and week.

    ``bays`` should already be filtered with :func:`counted_bays`. Week ``w``
    spans ``window_start + 7w`` through six days later. Results are ordered
    week by week, bays in the order given.
    """

    ranges = [week_bounds(window_start, index) for index in range(max(weeks, 0))]
    return calculate_range_utilization(schedules, projects, bays, ranges)


def team_week_utilization(
    schedules: Iterable[ManufacturingSchedule],
    projects: Iterable[Project],
    bays: Iterable[ManufacturingBay],
    team: str,
    week_start: date,
) -> TeamUtilization:
    """Combine the load of every bay belonging to ``team`` for one week."""

    wanted = team.strip().upper()
    team_bays = [bay for bay in bays if (bay.team or "").strip().upper() == wanted]
    weekly = calculate_weekly_utilization(schedules, projects, team_bays, week_start, 1)
    hours = sum(entry.scheduled_hours for entry in weekly)
    capacity = sum(bay.weekly_capacity for bay in team_bays)
    project_ids: Set[str] = {
        window.project_id for entry in weekly for window in entry.aligned_phases
    }
    return TeamUtilization(
        team=team,
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        bay_ids=tuple(bay.id for bay in team_bays),
        scheduled_hours=hours,
        weekly_capacity=capacity,
        utilization_percentage=utilization_percentage(hours, capacity),
        project_count=len(project_ids),
    )


__all__ = [
    "DEFAULT_EXCLUDED_TEAMS",
    "week_bounds",
    "start_of_week",
    "counted_bays",
    "utilization_percentage",
    "calculate_range_utilization",
    "calculate_weekly_utilization",
    "team_week_utilization",
]
