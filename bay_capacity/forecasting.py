"""Forward projections built on the weekly utilization calculator."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from .domain import (
    BayAvailability,
    BayMonthUtilization,
    CapacityWeek,
    ForecastMonth,
    ManufacturingBay,
    ManufacturingSchedule,
    Project,
)
from .phases import schedule_hours
from .repository import PlanningSnapshot
from .utilization import (
    DEFAULT_EXCLUDED_TEAMS,
    calculate_range_utilization,
    counted_bays,
    week_bounds,
)

logger = logging.getLogger(__name__)

MIN_FORECAST_MONTHS = 1
MAX_FORECAST_MONTHS = 24
FORECAST_HOURS_PER_BAY = 40.0
DEFAULT_CAPACITY_WEEKS = 12


def clamp_months(months: int) -> int:
    return min(max(months, MIN_FORECAST_MONTHS), MAX_FORECAST_MONTHS)


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` after the month of ``day``."""

    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_week_ranges(first_day: date) -> List[Tuple[date, date]]:
    """7-day ranges stepping from ``first_day``, the last cut at month end."""

    last_day = add_months(first_day, 1) - timedelta(days=1)
    ranges: List[Tuple[date, date]] = []
    start = first_day
    while start <= last_day:
        end = min(start + timedelta(days=6), last_day)
        ranges.append((start, end))
        start = end + timedelta(days=1)
    return ranges


def weeks_in_month(first_day: date) -> int:
    """Number of 7-day steps from ``first_day`` that start inside its month."""

    return len(month_week_ranges(first_day))


def forecast_bay_utilization(
    snapshot: PlanningSnapshot,
    months: int,
    today: date,
    excluded_teams: Iterable[str] = DEFAULT_EXCLUDED_TEAMS,
) -> List[ForecastMonth]:
    """Average projected weekly utilization per bay for each upcoming month.

    The horizon starts with the month containing ``today`` and is clamped to
    1..24 months. Bays without any project in a month stay listed but do not
    count toward that month's ``average_utilization``.
    """

    horizon = clamp_months(months)
    bays = counted_bays(snapshot.bays, excluded_teams)
    first_month = month_start(today)
    forecast: List[ForecastMonth] = []
    for offset in range(horizon):
        current = add_months(first_month, offset)
        weekly = calculate_range_utilization(
            snapshot.schedules,
            snapshot.projects,
            bays,
            month_week_ranges(current),
        )
        per_bay: List[BayMonthUtilization] = []
        for bay in bays:
            entries = [entry for entry in weekly if entry.bay_id == bay.id]
            project_ids = {
                window.project_id
                for entry in entries
                for window in entry.aligned_phases
            }
            average = (
                sum(entry.utilization_percentage for entry in entries) / len(entries)
                if entries
                else 0.0
            )
            per_bay.append(
                BayMonthUtilization(
                    bay_id=bay.id,
                    bay_name=bay.name,
                    team=bay.team,
                    utilization_percentage=average,
                    project_count=len(project_ids),
                    week_count=len(entries),
                )
            )
        active = [entry for entry in per_bay if entry.project_count > 0]
        average_utilization = (
            sum(entry.utilization_percentage for entry in active) / len(active)
            if active
            else 0.0
        )
        forecast.append(
            ForecastMonth(
                month=current,
                label=current.strftime("%Y-%m"),
                per_bay_utilization=per_bay,
                average_utilization=average_utilization,
            )
        )
    return forecast


def bay_availability(
    bay: ManufacturingBay,
    schedules: Sequence[ManufacturingSchedule],
    today: date,
) -> BayAvailability:
    """Availability of a single bay given its schedules."""

    for schedule in sorted(schedules, key=lambda item: (item.end_date, item.id)):
        if schedule.bay_id != bay.id or not schedule.contains(today):
            continue
        return BayAvailability(
            bay_id=bay.id,
            bay_name=bay.name,
            next_available_date=schedule.end_date,
            days_until_free=(schedule.end_date - today).days,
            current_project_id=schedule.project_id,
            current_schedule_id=schedule.id,
        )
    return BayAvailability(
        bay_id=bay.id,
        bay_name=bay.name,
        next_available_date=today,
        days_until_free=0,
    )


def next_available_bays(
    snapshot: PlanningSnapshot,
    today: date,
    bays: Optional[Iterable[ManufacturingBay]] = None,
) -> List[BayAvailability]:
    """When each bay frees up, in bay order."""

    selected = list(snapshot.bays if bays is None else bays)
    return [
        bay_availability(bay, snapshot.schedules_for_bay(bay.id), today)
        for bay in selected
    ]


def _prorated_schedule_hours(
    schedule: ManufacturingSchedule,
    project: Optional[Project],
    week_start: date,
    week_end: date,
) -> float:
    overlap_start = max(schedule.start_date, week_start)
    overlap_end = min(schedule.end_date, week_end)
    if overlap_end < overlap_start:
        return 0.0
    overlap_days = (overlap_end - overlap_start).days + 1
    return schedule_hours(schedule, project) * overlap_days / schedule.duration_days


def capacity_forecast(
    snapshot: PlanningSnapshot,
    weeks: int = DEFAULT_CAPACITY_WEEKS,
    window_start: Optional[date] = None,
    *,
    hours_per_bay: float = FORECAST_HOURS_PER_BAY,
    excluded_teams: Iterable[str] = DEFAULT_EXCLUDED_TEAMS,
) -> List[CapacityWeek]:
    """Whole-shop capacity outlook with utilization clamped to 0..100.

    Unlike the weekly bay figure, this uses a flat per-bay allowance and
    prorates each schedule's total hours evenly over its span, ignoring phases.
    """

    start = window_start or date.today()
    bays = counted_bays(snapshot.bays, excluded_teams)
    bay_ids = {bay.id for bay in bays}
    projects = snapshot.projects_by_id()
    schedules = [schedule for schedule in snapshot.schedules if schedule.bay_id in bay_ids]
    total_capacity = max(hours_per_bay, 0.0) * len(bays)
    outlook: List[CapacityWeek] = []
    for week_index in range(max(weeks, 0)):
        week_start, week_end = week_bounds(start, week_index)
        used = sum(
            _prorated_schedule_hours(
                schedule, projects.get(schedule.project_id), week_start, week_end
            )
            for schedule in schedules
        )
        if total_capacity > 0:
            utilization = min(max(used / total_capacity * 100.0, 0.0), 100.0)
        else:
            utilization = 0.0
        outlook.append(
            CapacityWeek(
                week_start=week_start,
                week_end=week_end,
                total_capacity=total_capacity,
                used_capacity=used,
                available_capacity=max(total_capacity - used, 0.0),
                utilization=utilization,
            )
        )
    logger.debug("Built %s-week capacity outlook from %s", len(outlook), start)
    return outlook


__all__ = [
    "MIN_FORECAST_MONTHS",
    "MAX_FORECAST_MONTHS",
    "FORECAST_HOURS_PER_BAY",
    "DEFAULT_CAPACITY_WEEKS",
    "clamp_months",
    "month_start",
    "add_months",
    "month_week_ranges",
    "weeks_in_month",
    "forecast_bay_utilization",
    "bay_availability",
    "next_available_bays",
    "capacity_forecast",
]
