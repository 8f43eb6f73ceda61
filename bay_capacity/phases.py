"""Distribution of a schedule's hours across manufacturing phases.

A schedule's inclusive date span is cut into sequential phase windows in the
fixed order fabrication, paint, production, IT, NTC, QC. Each window lasts
its phase percentage of the span and carries the same percentage of the
schedule's total hours. Percentages are taken as given: a set summing above
100 pushes the trailing windows past the schedule end instead of being
normalized.
"""

from __future__ import annotations

import logging
import math
from datetime import date, timedelta
from typing import List, Optional

from .domain import (
    PHASE_ORDER,
    ManufacturingSchedule,
    PhaseWindow,
    Project,
)

logger = logging.getLogger(__name__)

# tolerance for float drift in cumulative day offsets
_EPSILON = 1e-9


def schedule_hours(schedule: ManufacturingSchedule, project: Optional[Project]) -> float:
    """Return the hour budget of a schedule, falling back to the project's."""

    if schedule.total_hours is not None:
        return schedule.total_hours
    if project is not None and project.total_hours is not None:
        return project.total_hours
    return 0.0


def resolve_phase_windows(
    schedule: ManufacturingSchedule, project: Project
) -> List[PhaseWindow]:
    """Split ``schedule`` into one :class:`PhaseWindow` per weighted phase."""

    span_days = float(schedule.duration_days)
    # window dates stop at the last representable day
    max_index = (date.max - schedule.start_date).days
    total_hours = schedule_hours(schedule, project)
    windows: List[PhaseWindow] = []
    offset = 0.0
    for phase in PHASE_ORDER:
        share = project.phase_percentage(phase) / 100.0
        duration = span_days * share
        if duration <= 0:
            continue
        first_index = math.floor(min(offset + _EPSILON, max_index))
        last_index = max(
            math.ceil(min(offset + duration - _EPSILON, max_index + 1)) - 1, first_index
        )
        first_day = schedule.start_date + timedelta(days=first_index)
        last_day = schedule.start_date + timedelta(days=last_index)
        windows.append(
            PhaseWindow(
                project_id=project.id,
                schedule_id=schedule.id,
                phase=phase,
                window_start=first_day,
                window_end=last_day,
                hours=total_hours * share,
                start_offset_days=offset,
                duration_days=duration,
                schedule_start=schedule.start_date,
            )
        )
        offset += duration
    if offset > span_days + _EPSILON:
        logger.debug(
            "Phases of schedule %s run %.1f days past its end date",
            schedule.id,
            offset - span_days,
        )
    return windows


def phase_overlap_days(window: PhaseWindow, range_start: date, range_end: date) -> float:
    """Fractional days of ``window`` inside the inclusive range."""

    if range_end < range_start:
        return 0.0
    origin = window.schedule_start
    lower = float((range_start - origin).days)
    upper = float((range_end - origin).days + 1)
    window_lower = window.start_offset_days
    window_upper = window.start_offset_days + window.duration_days
    return max(0.0, min(upper, window_upper) - max(lower, window_lower))


def phase_hours_in_range(window: PhaseWindow, range_start: date, range_end: date) -> float:
    """Hours of ``window`` falling inside the range, prorated by overlap days."""

    if window.duration_days <= 0:
        return 0.0
    overlap = phase_overlap_days(window, range_start, range_end)
    return window.hours * overlap / window.duration_days


__all__ = [
    "schedule_hours",
    "resolve_phase_windows",
    "phase_overlap_days",
    "phase_hours_in_range",
]
