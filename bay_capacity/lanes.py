"""Lane (row) placement of schedules inside a bay timeline.

Placement is greedy interval partitioning: schedules are taken in start-date
order and dropped into the first lane whose last schedule ended strictly
before the new one starts. The number of lanes opened equals the largest
number of schedules active on any single day.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .domain import LaneAssignment, ManufacturingSchedule

logger = logging.getLogger(__name__)


def _placement_key(schedule: ManufacturingSchedule) -> Tuple[date, date, str]:
    return (schedule.start_date, schedule.end_date, schedule.id)


def _overlap(first: ManufacturingSchedule, second: ManufacturingSchedule) -> bool:
    return first.overlaps(second.start_date, second.end_date)


def assign_lanes(schedules: Iterable[ManufacturingSchedule]) -> List[LaneAssignment]:
    """Assign a collision-free lane to every schedule of one bay."""

    ordered = sorted(schedules, key=_placement_key)
    lane_ends: List[date] = []
    assignments: List[LaneAssignment] = []
    for schedule in ordered:
        lane: Optional[int] = None
        for index, lane_end in enumerate(lane_ends):
            if lane_end < schedule.start_date:
                lane = index
                break
        if lane is None:
            lane = len(lane_ends)
            lane_ends.append(schedule.end_date)
        else:
            lane_ends[lane] = schedule.end_date
        assignments.append(
            LaneAssignment(
                schedule_id=schedule.id,
                bay_id=schedule.bay_id,
                lane=lane,
                previous_row=schedule.row,
            )
        )
    return assignments


def assign_bay_lanes(
    schedules: Iterable[ManufacturingSchedule],
) -> Dict[str, List[LaneAssignment]]:
    """Group schedules by bay and assign lanes within each bay."""

    grouped: Dict[str, List[ManufacturingSchedule]] = defaultdict(list)
    for schedule in schedules:
        grouped[schedule.bay_id].append(schedule)
    return {bay_id: assign_lanes(items) for bay_id, items in grouped.items()}


def resolve_requested_lane(
    schedules: Sequence[ManufacturingSchedule],
    candidate: ManufacturingSchedule,
    requested_row: Optional[int] = None,
) -> int:
    """Return the lane ``candidate`` ends up in when dropped on ``requested_row``.

    ``schedules`` are the other schedules of the bay. The requested row is kept
    when nothing in it overlaps the candidate; otherwise the candidate moves to
    the lowest free lane.
    """

    others = [
        schedule
        for schedule in schedules
        if schedule.id != candidate.id and schedule.bay_id == candidate.bay_id
    ]
    rows: Dict[int, List[ManufacturingSchedule]] = defaultdict(list)
    for schedule in others:
        rows[schedule.row].append(schedule)

    def is_free(row: int) -> bool:
        return not any(_overlap(candidate, other) for other in rows.get(row, ()))

    if requested_row is not None and requested_row >= 0 and is_free(requested_row):
        return requested_row
    lane = 0
    while not is_free(lane):
        lane += 1
    if requested_row is not None:
        logger.info(
            "Row %s is taken for schedule %s; moved to lane %s",
            requested_row,
            candidate.id,
            lane,
        )
    return lane


def max_concurrency(schedules: Iterable[ManufacturingSchedule]) -> int:
    """Largest number of schedules active on the same day."""

    events: List[Tuple[date, int]] = []
    for schedule in schedules:
        events.append((schedule.start_date, 1))
        events.append((schedule.end_date + timedelta(days=1), -1))
    # ends sort before starts on the same day
    events.sort(key=lambda event: (event[0], event[1]))
    active = 0
    peak = 0
    for _, delta in events:
        active += delta
        peak = max(peak, active)
    return peak


def find_lane_conflicts(
    schedules: Sequence[ManufacturingSchedule],
) -> List[Tuple[str, str]]:
    """Pairs of schedule ids sharing a bay row while overlapping in time."""

    conflicts: List[Tuple[str, str]] = []
    ordered = sorted(schedules, key=_placement_key)
    for index, first in enumerate(ordered):
        for second in ordered[index + 1 :]:
            if second.start_date > first.end_date:
                break
            if first.bay_id == second.bay_id and first.row == second.row:
                conflicts.append((first.id, second.id))
    return conflicts


__all__ = [
    "assign_lanes",
    "assign_bay_lanes",
    "resolve_requested_lane",
    "max_concurrency",
    "find_lane_conflicts",
]
