"""Boundary validation for records arriving from the REST data layer.

Payloads use the dashboard's camelCase keys and string dates. Dates that are
missing or cannot be parsed become ``None`` instead of raising; schedules
without a usable date range are dropped with a warning.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

from .domain import (
    ManufacturingBay,
    ManufacturingPhase,
    ManufacturingSchedule,
    Milestone,
    Project,
    ProjectStatus,
    ScheduleStatus,
)

logger = logging.getLogger(__name__)

# larger phase weights are treated as data-entry errors
MAX_PHASE_PERCENTAGE = 1000.0

PHASE_FIELDS = {
    ManufacturingPhase.FABRICATION: "fabPercentage",
    ManufacturingPhase.PAINT: "paintPercentage",
    ManufacturingPhase.PRODUCTION: "productionPercentage",
    ManufacturingPhase.IT: "itPercentage",
    ManufacturingPhase.NTC: "ntcPercentage",
    ManufacturingPhase.QC: "qcPercentage",
}

MILESTONE_FIELDS = {
    Milestone.FABRICATION: ("fabricationStart", "opFabricationStart"),
    Milestone.PAINT: ("paintStart", "opPaintStart"),
    Milestone.PRODUCTION: ("productionStart", "opProductionStart"),
    Milestone.IT: ("itStart", "opItStart"),
    Milestone.NTC: ("ntcTestingDate", "opNtcTestingDate"),
    Milestone.QC: ("qcStartDate", "opQcStartDate"),
    Milestone.DELIVERY: ("deliveryDate", "opDeliveryDate"),
}


def parse_date(value: Any) -> Optional[date]:
    """Coerce ``value`` to a calendar date, or ``None`` when it is unusable."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text.upper() in {"TBD", "N/A", "NULL"}:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value if isinstance(value, (int, float)) else str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _parse_enum(enum_type, value: Any, default):
    try:
        return enum_type(str(value).strip().lower())
    except ValueError:
        return default


def _identifier(value: Any) -> str:
    return "" if value is None else str(value)


_FALSE_FLAGS = frozenset({"false", "0", "no", "off"})


def parse_flag(value: Any, default: bool = True) -> bool:
    """Boolean from JSON or CSV input. Missing values give ``default``."""

    if isinstance(value, str):
        value = value.strip().lower() or None
        if value is not None:
            return value not in _FALSE_FLAGS
    if value is None:
        return default
    return bool(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def project_from_mapping(data: Mapping[str, Any]) -> Project:
    percentages = {}
    for phase, key in PHASE_FIELDS.items():
        value = parse_number(data.get(key))
        if value is not None and value > MAX_PHASE_PERCENTAGE:
            logger.warning(
                "Ignoring %s of %s for project %r", key, value, data.get("id")
            )
            value = None
        percentages[phase] = None if value is None or value < 0 else value
    actual_dates = {}
    plan_dates = {}
    for milestone, (actual_key, plan_key) in MILESTONE_FIELDS.items():
        actual = parse_date(data.get(actual_key))
        planned = parse_date(data.get(plan_key))
        if actual is not None:
            actual_dates[milestone] = actual
        if planned is not None:
            plan_dates[milestone] = planned
    total_hours = parse_number(data.get("totalHours"))
    return Project(
        id=_identifier(data.get("id")),
        project_number=_identifier(data.get("projectNumber")),
        name=str(data.get("name") or ""),
        total_hours=total_hours if total_hours is None or total_hours >= 0 else None,
        phase_percentages=percentages,
        milestone_dates=actual_dates,
        original_plan_dates=plan_dates,
        status=_parse_enum(ProjectStatus, data.get("status"), ProjectStatus.ACTIVE),
    )


def bay_from_mapping(data: Mapping[str, Any]) -> ManufacturingBay:
    staff = parse_number(data.get("staffCount"))
    hours = parse_number(data.get("hoursPerPersonPerWeek"))
    bay_number = parse_number(data.get("bayNumber"))
    return ManufacturingBay(
        id=_identifier(data.get("id")),
        name=str(data.get("name") or ""),
        staff_count=max(int(staff), 0) if staff is not None else 0,
        hours_per_person_per_week=max(hours, 0.0) if hours is not None else 40.0,
        team=_optional_text(data.get("team")),
        bay_number=int(bay_number) if bay_number is not None else None,
        is_active=parse_flag(data.get("isActive")),
    )


def schedule_from_mapping(data: Mapping[str, Any]) -> Optional[ManufacturingSchedule]:
    start = parse_date(data.get("startDate"))
    end = parse_date(data.get("endDate"))
    if start is None or end is None or start > end:
        logger.warning(
            "Dropping schedule %r without a usable date range", data.get("id")
        )
        return None
    total_hours = parse_number(data.get("totalHours"))
    row = parse_number(data.get("row"))
    return ManufacturingSchedule(
        id=_identifier(data.get("id")),
        project_id=_identifier(data.get("projectId")),
        bay_id=_identifier(data.get("bayId")),
        start_date=start,
        end_date=end,
        total_hours=total_hours if total_hours is None or total_hours >= 0 else None,
        row=max(int(row), 0) if row is not None else 0,
        status=_parse_enum(ScheduleStatus, data.get("status"), ScheduleStatus.SCHEDULED),
    )


def schedules_from_mappings(
    payloads: Iterable[Mapping[str, Any]],
) -> List[ManufacturingSchedule]:
    schedules = []
    for payload in payloads:
        schedule = schedule_from_mapping(payload)
        if schedule is not None:
            schedules.append(schedule)
    return schedules


__all__ = [
    "parse_date",
    "parse_number",
    "parse_flag",
    "project_from_mapping",
    "bay_from_mapping",
    "schedule_from_mapping",
    "schedules_from_mappings",
]
