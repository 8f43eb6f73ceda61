"""Schedule adherence of project milestones against the original plan.

A milestone counts as *recovered* when its actual date equals the plan date
exactly. No check is made that the milestone slipped at some earlier point,
so every exactly-on-plan milestone is reported as recovered.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .domain import (
    Milestone,
    MilestoneVariance,
    MilestoneVarianceSummary,
    Project,
    ProjectVariance,
    VarianceReport,
)

TRACKED_MILESTONES: Tuple[Milestone, ...] = (
    Milestone.PAINT,
    Milestone.PRODUCTION,
    Milestone.IT,
    Milestone.DELIVERY,
)


def compare_milestone(
    milestone: Milestone, actual: Optional[date], planned: Optional[date]
) -> Optional[MilestoneVariance]:
    """Compare two dates; ``None`` when either one is still TBD."""

    if actual is None or planned is None:
        return None
    difference = (actual - planned).days
    return MilestoneVariance(
        milestone=milestone,
        actual=actual,
        planned=planned,
        on_time=actual <= planned,
        variance_days=abs(difference),
        delay_days=max(difference, 0),
        recovered=actual == planned,
    )


def track_project(
    project: Project, milestones: Sequence[Milestone] = TRACKED_MILESTONES
) -> ProjectVariance:
    variances = []
    for milestone in milestones:
        variance = compare_milestone(
            milestone,
            project.milestone_dates.get(milestone),
            project.original_plan_dates.get(milestone),
        )
        if variance is not None:
            variances.append(variance)
    return ProjectVariance(
        project_id=project.id,
        project_number=project.project_number,
        milestones=variances,
    )


def _rate(count: int, total: int) -> float:
    return count / total * 100.0 if total else 0.0


def _average_delay(variances: Iterable[MilestoneVariance]) -> Optional[float]:
    delays = [variance.variance_days for variance in variances if not variance.on_time]
    if not delays:
        return None
    return sum(delays) / len(delays)


def build_variance_report(
    projects: Iterable[Project],
    milestones: Sequence[Milestone] = TRACKED_MILESTONES,
) -> VarianceReport:
    """Aggregate on-time, delay and recovery figures over ``projects``.

    Rates are percentages. ``average_delay_days`` is ``None`` when no tracked
    milestone is late.
    """

    tracked = [track_project(project, milestones) for project in projects]
    comparable = [entry for entry in tracked if entry.comparable]
    all_variances = [variance for entry in tracked for variance in entry.milestones]

    by_milestone: Dict[Milestone, List[MilestoneVariance]] = {
        milestone: [] for milestone in milestones
    }
    for variance in all_variances:
        by_milestone[variance.milestone].append(variance)

    breakdown: List[MilestoneVarianceSummary] = []
    for milestone, variances in by_milestone.items():
        on_time_count = sum(1 for variance in variances if variance.on_time)
        breakdown.append(
            MilestoneVarianceSummary(
                milestone=milestone,
                compared_count=len(variances),
                on_time_count=on_time_count,
                delayed_count=len(variances) - on_time_count,
                recovered_count=sum(1 for variance in variances if variance.recovered),
                on_time_rate=_rate(on_time_count, len(variances)),
                average_delay_days=_average_delay(variances),
            )
        )

    return VarianceReport(
        project_count=len(tracked),
        comparable_project_count=len(comparable),
        on_time_rate=_rate(
            sum(1 for variance in all_variances if variance.on_time),
            len(all_variances),
        ),
        recovery_rate=_rate(
            sum(1 for entry in comparable if entry.recovered), len(comparable)
        ),
        average_delay_days=_average_delay(all_variances),
        per_phase_breakdown=breakdown,
        projects=tracked,
    )


__all__ = [
    "TRACKED_MILESTONES",
    "compare_milestone",
    "track_project",
    "build_variance_report",
]
