"""Demonstration script for the bay capacity engine."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pprint import pprint

from . import (
    CapacityPlanningService,
    ManufacturingPhase,
    Milestone,
    ScheduleAction,
    ScheduleCommand,
)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    planner = CapacityPlanningService()
    monday = date.today() - timedelta(days=date.today().weekday())

    # Bays
    bay_a = planner.register_bay("Bay A", staff_count=2, team="Chavez", bay_number=1)
    bay_b = planner.register_bay(
        "Bay B", staff_count=3, hours_per_person_per_week=36, team="Chavez", bay_number=2
    )
    planner.register_bay("Libby Overflow", staff_count=2, team="LIBBY", bay_number=9)

    # Projects
    rescue = planner.register_project(
        "804601",
        name="Rescue Unit",
        total_hours=140,
        phase_percentages={
            ManufacturingPhase.FABRICATION: 20,
            ManufacturingPhase.PAINT: 10,
            ManufacturingPhase.PRODUCTION: 50,
            ManufacturingPhase.IT: 10,
            ManufacturingPhase.NTC: 5,
            ManufacturingPhase.QC: 5,
        },
        original_plan_dates={
            Milestone.PAINT: monday + timedelta(days=2),
            Milestone.DELIVERY: monday + timedelta(days=30),
        },
        milestone_dates={Milestone.PAINT: monday + timedelta(days=2)},
    )
    command_post = planner.register_project(
        "804602",
        name="Command Post",
        total_hours=600,
        original_plan_dates={Milestone.PRODUCTION: monday - timedelta(days=3)},
        milestone_dates={Milestone.PRODUCTION: monday + timedelta(days=4)},
    )
    lab = planner.register_project("804603", name="Mobile Lab", total_hours=320)

    # Schedules
    for project, bay, start, end in (
        (rescue, bay_a, monday, monday + timedelta(days=13)),
        (command_post, bay_a, monday + timedelta(days=7), monday + timedelta(days=48)),
        (lab, bay_a, monday + timedelta(days=14), monday + timedelta(days=34)),
        (lab, bay_b, monday + timedelta(days=35), monday + timedelta(days=55)),
    ):
        result = planner.submit_schedule_change(
            ScheduleCommand(
                action=ScheduleAction.CREATE,
                project_id=project.id,
                bay_id=bay.id,
                start_date=start,
                end_date=end,
            )
        )
        print(f"{project.project_number} -> {bay.name}: ok={result.ok}")

    print("\nLanes in Bay A:")
    pprint(planner.bay_lanes(bay_a.id))

    print("\nWeekly utilization (next 4 weeks):")
    for entry in planner.weekly_utilization(window_start=monday, weeks=4):
        print(
            f"  {entry.week_start} {entry.bay_name:<8} "
            f"{entry.scheduled_hours:7.1f}h / {entry.weekly_capacity:5.1f}h "
            f"= {entry.utilization_percentage:6.1f}% ({entry.project_count} projects)"
        )

    print("\nMonthly forecast:")
    for month in planner.monthly_forecast(months=3):
        print(f"  {month.label}: {month.average_utilization:.1f}%")

    print("\nBay availability:")
    pprint(planner.bay_availability())

    print("\n12-week capacity outlook:")
    for week in planner.capacity_outlook(window_start=monday):
        print(
            f"  {week.week_start}: {week.used_capacity:6.1f}h of "
            f"{week.total_capacity:5.1f}h ({week.utilization:5.1f}%)"
        )

    print("\nVariance against original plan:")
    pprint(planner.variance_report())


if __name__ == "__main__":
    main()
