"""FastAPI-based JSON interface for the bay capacity engine."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..domain import ManufacturingPhase, Milestone, ProjectStatus
from ..services import (
    CapacityPlanningService,
    ScheduleAction,
    ScheduleCommand,
    ScheduleErrorCode,
    ScheduleResult,
)
from ..storage import PlanningDatabase


class ScheduleChangeRequest(BaseModel):
    """Body of schedule create and update requests."""

    projectId: str
    bayId: str
    startDate: date
    endDate: date
    totalHours: Optional[float] = None
    row: Optional[int] = None


class ImportRequest(BaseModel):
    """Bulk payload in the dashboard's camelCase record format."""

    projects: List[Dict[str, Any]] = []
    bays: List[Dict[str, Any]] = []
    schedules: List[Dict[str, Any]] = []


def _result_response(result: ScheduleResult, success_status: int = 200) -> JSONResponse:
    if result.ok:
        return JSONResponse(jsonable_encoder(result), status_code=success_status)
    status_code = 404 if result.error.code == ScheduleErrorCode.NOT_FOUND else 422
    return JSONResponse(jsonable_encoder(result), status_code=status_code)


def _command(
    action: ScheduleAction,
    payload: ScheduleChangeRequest,
    schedule_id: Optional[str] = None,
) -> ScheduleCommand:
    return ScheduleCommand(
        action=action,
        schedule_id=schedule_id,
        project_id=payload.projectId,
        bay_id=payload.bayId,
        start_date=payload.startDate,
        end_date=payload.endDate,
        total_hours=payload.totalHours,
        row=payload.row,
    )


def create_app(
    database_path: str = "bay_capacity.sqlite3", *, demo_data: bool = True
) -> FastAPI:
    database = PlanningDatabase(database_path)
    service = CapacityPlanningService(
        project_repo=database.projects,
        bay_repo=database.bays,
        schedule_repo=database.schedules,
    )
    if demo_data:
        ensure_demo_data(service)

    app = FastAPI(title="Manufacturing Bay Capacity")
    app.state.planning_service = service
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - framework hook
        database.close()

    @app.get("/snapshot")
    async def snapshot(request: Request):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.snapshot()

    @app.get("/bays/{bay_id}/lanes")
    async def bay_lanes(bay_id: str, request: Request):
        service: CapacityPlanningService = request.app.state.planning_service
        if bay_id not in service.bays:
            raise HTTPException(status_code=404, detail=f"Bay {bay_id!r} not found")
        return service.bay_lanes(bay_id)

    @app.get("/utilization/weekly")
    async def weekly_utilization(
        request: Request,
        start: Optional[date] = None,
        weeks: Optional[int] = None,
    ):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.weekly_utilization(window_start=start, weeks=weeks)

    @app.get("/utilization/teams/{team}")
    async def team_utilization(team: str, request: Request, week: Optional[date] = None):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.team_utilization(team, week_start=week)

    @app.get("/forecast/monthly")
    async def monthly_forecast(
        request: Request,
        months: Optional[int] = None,
        today: Optional[date] = None,
    ):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.monthly_forecast(months=months, today=today)

    @app.get("/forecast/availability")
    async def availability(request: Request, today: Optional[date] = None):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.bay_availability(today=today)

    @app.get("/forecast/capacity")
    async def capacity(
        request: Request,
        weeks: Optional[int] = None,
        start: Optional[date] = None,
    ):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.capacity_outlook(weeks=weeks, window_start=start)

    @app.get("/variance")
    async def variance(request: Request, status: Optional[ProjectStatus] = None):
        service: CapacityPlanningService = request.app.state.planning_service
        statuses = [status] if status is not None else None
        return service.variance_report(statuses=statuses)

    @app.post("/import")
    async def import_records(payload: ImportRequest, request: Request):
        service: CapacityPlanningService = request.app.state.planning_service
        return service.import_records(
            projects=payload.projects, bays=payload.bays, schedules=payload.schedules
        )

    @app.post("/schedules")
    async def create_schedule(payload: ScheduleChangeRequest, request: Request):
        service: CapacityPlanningService = request.app.state.planning_service
        result = service.submit_schedule_change(_command(ScheduleAction.CREATE, payload))
        return _result_response(result, success_status=201)

    @app.put("/schedules/{schedule_id}")
    async def update_schedule(
        schedule_id: str, payload: ScheduleChangeRequest, request: Request
    ):
        service: CapacityPlanningService = request.app.state.planning_service
        result = service.submit_schedule_change(
            _command(ScheduleAction.UPDATE, payload, schedule_id)
        )
        return _result_response(result)

    @app.delete("/schedules/{schedule_id}")
    async def delete_schedule(schedule_id: str, request: Request):
        service: CapacityPlanningService = request.app.state.planning_service
        result = service.submit_schedule_change(
            ScheduleCommand(action=ScheduleAction.DELETE, schedule_id=schedule_id)
        )
        return _result_response(result)

    return app


def ensure_demo_data(service: CapacityPlanningService) -> None:
    """Seed two teams of bays and a handful of overlapping schedules."""

    if len(service.bays) or len(service.projects):
        return

    today = date.today()
    monday = today - timedelta(days=today.weekday())

    bay_one = service.register_bay(
        "Bay 1", staff_count=4, team="Chavez", bay_number=1
    )
    bay_two = service.register_bay(
        "Bay 2", staff_count=3, team="Chavez", bay_number=2
    )
    bay_three = service.register_bay(
        "Bay 3", staff_count=5, team="Selma", bay_number=3
    )
    service.register_bay("Libby 1", staff_count=2, team="LIBBY", bay_number=9)

    first = service.register_project(
        "804512",
        name="Mobile Command Unit",
        total_hours=1200,
        original_plan_dates={
            Milestone.PRODUCTION: monday - timedelta(days=14),
            Milestone.DELIVERY: monday + timedelta(days=70),
        },
        milestone_dates={Milestone.PRODUCTION: monday - timedelta(days=10)},
    )
    second = service.register_project(
        "804518",
        name="Medical Response Trailer",
        total_hours=900,
        phase_percentages={
            ManufacturingPhase.FABRICATION: 20,
            ManufacturingPhase.PAINT: 10,
            ManufacturingPhase.PRODUCTION: 50,
            ManufacturingPhase.IT: 10,
            ManufacturingPhase.NTC: 5,
            ManufacturingPhase.QC: 5,
        },
        original_plan_dates={Milestone.PAINT: monday - timedelta(days=7)},
        milestone_dates={Milestone.PAINT: monday - timedelta(days=7)},
    )
    third = service.register_project("804530", name="Bomb Squad Vehicle", total_hours=700)

    commands = [
        (first.id, bay_one.id, monday - timedelta(days=21), monday + timedelta(days=48)),
        (second.id, bay_one.id, monday + timedelta(days=14), monday + timedelta(days=69)),
        (third.id, bay_two.id, monday, monday + timedelta(days=41)),
        (second.id, bay_three.id, monday + timedelta(days=28), monday + timedelta(days=90)),
    ]
    for project_id, bay_id, start, end in commands:
        result = service.submit_schedule_change(
            ScheduleCommand(
                action=ScheduleAction.CREATE,
                project_id=project_id,
                bay_id=bay_id,
                start_date=start,
                end_date=end,
            )
        )
        if not result.ok:
            raise RuntimeError(result.error.message)


__all__ = ["create_app", "ensure_demo_data", "ImportRequest", "ScheduleChangeRequest"]
