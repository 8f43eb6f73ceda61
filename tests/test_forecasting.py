"""Tests for monthly forecasts, bay availability and the capacity outlook."""

from datetime import date, timedelta

import pytest
from hypothesis import given, settings, strategies as st

from bay_capacity.domain import ManufacturingBay, Project
from bay_capacity.forecasting import (
    add_months,
    bay_availability,
    capacity_forecast,
    clamp_months,
    forecast_bay_utilization,
    month_week_ranges,
    next_available_bays,
    weeks_in_month,
)
from bay_capacity.repository import PlanningSnapshot

from .conftest import EVEN_SPLIT, make_schedule

OUTLOOK_PROJECT = Project(
    id="p1", project_number="804601", total_hours=140, phase_percentages=dict(EVEN_SPLIT)
)
OUTLOOK_BAY = ManufacturingBay(id="bay-a", name="Bay A", staff_count=2, team="Chavez")


@st.composite
def outlook_schedules(draw):
    """Generate overlapping schedules with arbitrary hour totals on one bay."""
    count = draw(st.integers(min_value=0, max_value=12))
    schedules = []
    for index in range(count):
        start = date(2025, 1, 1) + timedelta(days=draw(st.integers(min_value=0, max_value=60)))
        end = start + timedelta(days=draw(st.integers(min_value=0, max_value=40)))
        hours = draw(st.floats(min_value=0, max_value=600, allow_nan=False))
        schedules.append(make_schedule(f"s{index}", start, end, total_hours=hours))
    return schedules


@pytest.fixture
def libby_bay():
    return ManufacturingBay(id="bay-l", name="Libby 1", staff_count=4, team="LIBBY")


@pytest.fixture
def idle_bay():
    return ManufacturingBay(id="bay-b", name="Bay B", staff_count=2, team="Selma")


class TestMonthHelpers:
    def test_add_months_returns_first_of_month(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 1)
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 1)
        assert add_months(date(2025, 3, 1), -3) == date(2024, 12, 1)

    def test_weeks_in_month(self):
        assert weeks_in_month(date(2025, 1, 1)) == 5
        assert weeks_in_month(date(2026, 2, 1)) == 4
        assert weeks_in_month(date(2024, 2, 1)) == 5

    def test_last_month_week_is_cut_at_month_end(self):
        ranges = month_week_ranges(date(2025, 1, 1))
        assert ranges[0] == (date(2025, 1, 1), date(2025, 1, 7))
        assert ranges[-1] == (date(2025, 1, 29), date(2025, 1, 31))
        assert month_week_ranges(date(2026, 2, 1))[-1] == (date(2026, 2, 22), date(2026, 2, 28))

    @pytest.mark.parametrize(
        "requested, expected", [(0, 1), (-4, 1), (1, 1), (6, 6), (24, 24), (30, 24)]
    )
    def test_clamp_months(self, requested, expected):
        assert clamp_months(requested) == expected


class TestForecastBayUtilization:
    """Monthly averages of projected weekly utilization."""

    def test_horizon_starts_with_current_month(self, even_project, bay_a, scenario_schedule):
        snapshot = PlanningSnapshot.of([even_project], [bay_a], [scenario_schedule])
        forecast = forecast_bay_utilization(snapshot, 3, date(2025, 1, 15))
        assert [month.label for month in forecast] == ["2025-01", "2025-02", "2025-03"]
        assert forecast[0].month == date(2025, 1, 1)

    @pytest.mark.parametrize("months, expected", [(0, 1), (30, 24)])
    def test_horizon_is_clamped(self, bay_a, months, expected):
        snapshot = PlanningSnapshot.of([], [bay_a], [])
        assert len(forecast_bay_utilization(snapshot, months, date(2025, 1, 15))) == expected

    def test_idle_bays_do_not_dilute_average(
        self, even_project, bay_a, idle_bay, libby_bay, scenario_schedule
    ):
        snapshot = PlanningSnapshot.of(
            [even_project], [bay_a, idle_bay, libby_bay], [scenario_schedule]
        )
        (january,) = forecast_bay_utilization(snapshot, 1, date(2025, 1, 15))
        per_bay = {entry.bay_id: entry for entry in january.per_bay_utilization}
        assert set(per_bay) == {"bay-a", "bay-b"}
        # 140 hours on an 80 hour bay spread over five forecast weeks
        assert per_bay["bay-a"].utilization_percentage == pytest.approx(35.0)
        assert per_bay["bay-a"].week_count == 5
        assert per_bay["bay-a"].project_count == 1
        assert per_bay["bay-b"].utilization_percentage == 0.0
        assert per_bay["bay-b"].project_count == 0
        assert january.average_utilization == pytest.approx(35.0)

    def test_next_month_schedule_does_not_leak_into_current_month(self, even_project, bay_a):
        schedule = make_schedule(
            "feb", date(2025, 2, 1), date(2025, 2, 28), total_hours=280
        )
        snapshot = PlanningSnapshot.of([even_project], [bay_a], [schedule])
        january, february = forecast_bay_utilization(snapshot, 2, date(2025, 1, 15))
        (january_bay,) = january.per_bay_utilization
        assert january_bay.project_count == 0
        assert january_bay.utilization_percentage == 0.0
        assert january.average_utilization == 0.0
        (february_bay,) = february.per_bay_utilization
        assert february_bay.project_count == 1
        assert february_bay.week_count == 4

    def test_short_last_week_uses_prorated_capacity(self, even_project, bay_a):
        schedule = make_schedule(
            "edge", date(2025, 1, 29), date(2025, 2, 4), total_hours=70
        )
        snapshot = PlanningSnapshot.of([even_project], [bay_a], [schedule])
        january, february = forecast_bay_utilization(snapshot, 2, date(2025, 1, 15))
        (january_bay,) = january.per_bay_utilization
        (february_bay,) = february.per_bay_utilization
        # 30 hours against three days of an 80 hour week
        assert january_bay.utilization_percentage == pytest.approx(87.5 / 5)
        # 40 hours in the first February week, nothing after
        assert february_bay.utilization_percentage == pytest.approx(50.0 / 4)
        assert january_bay.project_count == february_bay.project_count == 1

    def test_empty_month_averages_to_zero(self, bay_a):
        snapshot = PlanningSnapshot.of([], [bay_a], [])
        (month,) = forecast_bay_utilization(snapshot, 1, date(2025, 6, 3))
        assert month.average_utilization == 0.0


class TestBayAvailability:
    def test_free_bay_is_available_today(self, bay_a):
        result = bay_availability(bay_a, [], date(2025, 1, 10))
        assert result.next_available_date == date(2025, 1, 10)
        assert result.days_until_free == 0
        assert result.current_project_id is None

    def test_occupied_bay_frees_after_current_schedule(self, bay_a, scenario_schedule):
        result = bay_availability(bay_a, [scenario_schedule], date(2025, 1, 10))
        assert result.next_available_date == date(2025, 1, 19)
        assert result.days_until_free == 9
        assert result.current_project_id == "p1"
        assert result.current_schedule_id == "s1"

    def test_earliest_ending_active_schedule_wins(self, bay_a):
        schedules = [
            make_schedule("long", date(2025, 1, 1), date(2025, 2, 28), project_id="p2"),
            make_schedule("short", date(2025, 1, 5), date(2025, 1, 20)),
        ]
        result = bay_availability(bay_a, schedules, date(2025, 1, 10))
        assert result.current_schedule_id == "short"
        assert result.days_until_free == 10

    def test_future_and_past_schedules_do_not_block(self, bay_a):
        schedules = [
            make_schedule("past", date(2024, 12, 1), date(2024, 12, 20)),
            make_schedule("future", date(2025, 2, 1), date(2025, 2, 20)),
        ]
        result = bay_availability(bay_a, schedules, date(2025, 1, 10))
        assert result.days_until_free == 0

    def test_next_available_bays_keeps_bay_order(self, bay_a, idle_bay, scenario_schedule):
        snapshot = PlanningSnapshot.of([], [idle_bay, bay_a], [scenario_schedule])
        result = next_available_bays(snapshot, date(2025, 1, 10))
        assert [entry.bay_id for entry in result] == ["bay-b", "bay-a"]
        assert [entry.days_until_free for entry in result] == [0, 9]


class TestCapacityForecast:
    """Flat-allowance outlook clamped to 0..100."""

    def test_total_capacity_uses_counted_bays(self, bay_a, idle_bay, libby_bay):
        snapshot = PlanningSnapshot.of([], [bay_a, idle_bay, libby_bay], [])
        outlook = capacity_forecast(snapshot, window_start=date(2025, 1, 6))
        assert len(outlook) == 12
        assert all(week.total_capacity == 80.0 for week in outlook)
        assert all(week.utilization == 0.0 for week in outlook)

    def test_utilization_is_clamped(self, even_project, bay_a, scenario_schedule):
        snapshot = PlanningSnapshot.of([even_project], [bay_a], [scenario_schedule])
        first, second, third = capacity_forecast(snapshot, 3, date(2025, 1, 6))
        assert first.used_capacity == pytest.approx(70.0)
        assert first.utilization == 100.0
        assert first.available_capacity == 0.0
        assert second.utilization == 100.0
        assert third.used_capacity == 0.0
        assert third.available_capacity == 40.0

    def test_partial_overlap_is_prorated(self, even_project, bay_a, idle_bay, scenario_schedule):
        snapshot = PlanningSnapshot.of([even_project], [bay_a, idle_bay], [scenario_schedule])
        (week,) = capacity_forecast(snapshot, 1, date(2025, 1, 16))
        # four of fourteen days fall in the week
        assert week.used_capacity == pytest.approx(40.0)
        assert week.utilization == pytest.approx(50.0)

    def test_excluded_team_schedules_are_ignored(self, even_project, bay_a, libby_bay):
        schedule = make_schedule(
            "s9", date(2025, 1, 6), date(2025, 1, 12), bay_id="bay-l", total_hours=35
        )
        snapshot = PlanningSnapshot.of([even_project], [bay_a, libby_bay], [schedule])
        (week,) = capacity_forecast(snapshot, 1, date(2025, 1, 6))
        assert week.used_capacity == 0.0

    @given(outlook_schedules())
    @settings(max_examples=100, deadline=None)
    def test_utilization_stays_in_bounds(self, schedules):
        snapshot = PlanningSnapshot.of([OUTLOOK_PROJECT], [OUTLOOK_BAY], schedules)
        for week in capacity_forecast(snapshot, 12, date(2025, 1, 6)):
            assert 0.0 <= week.utilization <= 100.0
            assert week.available_capacity >= 0.0
