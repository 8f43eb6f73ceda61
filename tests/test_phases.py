"""Tests for the phase-weighted split of schedule hours."""

import math
from datetime import date

import pytest

from bay_capacity.domain import ManufacturingPhase, PHASE_ORDER, Project
from bay_capacity.phases import (
    phase_hours_in_range,
    resolve_phase_windows,
    schedule_hours,
)

from .conftest import make_schedule


class TestResolvePhaseWindows:
    """Layout of phase windows over a schedule span."""

    def test_windows_follow_fixed_phase_order(self, even_project, scenario_schedule):
        windows = resolve_phase_windows(scenario_schedule, even_project)
        assert [window.phase for window in windows] == list(PHASE_ORDER)

    def test_hours_follow_percentages(self, even_project, scenario_schedule):
        windows = resolve_phase_windows(scenario_schedule, even_project)
        hours = {window.phase: window.hours for window in windows}
        assert hours[ManufacturingPhase.FABRICATION] == pytest.approx(28.0)
        assert hours[ManufacturingPhase.PRODUCTION] == pytest.approx(70.0)
        assert hours[ManufacturingPhase.QC] == pytest.approx(7.0)
        assert sum(hours.values()) == pytest.approx(140.0)

    def test_windows_are_sequential(self, even_project, scenario_schedule):
        windows = resolve_phase_windows(scenario_schedule, even_project)
        for previous, current in zip(windows, windows[1:]):
            assert current.start_offset_days == pytest.approx(
                previous.start_offset_days + previous.duration_days
            )
        assert windows[0].window_start == date(2025, 1, 6)
        assert windows[-1].window_end == date(2025, 1, 19)

    def test_default_percentages_are_not_normalized(self, scenario_schedule):
        project = Project(id="p1", project_number="1", total_hours=100)
        windows = resolve_phase_windows(scenario_schedule, project)
        assert sum(window.hours for window in windows) == pytest.approx(161.0)
        last = windows[-1]
        assert last.start_offset_days + last.duration_days == pytest.approx(14 * 1.15)
        assert last.window_end > scenario_schedule.end_date

    def test_zero_weight_phase_is_skipped(self, scenario_schedule):
        project = Project(
            id="p1",
            project_number="1",
            phase_percentages={ManufacturingPhase.PAINT: 0.0},
        )
        windows = resolve_phase_windows(scenario_schedule, project)
        assert ManufacturingPhase.PAINT not in {window.phase for window in windows}

    def test_single_day_schedule(self, even_project):
        schedule = make_schedule("s", date(2025, 3, 3), date(2025, 3, 3), total_hours=10)
        windows = resolve_phase_windows(schedule, even_project)
        assert all(window.window_start == date(2025, 3, 3) for window in windows)
        assert sum(window.hours for window in windows) == pytest.approx(10.0)

    def test_oversized_percentage_stops_at_last_calendar_day(self, scenario_schedule):
        project = Project(
            id="p1",
            project_number="1",
            total_hours=140,
            phase_percentages={ManufacturingPhase.PRODUCTION: 1e9},
        )
        windows = resolve_phase_windows(scenario_schedule, project)
        assert [window.phase for window in windows] == list(PHASE_ORDER)
        assert all(window.window_end <= date.max for window in windows)
        assert windows[-1].window_start == date.max
        assert all(math.isfinite(window.hours) for window in windows)
        week = phase_hours_in_range(windows[-1], date(2025, 1, 6), date(2025, 1, 12))
        assert week == 0.0


class TestScheduleHours:
    def test_schedule_budget_wins(self, even_project, scenario_schedule):
        assert schedule_hours(scenario_schedule, even_project) == 140

    def test_falls_back_to_project(self, even_project):
        schedule = make_schedule("s", date(2025, 1, 6), date(2025, 1, 7))
        assert schedule_hours(schedule, even_project) == 140

    def test_missing_everywhere_is_zero(self):
        schedule = make_schedule("s", date(2025, 1, 6), date(2025, 1, 7))
        assert schedule_hours(schedule, None) == 0.0


class TestPhaseHoursInRange:
    def test_full_range_returns_all_hours(self, even_project, scenario_schedule):
        for window in resolve_phase_windows(scenario_schedule, even_project):
            assert phase_hours_in_range(
                window, date(2025, 1, 1), date(2025, 1, 31)
            ) == pytest.approx(window.hours)

    def test_production_split_across_weeks(self, even_project, scenario_schedule):
        production = next(
            window
            for window in resolve_phase_windows(scenario_schedule, even_project)
            if window.phase == ManufacturingPhase.PRODUCTION
        )
        first = phase_hours_in_range(production, date(2025, 1, 6), date(2025, 1, 12))
        second = phase_hours_in_range(production, date(2025, 1, 13), date(2025, 1, 19))
        assert first == pytest.approx(28.0)
        assert second == pytest.approx(42.0)

    def test_disjoint_range_is_zero(self, even_project, scenario_schedule):
        window = resolve_phase_windows(scenario_schedule, even_project)[0]
        assert phase_hours_in_range(window, date(2025, 2, 1), date(2025, 2, 7)) == 0.0
        assert phase_hours_in_range(window, date(2025, 1, 10), date(2025, 1, 9)) == 0.0
