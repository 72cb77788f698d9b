from __future__ import annotations

from datetime import date, datetime

from planner.domain.calendar import (
    add_months,
    frequency_label,
    month_grid,
    start_of_day,
    start_of_week,
    week_days,
    weekday_index,
)


def test_start_of_week_on_sunday_returns_monday_six_days_before() -> None:
    assert start_of_week(date(2026, 3, 8)) == date(2026, 3, 2)


def test_start_of_week_midweek_and_monday() -> None:
    assert start_of_week(date(2026, 3, 4)) == date(2026, 3, 2)
    assert start_of_week(date(2026, 3, 2)) == date(2026, 3, 2)


def test_start_of_week_drops_time_of_day() -> None:
    assert start_of_week(datetime(2026, 3, 5, 23, 59, 59)) == date(2026, 3, 2)


def test_start_of_day_drops_time() -> None:
    assert start_of_day(datetime(2026, 3, 5, 13, 45)) == date(2026, 3, 5)


def test_weekday_index_is_sunday_based() -> None:
    assert weekday_index(date(2026, 3, 1)) == 0
    assert weekday_index(date(2026, 3, 2)) == 1
    assert weekday_index(date(2026, 3, 7)) == 6


def test_month_grid_has_42_days_starting_on_monday() -> None:
    grid = month_grid(date(2026, 3, 15))

    assert len(grid) == 42
    assert grid[0].date == date(2026, 2, 23)
    assert grid[-1].date == date(2026, 4, 5)


def test_month_grid_flags_current_month_boundary() -> None:
    grid = month_grid(date(2026, 3, 15))
    current = [cell.date for cell in grid if cell.is_current_month]

    assert current[0] == date(2026, 3, 1)
    assert current[-1] == date(2026, 3, 31)
    assert len(current) == 31
    assert not grid[5].is_current_month
    assert grid[6].is_current_month


def test_month_grid_for_month_starting_on_monday() -> None:
    grid = month_grid(date(2026, 6, 1))

    assert grid[0].date == date(2026, 6, 1)
    assert grid[0].is_current_month
    assert sum(cell.is_current_month for cell in grid) == 30


def test_week_days_cover_monday_to_sunday() -> None:
    days = week_days(date(2026, 3, 8))

    assert days[0] == date(2026, 3, 2)
    assert days[-1] == date(2026, 3, 8)


def test_add_months_clamps_day() -> None:
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 12, 15), 1) == date(2027, 1, 15)
    assert add_months(date(2026, 1, 15), -1) == date(2025, 12, 15)


def test_frequency_label() -> None:
    assert frequency_label(range(7)) == "Daily"
    assert frequency_label([0, 3, 1]) == "Mon, Wed, Sun"
