"""Unit tests for calendar date grids and cell construction."""
from __future__ import annotations

from datetime import date, timedelta
import unittest

from viewmodel.models.appointment_index import AppointmentIndex
from viewmodel.models.appointments import Appointment
from viewmodel.models.date_grid import (
    GRID_SIZE,
    MAX_VISIBLE,
    ViewMode,
    build_cells,
    build_grid,
    list_view,
    view_title,
    weekday_index,
)


def _appointment(appointment_id: int, day: str = "2024-03-10") -> Appointment:
    return Appointment(
        id=appointment_id,
        title="Checkup",
        date=day,
        time="09:00",
        duration=30,
        patient="Ana Lima",
        practitioner="Dr. Smith",
        type="Follow-up",
        status="confirmed",
        location="Room 1",
        clinic="Clinic A",
    )


class MonthGridTestCase(unittest.TestCase):
    """Month grids always span six full weeks starting on Sunday."""

    def test_every_month_has_42_cells(self) -> None:
        for year in (2023, 2024):
            for month in range(1, 13):
                with self.subTest(year=year, month=month):
                    self.assertEqual(len(build_grid(date(year, month, 15), ViewMode.MONTH)), GRID_SIZE)

    def test_march_2024_layout(self) -> None:
        grid = build_grid(date(2024, 3, 10), ViewMode.MONTH)

        # 1 March 2024 is a Friday, so five February days lead the grid.
        self.assertEqual(grid[0], date(2024, 2, 25))
        self.assertEqual(grid[5], date(2024, 3, 1))
        self.assertEqual(grid[35], date(2024, 3, 31))
        self.assertEqual(grid[-1], date(2024, 4, 6))
        self.assertEqual(weekday_index(grid[0]), 0)

    def test_month_starting_on_sunday_has_no_leading_days(self) -> None:
        grid = build_grid(date(2024, 9, 30), ViewMode.MONTH)

        self.assertEqual(grid[0], date(2024, 9, 1))
        self.assertEqual(len(grid), GRID_SIZE)

    def test_dates_are_consecutive(self) -> None:
        grid = build_grid(date(2024, 2, 29), ViewMode.MONTH)

        for previous, current in zip(grid, grid[1:]):
            self.assertEqual(current - previous, timedelta(days=1))


class WeekAndDayGridTestCase(unittest.TestCase):
    def test_week_starts_on_the_sunday_on_or_before_reference(self) -> None:
        for offset in range(14):
            reference = date(2024, 3, 3) + timedelta(days=offset)
            with self.subTest(reference=reference):
                grid = build_grid(reference, ViewMode.WEEK)
                self.assertEqual(len(grid), 7)
                self.assertEqual(weekday_index(grid[0]), 0)
                self.assertLessEqual(grid[0], reference)
                self.assertIn(reference, grid)

    def test_day_grid_is_the_reference_date(self) -> None:
        self.assertEqual(build_grid(date(2024, 3, 10), ViewMode.DAY), [date(2024, 3, 10)])

    def test_list_mode_has_no_grid(self) -> None:
        self.assertEqual(build_grid(date(2024, 3, 10), ViewMode.LIST), [])

    def test_list_view_caps_entries(self) -> None:
        appointments = [_appointment(number) for number in range(60)]

        listed = list_view(appointments)

        self.assertEqual(len(listed), 50)
        self.assertEqual([item.id for item in listed], list(range(50)))


class CellTestCase(unittest.TestCase):
    def test_cells_carry_flags_and_indexed_appointments(self) -> None:
        index = AppointmentIndex.from_appointments(
            [_appointment(1, "2024-03-10"), _appointment(2, "2024-02-26")]
        )
        days = build_grid(date(2024, 3, 10), ViewMode.MONTH)

        cells = build_cells(days, date(2024, 3, 10), date(2024, 3, 12), index)

        by_date = {cell.date: cell for cell in cells}
        self.assertFalse(by_date[date(2024, 2, 26)].in_current_month)
        self.assertEqual([item.id for item in by_date[date(2024, 2, 26)].appointments], [2])
        self.assertTrue(by_date[date(2024, 3, 12)].is_today)
        self.assertEqual(sum(cell.is_today for cell in cells), 1)
        self.assertEqual([item.id for item in by_date[date(2024, 3, 10)].appointments], [1])

    def test_overflow_counts_hidden_appointments(self) -> None:
        index = AppointmentIndex.from_appointments([_appointment(number) for number in range(6)])
        (cell,) = build_cells([date(2024, 3, 10)], date(2024, 3, 10), date(2024, 3, 10), index)

        limit = MAX_VISIBLE[ViewMode.MONTH]
        self.assertEqual(len(cell.visible(limit)), 4)
        self.assertEqual(cell.overflow(limit), 2)
        self.assertEqual(cell.overflow(MAX_VISIBLE[ViewMode.DAY]), 0)


class ViewModeTestCase(unittest.TestCase):
    def test_titles(self) -> None:
        reference = date(2024, 3, 10)

        self.assertEqual(view_title(reference, ViewMode.MONTH), "March 2024")
        self.assertEqual(view_title(reference, ViewMode.WEEK), "Week of 03/10/2024")
        self.assertEqual(view_title(reference, ViewMode.DAY), "03/10/2024")
        self.assertEqual(view_title(reference, ViewMode.LIST), "All Appointments")

    def test_parse(self) -> None:
        self.assertIs(ViewMode.parse(None), ViewMode.MONTH)
        self.assertIs(ViewMode.parse("Week"), ViewMode.WEEK)
        with self.assertRaises(ValueError):
            ViewMode.parse("year")


if __name__ == "__main__":
    unittest.main()
