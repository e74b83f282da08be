"""Date grid generation for the month, week, and day calendar views."""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Sequence

from viewmodel.models.appointments import Appointment

if TYPE_CHECKING:
    from viewmodel.models.appointment_index import AppointmentIndex

GRID_SIZE = 42
"""A month view always renders six rows of seven days."""

LIST_LIMIT = 50


class ViewMode(str, Enum):
    """Calendar presentation modes."""

    MONTH = "month"
    WEEK = "week"
    DAY = "day"
    LIST = "list"

    @classmethod
    def parse(cls, value: "str | ViewMode | None") -> "ViewMode":
        """Return the mode named by ``value``, defaulting to month."""

        if isinstance(value, ViewMode):
            return value
        if not value:
            return cls.MONTH
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(
                f"mode must be one of: {', '.join(mode.value for mode in cls)}."
            ) from exc


MAX_VISIBLE: dict[ViewMode, int] = {
    ViewMode.MONTH: 4,
    ViewMode.WEEK: 6,
    ViewMode.DAY: 10,
}


@dataclass(frozen=True)
class CalendarCell:
    """A single rendered day of the calendar."""

    date: date
    in_current_month: bool
    is_today: bool
    appointments: Sequence[Appointment] = field(default_factory=tuple)

    def visible(self, limit: int) -> list[Appointment]:
        return list(self.appointments[:limit])

    def overflow(self, limit: int) -> int:
        """Number of appointments hidden behind the "+N more" control."""

        return max(0, len(self.appointments) - limit)


def weekday_index(day: date) -> int:
    """Return the weekday with Sunday as 0."""

    return day.isoweekday() % 7


def month_grid(reference: date) -> list[date]:
    year, month = reference.year, reference.month
    first_day = date(year, month, 1)
    days_in_month = calendar.monthrange(year, month)[1]
    lead = weekday_index(first_day)

    days = [first_day - timedelta(days=lead - offset) for offset in range(lead)]
    days.extend(date(year, month, number) for number in range(1, days_in_month + 1))

    next_month = first_day + timedelta(days=days_in_month)
    remaining = GRID_SIZE - len(days)
    days.extend(next_month + timedelta(days=offset) for offset in range(remaining))
    return days


def week_grid(reference: date) -> list[date]:
    start = reference - timedelta(days=weekday_index(reference))
    return [start + timedelta(days=offset) for offset in range(7)]


def build_grid(reference: date, mode: ViewMode) -> list[date]:
    """Return the ordered dates to render for ``mode``.

    List mode has no date axis and yields an empty grid; use
    :func:`list_view` for its contents.
    """

    if mode is ViewMode.MONTH:
        return month_grid(reference)
    if mode is ViewMode.WEEK:
        return week_grid(reference)
    if mode is ViewMode.DAY:
        return [reference]
    return []


def list_view(appointments: Sequence[Appointment], limit: int = LIST_LIMIT) -> list[Appointment]:
    """Return the first ``limit`` appointments in their current order."""

    return list(appointments[:limit])


def build_cells(
    days: Sequence[date],
    reference: date,
    today: date,
    index: "AppointmentIndex",
) -> list[CalendarCell]:
    """Attach membership flags and indexed appointments to each grid date."""

    return [
        CalendarCell(
            date=day,
            in_current_month=day.month == reference.month,
            is_today=day == today,
            appointments=tuple(index.lookup(day)),
        )
        for day in days
    ]


def view_title(reference: date, mode: ViewMode) -> str:
    if mode is ViewMode.MONTH:
        return f"{calendar.month_name[reference.month]} {reference.year}"
    if mode is ViewMode.WEEK:
        return f"Week of {reference.strftime('%m/%d/%Y')}"
    if mode is ViewMode.DAY:
        return reference.strftime("%m/%d/%Y")
    return "All Appointments"
