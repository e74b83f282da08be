"""Per-day grouping of appointments for constant time calendar lookups."""
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping

from viewmodel.models.appointments import Appointment


def date_key(day: date) -> str:
    """Format ``day`` as ``YYYY-MM-DD`` from its own calendar fields.

    A ``datetime`` is keyed by its local fields; it is never shifted to UTC.
    """

    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def index_appointments(appointments: Iterable[Appointment]) -> dict[str, list[Appointment]]:
    """Group appointments by their verbatim ``date`` string, preserving order."""

    grouped: dict[str, list[Appointment]] = defaultdict(list)
    for appointment in appointments:
        grouped[appointment.date].append(appointment)
    return dict(grouped)


class AppointmentIndex:
    """Read-only view over appointments grouped by calendar date."""

    def __init__(self, grouped: Mapping[str, list[Appointment]]) -> None:
        self._grouped = grouped

    @classmethod
    def from_appointments(cls, appointments: Iterable[Appointment]) -> "AppointmentIndex":
        return cls(index_appointments(appointments))

    def lookup(self, day: date) -> list[Appointment]:
        """Return the appointments on ``day``; empty when there are none."""

        return list(self._grouped.get(date_key(day), ()))

    def keys(self) -> list[str]:
        return list(self._grouped)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._grouped.values())
