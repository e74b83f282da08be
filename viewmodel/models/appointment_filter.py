"""Clinic, status, and practitioner filtering of calendar appointments."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Sequence

from viewmodel.models.appointments import Appointment, Practitioner

ALL = "all"
"""Sentinel filter value meaning the dimension is unconstrained."""


class ViewScope(str, Enum):
    """Whether the calendar spans tenants or a single tenant's portal."""

    CENTRAL = "central"
    TENANT = "tenant"


@dataclass(frozen=True)
class FilterCriteria:
    """Filter values chosen in the calendar filter panel."""

    clinic: str = ALL
    status: str = ALL
    practitioner_ids: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "clinic", self.clinic or ALL)
        object.__setattr__(self, "status", self.status or ALL)
        object.__setattr__(self, "practitioner_ids", frozenset(self.practitioner_ids))

    def with_clinic(self, clinic: str) -> "FilterCriteria":
        return replace(self, clinic=clinic)

    def with_status(self, status: str) -> "FilterCriteria":
        return replace(self, status=status)

    def with_practitioners(self, practitioner_ids: Iterable[int]) -> "FilterCriteria":
        return replace(self, practitioner_ids=frozenset(practitioner_ids))


def has_active_filters(criteria: FilterCriteria) -> bool:
    """Return whether the clinic or status dimension is constrained."""

    return criteria.clinic != ALL or criteria.status != ALL


def clinic_options(appointments: Iterable[Appointment]) -> list[str]:
    """Sorted unique clinic names for the clinic dropdown."""

    return sorted({appointment.clinic for appointment in appointments})


def filter_appointments(
    appointments: Sequence[Appointment],
    criteria: FilterCriteria,
    practitioners: Sequence[Practitioner] = (),
    scope: ViewScope = ViewScope.CENTRAL,
) -> list[Appointment]:
    """Return the appointments matching ``criteria`` in their original order.

    Practitioner selection only applies to tenant calendars. A selected
    practitioner matches when their display name occurs anywhere in the
    appointment's practitioner label, which may list several names.
    """

    selected_names: list[str] | None = None
    if scope is ViewScope.TENANT and criteria.practitioner_ids:
        names_by_id = {practitioner.id: practitioner.name for practitioner in practitioners}
        selected_names = [
            names_by_id[practitioner_id]
            for practitioner_id in criteria.practitioner_ids
            if practitioner_id in names_by_id
        ]

    visible: list[Appointment] = []
    for appointment in appointments:
        if criteria.clinic != ALL and appointment.clinic != criteria.clinic:
            continue
        if criteria.status != ALL and appointment.status != criteria.status:
            continue
        if selected_names is not None and not any(
            name in appointment.practitioner for name in selected_names
        ):
            continue
        visible.append(appointment)
    return visible
