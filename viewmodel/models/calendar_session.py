"""Calendar page session wiring the view-model pipeline together.

Raw appointments flow through the timezone normalizer, the filter, and the
per-day index before being laid onto the date grid. Each stage is a pure
function; this module owns the caching, recomputing a stage only when one of
its inputs changed since the previous render.
"""
from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable

from viewmodel.models.appointment_filter import (
    ViewScope,
    clinic_options,
    filter_appointments,
    has_active_filters,
)
from viewmodel.models.appointment_index import AppointmentIndex, date_key
from viewmodel.models.appointments import (
    APPOINTMENT_STATUSES,
    UTC_LABEL,
    Appointment,
    Practitioner,
)
from viewmodel.models.date_grid import (
    LIST_LIMIT,
    MAX_VISIBLE,
    CalendarCell,
    ViewMode,
    build_cells,
    build_grid,
    list_view,
    view_title,
)
from viewmodel.models.navigation import KeyboardBinding, KeyEvent, NavigationController
from viewmodel.models.palette import DEFAULT_PALETTE, StylePalette
from viewmodel.models.timezones import DisplayZone, TimezoneNormalizer
from viewmodel.models.view_state import ViewState

_MISSING = object()


class _Derivation:
    """Single-entry cache keyed on the identity of its inputs.

    A reloaded snapshot is always a new object, so it always recomputes even
    when its records compare equal to the previous ones.
    """

    def __init__(self, compute: Callable[..., Any]) -> None:
        self._compute = compute
        self._inputs: Any = _MISSING
        self._value: Any = None
        self.computations = 0

    def get(self, *inputs: Any) -> Any:
        if self._inputs is _MISSING or not _same_inputs(self._inputs, inputs):
            self._value = self._compute(*inputs)
            self._inputs = inputs
            self.computations += 1
        return self._value


def _same_inputs(previous: tuple, current: tuple) -> bool:
    if len(previous) != len(current):
        return False
    return all(old is new for old, new in zip(previous, current))


class CalendarSession:
    """One open calendar page: its data snapshot, UI state, and shortcuts."""

    def __init__(
        self,
        *,
        scope: ViewScope,
        reference_date: date,
        appointments: Iterable[Appointment] = (),
        practitioners: Iterable[Practitioner] = (),
        viewer_timezone: str = UTC_LABEL,
        tenant_timezone: str = UTC_LABEL,
        view_mode: ViewMode = ViewMode.MONTH,
        palette: StylePalette = DEFAULT_PALETTE,
        today: Callable[[], date] = date.today,
        list_limit: int = LIST_LIMIT,
    ) -> None:
        self.scope = scope
        self.palette = palette
        self.list_limit = list_limit
        self._today = today
        self.navigation = NavigationController(reference_date, view_mode, today=today)
        self.state = ViewState(navigation=self.navigation)
        self.keyboard = KeyboardBinding(self.navigation)
        self.keyboard.attach()
        self._torn_down = False

        self._normalizer = TimezoneNormalizer(
            scope, viewer_timezone=viewer_timezone, tenant_timezone=tenant_timezone
        )
        self._appointments: tuple[Appointment, ...] = tuple(appointments)
        self._practitioners: tuple[Practitioner, ...] = tuple(practitioners)

        self._normalized = _Derivation(self._normalizer.normalize_all)
        self._filtered = _Derivation(
            lambda normalized, criteria, practitioners: filter_appointments(
                normalized, criteria, practitioners, scope
            )
        )
        self._index = _Derivation(AppointmentIndex.from_appointments)
        self._grid = _Derivation(build_grid)

    @classmethod
    def from_page_props(
        cls,
        props: dict[str, Any],
        *,
        viewer_timezone: str = UTC_LABEL,
        tenant_timezone: str = UTC_LABEL,
        reference_date: date | None = None,
        **kwargs: Any,
    ) -> "CalendarSession":
        """Build a session from the page-load payload of either calendar."""

        scope = ViewScope.CENTRAL if props.get("isCentral") else ViewScope.TENANT
        current = reference_date or date.fromisoformat(props["currentDate"])
        return cls(
            scope=scope,
            reference_date=current,
            appointments=[Appointment.from_payload(item) for item in props.get("appointments") or []],
            practitioners=[
                Practitioner.from_payload(item) for item in props.get("practitioners") or []
            ],
            viewer_timezone=viewer_timezone,
            tenant_timezone=tenant_timezone,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Data snapshot
    # ------------------------------------------------------------------
    def load(
        self,
        appointments: Iterable[Appointment],
        practitioners: Iterable[Practitioner] | None = None,
    ) -> None:
        """Replace the appointment snapshot; the most recent call wins."""

        self._appointments = tuple(appointments)
        if practitioners is not None:
            self._practitioners = tuple(practitioners)

    @property
    def appointments(self) -> tuple[Appointment, ...]:
        return self._appointments

    @property
    def practitioners(self) -> tuple[Practitioner, ...]:
        return self._practitioners

    @property
    def display_zone(self) -> DisplayZone:
        return self._normalizer.display_zone

    @property
    def computations(self) -> dict[str, int]:
        return {
            "normalized": self._normalized.computations,
            "filtered": self._filtered.computations,
            "index": self._index.computations,
            "grid": self._grid.computations,
        }

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------
    def normalized_appointments(self) -> list[Appointment]:
        return self._normalized.get(self._appointments)

    def visible_appointments(self) -> list[Appointment]:
        return self._filtered.get(
            self.normalized_appointments(), self.state.applied, self._practitioners
        )

    def index(self) -> AppointmentIndex:
        return self._index.get(self.visible_appointments())

    def grid(self) -> list[date]:
        return self._grid.get(self.navigation.reference_date, self.navigation.view_mode)

    def appointments_for(self, day: date) -> list[Appointment]:
        return self.index().lookup(day)

    def cells(self) -> list[CalendarCell]:
        return build_cells(
            self.grid(), self.navigation.reference_date, self._today(), self.index()
        )

    # ------------------------------------------------------------------
    # Dialogs and keyboard shortcuts
    # ------------------------------------------------------------------
    def handle_key(self, event: KeyEvent) -> bool:
        return self.keyboard.dispatch(event)

    def open_appointment(self, appointment: Appointment) -> None:
        self.state.select_appointment(appointment)
        self.keyboard.detach()

    def close_appointment(self) -> None:
        self.state.close_appointment()
        self._restore_keyboard()

    def send_invitations(self) -> list[str]:
        recipients = self.state.send_invitations()
        self._restore_keyboard()
        return recipients

    def open_day(self, day: date) -> list[Appointment]:
        self.state.open_day(day)
        return self.appointments_for(day)

    def teardown(self) -> None:
        self.keyboard.detach()
        self._torn_down = True

    def _restore_keyboard(self) -> None:
        if not self._torn_down and not self.state.appointment_open:
            self.keyboard.attach()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self) -> dict[str, Any]:
        """Return a JSON-ready description of the current calendar view."""

        zone = self.display_zone
        mode = self.navigation.view_mode
        reference = self.navigation.reference_date
        today = self._today()
        visible = self.visible_appointments()
        applied = self.state.applied

        payload: dict[str, Any] = {
            "title": view_title(reference, mode),
            "mode": mode.value,
            "reference_date": reference.isoformat(),
            "is_central": self.scope is ViewScope.CENTRAL,
            "display_timezone": {"name": zone.name, "abbreviation": zone.abbreviation},
            "filters": {
                "clinic": applied.clinic,
                "status": applied.status,
                "practitioner_ids": sorted(applied.practitioner_ids),
            },
            "clinic_options": clinic_options(self._appointments),
            "status_options": list(APPOINTMENT_STATUSES),
            "practitioners": [
                {"id": practitioner.id, "name": practitioner.name}
                for practitioner in self._practitioners
            ],
            "cells": [],
            "appointments": [],
            "empty": not visible,
            "empty_message": "No appointments found" if not visible else None,
        }

        if mode is ViewMode.LIST:
            payload["appointments"] = [
                self._entry(appointment, zone) for appointment in list_view(visible, self.list_limit)
            ]
        else:
            limit = MAX_VISIBLE[mode]
            payload["cells"] = [self._cell(cell, limit, zone) for cell in self.cells()]

        todays = self.appointments_for(today)
        if todays:
            today_message = None
        elif has_active_filters(applied):
            today_message = "No appointments match your filters today"
        else:
            today_message = "No appointments today"
        payload["today"] = {
            "date": today.isoformat(),
            "appointments": [self._entry(appointment, zone) for appointment in todays],
            "empty_message": today_message,
        }
        return payload

    def _cell(self, cell: CalendarCell, limit: int, zone: DisplayZone) -> dict[str, Any]:
        return {
            "date": date_key(cell.date),
            "in_current_month": cell.in_current_month,
            "is_today": cell.is_today,
            "count": len(cell.appointments),
            "appointments": [self._entry(appointment, zone) for appointment in cell.visible(limit)],
            "overflow": cell.overflow(limit),
        }

    def _entry(self, appointment: Appointment, zone: DisplayZone) -> dict[str, Any]:
        clinic_style = self.palette.clinic_style(appointment.clinic)
        entry = appointment.to_payload()
        entry["timezone_abbreviation"] = zone.abbreviation
        entry["style"] = {
            "clinic": {
                "bg": clinic_style.bg,
                "border": clinic_style.border,
                "text": clinic_style.text,
                "dot": clinic_style.dot,
            },
            "status": self.palette.status_style(appointment.status),
            "type": self.palette.type_style(appointment.type),
        }
        return entry

