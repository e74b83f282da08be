"""Build the page-load payloads consumed by the calendar view model."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError

from portal.app.models import Appointment, ExternalEvent, Practitioner, Tenant
from portal.app.services.timezone_service import as_utc, tenant_timezone, to_tenant_time

LOGGER = logging.getLogger(__name__)

EXTERNAL_EVENT_WINDOW_DAYS = 30


def _isoformat_utc(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")


def _duration_minutes(start: datetime, end: datetime | None) -> int | None:
    if end is None:
        return None
    return int((end - start).total_seconds() // 60)


def tenant_practitioner_options(tenant: Tenant) -> list[dict[str, Any]]:
    """Return the active practitioners of ``tenant`` for the filter panel."""

    practitioners = sorted(
        (practitioner for practitioner in tenant.practitioners if practitioner.is_active),
        key=lambda practitioner: practitioner.first_name,
    )
    return [
        {"id": practitioner.id, "name": f"{practitioner.first_name} {practitioner.last_name}"}
        for practitioner in practitioners
    ]


def _serialize_tenant_appointment(appointment: Appointment, zone_name: str, clinic: str) -> dict[str, Any]:
    start = to_tenant_time(appointment.start_time, zone_name)
    service = appointment.service
    names = []
    for practitioner in appointment.practitioners:
        name = practitioner.display_name
        if name and name not in names:
            names.append(name)
    patient = appointment.patient
    return {
        "id": appointment.id,
        "title": service.name if service else "Appointment",
        "date": start.strftime("%Y-%m-%d"),
        "time": start.strftime("%H:%M"),
        "duration": (service.default_duration_minutes if service else None) or 60,
        "patient": patient.display_name if patient else "Unknown Patient",
        "practitioner": ", ".join(names) or "Unknown Practitioner",
        "type": service.name if service else "General Consultation",
        "status": appointment.status,
        "location": appointment.location.name if appointment.location else "TBD",
        "clinic": clinic,
        "source": "clinic",
        "clickable": True,
        "mode": appointment.mode,
        "notes": appointment.notes,
    }


def tenant_calendar_props(tenant: Tenant, today: date) -> dict[str, Any]:
    """Page props of a tenant calendar; times are in the tenant's zone."""

    zone_name = tenant_timezone(tenant.timezone)
    clinic = tenant.company_name or "Clinic"
    appointments = (
        Appointment.query.filter_by(tenant_id=tenant.id)
        .order_by(Appointment.start_time.asc())
        .all()
    )
    return {
        "appointments": [
            _serialize_tenant_appointment(appointment, zone_name, clinic)
            for appointment in appointments
        ],
        "currentDate": today.isoformat(),
        "isCentral": False,
        "practitioners": tenant_practitioner_options(tenant),
        "timezone": zone_name,
    }


def _serialize_central_appointment(
    appointment: Appointment, practitioner: Practitioner, tenant: Tenant
) -> dict[str, Any]:
    start = as_utc(appointment.start_time)
    end = as_utc(appointment.end_time)
    service = appointment.service
    patient_name = appointment.patient.display_name if appointment.patient else "Unknown Patient"
    if appointment.location:
        location = appointment.location.name
    elif appointment.mode == "virtual":
        location = "Virtual"
    else:
        location = "Unknown Location"
    return {
        "id": appointment.id,
        "tenant_id": str(tenant.id),
        "title": f"{service.name if service else 'Appointment'} - {patient_name}",
        "date": start.strftime("%Y-%m-%d"),
        "time": start.strftime("%H:%M"),
        "duration": _duration_minutes(start, end),
        "patient": patient_name,
        "practitioner": practitioner.display_name,
        "type": service.name if service else "General Consultation",
        "status": appointment.status,
        "location": location,
        "clinic": tenant.company_name or "Unknown Clinic",
        "source": "clinic",
        "clickable": True,
        "mode": appointment.mode,
        "notes": appointment.notes,
        "timezone": "UTC",
        "utc_start_time": _isoformat_utc(start),
        "utc_end_time": _isoformat_utc(end),
    }


def _tenant_appointments_for(practitioner: Practitioner, tenant: Tenant) -> list[dict[str, Any]]:
    appointments = (
        Appointment.query.filter(
            Appointment.tenant_id == tenant.id,
            Appointment.practitioners.any(Practitioner.id == practitioner.id),
        )
        .order_by(Appointment.start_time.asc())
        .all()
    )
    return [
        _serialize_central_appointment(appointment, practitioner, tenant)
        for appointment in appointments
    ]


def is_duplicate_event(
    start: datetime,
    end: datetime,
    appointments: Iterable[dict[str, Any]],
    tolerance: timedelta,
) -> bool:
    """Return whether an external event mirrors a native appointment.

    Both the start and the end must fall within ``tolerance`` of the same
    appointment.
    """

    for appointment in appointments:
        native_start = appointment.get("utc_start_time")
        native_end = appointment.get("utc_end_time")
        if not native_start or not native_end:
            continue
        native_start_dt = datetime.fromisoformat(native_start.replace("Z", "+00:00"))
        native_end_dt = datetime.fromisoformat(native_end.replace("Z", "+00:00"))
        if abs(start - native_start_dt) <= tolerance and abs(end - native_end_dt) <= tolerance:
            return True
    return False


def _serialize_external_event(event: ExternalEvent, practitioner: Practitioner) -> dict[str, Any]:
    start = as_utc(event.start_time)
    end = as_utc(event.end_time)
    return {
        "id": f"google_{event.external_id}",
        "tenant_id": None,
        "title": f"{event.title} (Google Calendar)",
        "date": start.strftime("%Y-%m-%d"),
        "time": start.strftime("%H:%M"),
        "duration": _duration_minutes(start, end),
        "patient": "",
        "practitioner": practitioner.display_name,
        "type": "Google Calendar Event",
        "status": "external",
        "location": event.location or "Not specified",
        "clinic": "Google Calendar",
        "source": "google",
        "clickable": False,
        "mode": "physical" if event.location else "virtual",
        "timezone": "UTC",
        "utc_start_time": _isoformat_utc(start),
        "utc_end_time": _isoformat_utc(end),
        "description": event.description or "",
        "is_all_day": event.is_all_day,
    }


def external_events_for(
    practitioner: Practitioner,
    native: list[dict[str, Any]],
    today: date,
    tolerance: timedelta,
) -> list[dict[str, Any]]:
    """Synced events of the next 30 days that do not mirror a native booking."""

    window_start = datetime.combine(today, time.min)
    window_end = datetime.combine(today + timedelta(days=EXTERNAL_EVENT_WINDOW_DAYS), time.max)
    try:
        events = (
            ExternalEvent.query.filter(
                ExternalEvent.practitioner_id == practitioner.id,
                ExternalEvent.start_time >= window_start,
                ExternalEvent.start_time <= window_end,
            )
            .order_by(ExternalEvent.start_time.asc())
            .all()
        )
    except SQLAlchemyError:
        LOGGER.exception(
            "Error fetching external calendar events for practitioner %s", practitioner.id
        )
        return []

    kept: list[dict[str, Any]] = []
    for event in events:
        if is_duplicate_event(as_utc(event.start_time), as_utc(event.end_time), native, tolerance):
            LOGGER.info(
                "Skipping duplicate external event %s for practitioner %s",
                event.external_id,
                practitioner.id,
            )
            continue
        kept.append(_serialize_external_event(event, practitioner))
    return kept


def central_calendar_props(
    practitioner: Practitioner,
    today: date,
    *,
    duplicate_tolerance_minutes: int = 5,
) -> dict[str, Any]:
    """Page props of the cross-tenant calendar; times are left in UTC."""

    appointments: list[dict[str, Any]] = []
    for tenant in practitioner.tenants:
        try:
            appointments.extend(_tenant_appointments_for(practitioner, tenant))
        except SQLAlchemyError:
            LOGGER.exception(
                "Error fetching appointments from tenant %s for practitioner %s",
                tenant.id,
                practitioner.id,
            )
            continue

    tolerance = timedelta(minutes=duplicate_tolerance_minutes)
    appointments.extend(external_events_for(practitioner, appointments, today, tolerance))

    return {
        "appointments": appointments,
        "currentDate": today.isoformat(),
        "isCentral": True,
        "practitioner": {"id": practitioner.id, "name": practitioner.display_name},
    }
