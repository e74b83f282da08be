"""Appointment records consumed by the calendar view model."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Union

LOGGER = logging.getLogger(__name__)

APPOINTMENT_STATUSES: tuple[str, ...] = (
    "confirmed",
    "pending",
    "urgent",
    "cancelled",
    "completed",
)
"""Statuses offered by the status filter."""

UTC_LABEL = "UTC"


@dataclass(frozen=True, slots=True)
class Practitioner:
    """Practitioner option offered by the tenant calendar filter."""

    id: int
    name: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Practitioner":
        return cls(id=int(payload["id"]), name=str(payload.get("name") or ""))


@dataclass(frozen=True, slots=True)
class Appointment:
    """A scheduled encounter as delivered by the page-load payload."""

    id: int | str
    title: str
    date: str
    time: str
    duration: int
    patient: str
    practitioner: str
    type: str
    status: str
    location: str
    clinic: str
    notes: str | None = None
    source: str | None = None
    tenant_id: str | None = None
    utc_start_time: datetime | None = None
    utc_end_time: datetime | None = None
    timezone: str | None = None
    clickable: bool = True
    mode: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Appointment":
        """Build an appointment from a JSON-shaped record.

        Only optional fields are guarded; required keys are read as-is.
        Unknown keys are preserved in ``extra`` so they survive a round trip.
        """

        known = {
            "id", "title", "date", "time", "duration", "patient", "practitioner",
            "type", "status", "location", "clinic", "notes", "source", "tenant_id",
            "utc_start_time", "utc_end_time", "timezone", "clickable", "mode",
        }
        tenant_id = payload.get("tenant_id")
        return cls(
            id=payload["id"],
            title=payload.get("title") or "",
            date=payload["date"],
            time=payload["time"],
            duration=int(payload.get("duration") or 0),
            patient=payload.get("patient") or "",
            practitioner=payload.get("practitioner") or "",
            type=payload.get("type") or "",
            status=payload.get("status") or "",
            location=payload.get("location") or "",
            clinic=payload.get("clinic") or "",
            notes=payload.get("notes"),
            source=payload.get("source"),
            tenant_id=str(tenant_id) if tenant_id is not None else None,
            utc_start_time=_parse_instant(payload.get("utc_start_time")),
            utc_end_time=_parse_instant(payload.get("utc_end_time")),
            timezone=payload.get("timezone"),
            clickable=bool(payload.get("clickable", True)),
            mode=payload.get("mode"),
            extra={key: value for key, value in payload.items() if key not in known},
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-shaped representation of the appointment."""

        payload: dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "id": self.id,
                "title": self.title,
                "date": self.date,
                "time": self.time,
                "duration": self.duration,
                "patient": self.patient,
                "practitioner": self.practitioner,
                "type": self.type,
                "status": self.status,
                "location": self.location,
                "clinic": self.clinic,
                "notes": self.notes,
                "source": self.source,
                "tenant_id": self.tenant_id,
                "timezone": self.timezone,
                "clickable": self.clickable,
                "mode": self.mode,
                "utc_start_time": _format_instant(self.utc_start_time),
                "utc_end_time": _format_instant(self.utc_end_time),
            }
        )
        return payload

    def with_wall_time(self, day: str, time_of_day: str) -> "Appointment":
        """Return a copy with the date and time-of-day fields rewritten."""

        return replace(self, date=day, time=time_of_day)


@dataclass(frozen=True, slots=True)
class AbsoluteTime:
    """An appointment start pinned to an instant in UTC."""

    instant: datetime


@dataclass(frozen=True, slots=True)
class LocalWallTime:
    """An appointment start already expressed in the governing timezone."""

    date: str
    time: str


SourceTime = Union[AbsoluteTime, LocalWallTime]


def source_time(appointment: Appointment) -> SourceTime:
    """Classify how the appointment's start time is expressed."""

    if appointment.timezone == UTC_LABEL and appointment.utc_start_time is not None:
        return AbsoluteTime(instant=appointment.utc_start_time)
    return LocalWallTime(date=appointment.date, time=appointment.time)


def parse_day(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date."""

    text = (value or "").strip()
    if not text:
        raise ValueError("Date values cannot be blank.")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"'{value}' is not a valid YYYY-MM-DD date.") from exc


def _parse_instant(value: Any) -> datetime | None:
    """Parse an ISO 8601 instant, treating naive values as UTC."""

    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            LOGGER.debug("Ignoring malformed UTC instant: %r", value)
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _format_instant(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
