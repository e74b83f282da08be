"""Conversion of appointment start times into the calendar's display zone."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from viewmodel.models.appointment_filter import ViewScope
from viewmodel.models.appointments import (
    UTC_LABEL,
    AbsoluteTime,
    Appointment,
    LocalWallTime,
    source_time,
)

LOGGER = logging.getLogger(__name__)

TIMEZONE_ABBREVIATIONS: dict[str, str] = {
    "America/Toronto": "EST/EDT",
    "America/New_York": "EST/EDT",
    "America/Chicago": "CST/CDT",
    "America/Denver": "MST/MDT",
    "America/Vancouver": "PST/PDT",
    "America/Los_Angeles": "PST/PDT",
    "America/Halifax": "AST/ADT",
    "America/St_Johns": "NST/NDT",
    "UTC": "UTC",
    "Europe/London": "GMT/BST",
    "Europe/Paris": "CET/CEST",
    "Asia/Tokyo": "JST",
    "Asia/Karachi": "PKT",
    "Asia/Shanghai": "CST",
    "Asia/Dubai": "GST",
    "Asia/Kolkata": "IST",
    "Australia/Sydney": "AEST/AEDT",
    "Pacific/Auckland": "NZST/NZDT",
}


@dataclass(frozen=True, slots=True)
class DisplayZone:
    """Timezone shown next to every rendered appointment time."""

    name: str
    abbreviation: str


def is_valid_timezone(name: str | None) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def resolve_zone(name: str | None) -> ZoneInfo:
    """Return the named zone, falling back to UTC for unknown names."""

    if is_valid_timezone(name):
        return ZoneInfo(name)
    LOGGER.warning("Unknown timezone %r, falling back to UTC", name)
    return ZoneInfo(UTC_LABEL)


def viewer_abbreviation(name: str) -> str:
    return TIMEZONE_ABBREVIATIONS.get(name, name)


def tenant_abbreviation(name: str) -> str:
    return name.split("/")[-1]


def normalize(appointment: Appointment, display_timezone: str | tzinfo) -> Appointment:
    """Rewrite an absolute start into ``display_timezone`` wall-clock fields.

    Appointments already expressed as local wall time are returned unchanged.
    """

    zone = resolve_zone(display_timezone) if isinstance(display_timezone, str) else display_timezone
    start = source_time(appointment)
    if isinstance(start, AbsoluteTime):
        local = start.instant.astimezone(zone)
        return appointment.with_wall_time(
            local.strftime("%Y-%m-%d"), f"{local.hour:02d}:{local.minute:02d}"
        )
    if isinstance(start, LocalWallTime):
        return appointment
    raise TypeError(f"Unsupported source time: {start!r}")


class TimezoneNormalizer:
    """Apply the timezone rule of a calendar scope to appointment lists.

    Central calendars convert UTC-tagged appointments into the viewer's zone.
    Tenant calendars receive appointments already in the tenant's zone and
    never convert them. The display zone is fixed at construction.
    """

    def __init__(
        self,
        scope: ViewScope,
        *,
        viewer_timezone: str = UTC_LABEL,
        tenant_timezone: str = UTC_LABEL,
    ) -> None:
        self.scope = scope
        if scope is ViewScope.CENTRAL:
            self._zone = resolve_zone(viewer_timezone)
            name = self._zone.key
            self.display_zone = DisplayZone(name=name, abbreviation=viewer_abbreviation(name))
        else:
            self._zone = resolve_zone(tenant_timezone)
            name = self._zone.key
            self.display_zone = DisplayZone(name=name, abbreviation=tenant_abbreviation(name))

    def normalize(self, appointment: Appointment) -> Appointment:
        if self.scope is ViewScope.TENANT:
            return appointment
        return normalize(appointment, self._zone)

    def normalize_all(self, appointments: Iterable[Appointment]) -> list[Appointment]:
        return [self.normalize(appointment) for appointment in appointments]
