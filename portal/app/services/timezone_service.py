"""Viewer and tenant timezone helpers for the calendar endpoints."""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from flask import current_app, session

from viewmodel.models.timezones import is_valid_timezone, resolve_zone

LOGGER = logging.getLogger(__name__)

SESSION_KEY = "user_timezone"


def get_viewer_timezone() -> str:
    """Return the browser timezone stored in the session, or UTC."""

    value = session.get(SESSION_KEY)
    if value and is_valid_timezone(value):
        return value
    return "UTC"


def set_viewer_timezone(name: str | None) -> bool:
    """Store the viewer's timezone for central calendars.

    Returns ``False`` and leaves the session untouched for unknown zones.
    """

    candidate = (name or "").strip()
    if not is_valid_timezone(candidate):
        LOGGER.warning("Invalid timezone provided: %r", name)
        return False
    session[SESSION_KEY] = candidate
    LOGGER.info("User timezone set to %s", candidate)
    return True


def tenant_timezone(name: str | None) -> str:
    """Return the tenant's configured zone, or the portal default."""

    if name and is_valid_timezone(name):
        return name
    return current_app.config.get("CALENDAR_DEFAULT_TIMEZONE", "UTC")


def viewer_today(zone_name: str) -> date:
    """Return the current calendar date in the viewer's zone."""

    return datetime.now(resolve_zone(zone_name)).date()


def to_tenant_time(value: datetime, zone_name: str) -> datetime:
    """Convert a naive UTC timestamp into the tenant's wall-clock time."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(resolve_zone(zone_name))


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
