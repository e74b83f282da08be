"""Calendar page-load and server-rendered view endpoints."""
from __future__ import annotations

from datetime import date
from http import HTTPStatus
from typing import Any, Mapping

from flask import Blueprint, current_app, jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import jwt_required

from portal.app.models import Practitioner, Tenant
from portal.app.services.calendar_service import (
    central_calendar_props,
    tenant_calendar_props,
)
from portal.app.services.timezone_service import get_viewer_timezone, viewer_today
from portal.extensions import db
from viewmodel.models.appointment_filter import ALL, FilterCriteria
from viewmodel.models.appointments import UTC_LABEL, parse_day
from viewmodel.models.calendar_session import CalendarSession
from viewmodel.models.date_grid import ViewMode
from viewmodel.models.timezones import is_valid_timezone

from . import authenticated_user

calendar_bp = Blueprint("calendar", __name__)
central_bp = Blueprint("central", __name__)


def _parse_practitioner_ids(value: str | None) -> frozenset[int]:
    if not value:
        return frozenset()
    try:
        return frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError as exc:
        raise ValueError("practitioners must be a comma-separated list of ids.") from exc


def _render_view(
    props: dict[str, Any],
    args: Mapping[str, str],
    *,
    viewer_timezone: str,
    tenant_timezone: str,
    today: date,
) -> dict[str, Any]:
    """Run the calendar view model over ``props`` for the query ``args``."""

    reference = parse_day(args["date"]) if args.get("date") else today
    mode = ViewMode.parse(args.get("mode"))
    criteria = FilterCriteria(
        clinic=args.get("clinic") or ALL,
        status=args.get("status") or ALL,
        practitioner_ids=_parse_practitioner_ids(args.get("practitioners")),
    )

    session = CalendarSession.from_page_props(
        props,
        viewer_timezone=viewer_timezone,
        tenant_timezone=tenant_timezone,
        reference_date=reference,
        view_mode=mode,
        today=lambda: today,
        list_limit=current_app.config["CALENDAR_LIST_LIMIT"],
    )
    session.state.pending = criteria
    session.state.apply_filters()
    try:
        return session.render()
    finally:
        session.teardown()


def _caller_tenant() -> tuple[Tenant | None, ResponseReturnValue | None]:
    user, error = authenticated_user()
    if error is not None:
        return None, error
    if user.tenant_id is None:
        return None, (
            jsonify(message="User is not associated with a tenant."),
            HTTPStatus.BAD_REQUEST,
        )
    tenant = db.session.get(Tenant, user.tenant_id)
    if tenant is None:
        return None, (jsonify(message="Tenant not found."), HTTPStatus.NOT_FOUND)
    return tenant, None


def _caller_practitioner() -> tuple[Practitioner | None, ResponseReturnValue | None]:
    user, error = authenticated_user()
    if error is not None:
        return None, error
    if user.practitioner is None:
        return None, (
            jsonify(message="Central calendar is only available to practitioners."),
            HTTPStatus.FORBIDDEN,
        )
    return user.practitioner, None


@calendar_bp.get("")
@jwt_required()
def tenant_calendar() -> ResponseReturnValue:
    """Return the page-load payload of the caller's tenant calendar."""

    tenant, error = _caller_tenant()
    if error is not None:
        return error
    return jsonify(tenant_calendar_props(tenant, date.today())), HTTPStatus.OK


@calendar_bp.get("/view")
@jwt_required()
def tenant_calendar_view() -> ResponseReturnValue:
    """Render the caller's tenant calendar for the requested date and mode."""

    tenant, error = _caller_tenant()
    if error is not None:
        return error

    today = date.today()
    props = tenant_calendar_props(tenant, today)
    try:
        payload = _render_view(
            props,
            request.args,
            viewer_timezone=get_viewer_timezone(),
            tenant_timezone=props.get("timezone") or UTC_LABEL,
            today=today,
        )
    except ValueError as exc:
        return jsonify(message=str(exc)), HTTPStatus.BAD_REQUEST
    return jsonify(payload), HTTPStatus.OK


@central_bp.get("")
@jwt_required()
def central_calendar() -> ResponseReturnValue:
    """Return the cross-tenant page-load payload of the calling practitioner."""

    practitioner, error = _caller_practitioner()
    if error is not None:
        return error

    props = central_calendar_props(
        practitioner,
        viewer_today(get_viewer_timezone()),
        duplicate_tolerance_minutes=current_app.config["CALENDAR_DUPLICATE_TOLERANCE_MINUTES"],
    )
    return jsonify(props), HTTPStatus.OK


@central_bp.get("/view")
@jwt_required()
def central_calendar_view() -> ResponseReturnValue:
    """Render the practitioner's calendar in the viewer's timezone."""

    practitioner, error = _caller_practitioner()
    if error is not None:
        return error

    zone = request.args.get("tz") or get_viewer_timezone()
    if not is_valid_timezone(zone):
        return jsonify(message=f"Unknown timezone '{zone}'."), HTTPStatus.BAD_REQUEST

    today = viewer_today(zone)
    props = central_calendar_props(
        practitioner,
        today,
        duplicate_tolerance_minutes=current_app.config["CALENDAR_DUPLICATE_TOLERANCE_MINUTES"],
    )
    args = {key: value for key, value in request.args.items() if key != "practitioners"}
    try:
        payload = _render_view(
            props,
            args,
            viewer_timezone=zone,
            tenant_timezone=UTC_LABEL,
            today=today,
        )
    except ValueError as exc:
        return jsonify(message=str(exc)), HTTPStatus.BAD_REQUEST
    return jsonify(payload), HTTPStatus.OK
