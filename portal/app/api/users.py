"""Per-user preferences kept in the browser session."""
from __future__ import annotations

from http import HTTPStatus

from flask import jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import jwt_required

from portal.app.services.timezone_service import set_viewer_timezone

from . import api_bp, authenticated_user


@api_bp.post("/users/timezone")
@jwt_required()
def set_timezone() -> ResponseReturnValue:
    """Remember the browser's timezone for central calendar rendering."""

    _, error = authenticated_user()
    if error is not None:
        return error

    payload = request.get_json(silent=True) or {}
    zone = payload.get("timezone")
    if not isinstance(zone, str) or not set_viewer_timezone(zone):
        return jsonify(message="Invalid timezone."), HTTPStatus.BAD_REQUEST

    return jsonify(success=True, timezone=zone.strip()), HTTPStatus.OK
