"""API blueprint registration."""
from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify
from flask.typing import ResponseReturnValue
from flask_jwt_extended import get_jwt_identity

from portal.app.models import User
from portal.extensions import db

api_bp = Blueprint("api", __name__)


def authenticated_user() -> tuple[User | None, ResponseReturnValue | None]:
    """Return the user behind the current token, or an error response."""

    identity = get_jwt_identity()
    try:
        user_id = int(identity) if identity is not None else None
    except (TypeError, ValueError):
        user_id = None

    if user_id is None:
        return None, (jsonify(message="Invalid token."), HTTPStatus.UNAUTHORIZED)

    user = db.session.get(User, user_id)
    if user is None:
        return None, (jsonify(message="User not found."), HTTPStatus.NOT_FOUND)
    return user, None


# Import endpoints to ensure they are registered with the blueprint.
from . import auth  # noqa: E402,F401
from . import users  # noqa: E402,F401
from .calendar import calendar_bp, central_bp  # noqa: E402,F401

api_bp.register_blueprint(calendar_bp, url_prefix="/calendar")
api_bp.register_blueprint(central_bp, url_prefix="/central/calendar")
