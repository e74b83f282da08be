"""Authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from http import HTTPStatus

from flask import jsonify, request
from flask.typing import ResponseReturnValue
from flask_jwt_extended import create_access_token, jwt_required

from portal.app.models import User
from portal.extensions import bcrypt, db

from . import api_bp, authenticated_user


@api_bp.post("/auth/login")
def login() -> ResponseReturnValue:
    """Authenticate a user and return an access token."""

    payload = request.get_json(silent=True) or {}
    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return (
            jsonify(message="Email and password are required."),
            HTTPStatus.BAD_REQUEST,
        )

    user = User.query.filter_by(email=email).first()
    if not user or not bcrypt.check_password_hash(user.password_hash, password):
        return (
            jsonify(message="Invalid email or password."),
            HTTPStatus.UNAUTHORIZED,
        )

    if not user.is_active:
        return jsonify(message="Account is disabled."), HTTPStatus.FORBIDDEN

    user.last_login_at = datetime.utcnow()
    db.session.add(user)
    db.session.commit()

    access_token = create_access_token(identity=str(user.id))
    return jsonify(access_token=access_token), HTTPStatus.OK


@api_bp.get("/auth/me")
@jwt_required()
def current_user() -> ResponseReturnValue:
    """Return the authenticated user's profile."""

    user, error = authenticated_user()
    if error is not None:
        return error

    payload = {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "tenant_id": user.tenant_id,
        "practitioner_id": user.practitioner.id if user.practitioner else None,
    }
    return jsonify(payload), HTTPStatus.OK
