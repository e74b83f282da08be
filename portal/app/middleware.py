"""Audit logging for significant portal actions."""
from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Any

from flask import Flask, current_app, g, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import SQLAlchemyError

from portal.app.models import AuditLog, User
from portal.extensions import db


@dataclass(slots=True)
class _AuditConfig:
    action: str
    entity_type: str


SIGNIFICANT_ACTIONS: dict[tuple[str, str], _AuditConfig] = {
    ("POST", "/api/auth/login"): _AuditConfig(
        action="auth.login",
        entity_type="user",
    ),
    ("POST", "/api/users/timezone"): _AuditConfig(
        action="viewer.timezone_set",
        entity_type="user",
    ),
}


def register_audit_middleware(app: Flask) -> None:
    """Record an audit row after each successful significant request."""

    @app.before_request
    def _capture_audit_context() -> None:
        method = request.method.upper()
        normalized_path = _normalize_path(request.path)
        config = SIGNIFICANT_ACTIONS.get((method, normalized_path))
        if not config:
            g.audit_context = None
            return

        g.audit_context = {
            "config": config,
            "method": method,
            "path": normalized_path,
            "request_bytes": request.get_data(cache=True) or b"",
        }

    @app.after_request
    def _persist_audit_log(response):
        context: dict[str, Any] | None = getattr(g, "audit_context", None)
        if not context or response.status_code >= 400:
            return response

        config: _AuditConfig = context["config"]
        user = _resolve_user(config.action, context["request_bytes"])
        entity_id = user.id if user else None

        audit_log = AuditLog(
            tenant_id=user.tenant_id if user else None,
            user_id=entity_id,
            entity_type=config.entity_type,
            entity_id=entity_id,
            action=config.action,
            description=_default_description(config.action, user, response),
            method=context["method"],
            path=context["path"],
            request_hash=_hash_request(
                context["method"], context["path"], context["request_bytes"]
            ),
            response_hash=_hash_response(response),
        )

        db.session.add(audit_log)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to persist audit log entry")

        return response


def _normalize_path(path: str) -> str:
    if path != "/" and path.endswith("/"):
        return path[:-1]
    return path


def _resolve_user(action: str, request_bytes: bytes) -> User | None:
    user = _current_user()
    if user or action != "auth.login":
        return user

    try:
        payload = json.loads(request_bytes.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    email = (payload.get("email") or "").strip().lower()
    if not email:
        return None
    return User.query.filter_by(email=email).first()


def _current_user() -> User | None:
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None

    identity = get_jwt_identity()
    if identity is None:
        return None

    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None

    return db.session.get(User, user_id)


def _default_description(action: str, user: User | None, response) -> str | None:
    if action == "auth.login" and user:
        return f"User {user.email} authenticated successfully."
    if action == "viewer.timezone_set":
        data = response.get_json(silent=True) or {}
        zone = data.get("timezone")
        if zone:
            return f"Viewer timezone set to {zone}."
    return None


def _hash_request(method: str, path: str, body: bytes) -> str:
    payload = f"{method}\n{path}\n".encode("utf-8") + body
    return hashlib.sha256(payload).hexdigest()


def _hash_response(response) -> str:
    body = response.get_data() or b""
    payload = f"{response.status_code}\n".encode("utf-8") + body
    return hashlib.sha256(payload).hexdigest()
