"""Registration and login endpoints."""

from __future__ import annotations

from flask import jsonify

from sharepool.clock import ensure_utc
from sharepool.extensions import current_user_id, get_context, login_required, login_user, logout_user
from sharepool.models.user import User
from sharepool.services import auth

from ..parsing import json_body
from . import bp


def _user_payload(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "email": user.email,
        "is_admin": user.is_admin,
        "created_at": ensure_utc(user.created_at).isoformat(),
    }


@bp.post("/register")
def register():
    payload = json_body()
    try:
        user = auth.create_user(
            email=str(payload.get("email", "")),
            password=str(payload.get("password", "")),
            session_factory=get_context().session_factory,
        )
    except ValueError as exc:
        return jsonify({"reason": "invalid_value", "message": str(exc)}), 400
    login_user(user.id)
    return jsonify(_user_payload(user)), 201


@bp.post("/login")
def login():
    payload = json_body()
    user = auth.authenticate(
        email=str(payload.get("email", "")),
        password=str(payload.get("password", "")),
        session_factory=get_context().session_factory,
    )
    if user is None:
        return jsonify({"reason": "invalid_credentials", "message": "Invalid email or password"}), 401
    login_user(user.id)
    return jsonify(_user_payload(user))


@bp.post("/logout")
def logout():
    logout_user()
    return "", 204


@bp.get("/me")
@login_required
def me():
    user = auth.get_user(current_user_id(), get_context().session_factory)
    if user is None:
        logout_user()
        return jsonify({"reason": "unauthenticated", "message": "Login required"}), 401
    return jsonify(_user_payload(user))
