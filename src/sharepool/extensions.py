"""Flask wiring for the engine context and the signed-session identity."""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from flask import Flask, current_app, jsonify, session

from .context import AppContext

EXTENSION_KEY = "sharepool"
SESSION_USER_KEY = "user_id"

F = TypeVar("F", bound=Callable[..., Any])


def init_context(app: Flask, ctx: AppContext) -> None:
    """Attach the engine context to the app."""

    app.extensions[EXTENSION_KEY] = ctx


def get_context() -> AppContext:
    """Return the context of the active Flask app."""

    ctx = current_app.extensions.get(EXTENSION_KEY)
    if ctx is None:  # pragma: no cover - misconfigured app
        raise RuntimeError("SharePool context not initialized")
    return ctx


def current_user_id() -> Optional[int]:
    value = session.get(SESSION_USER_KEY)
    return int(value) if value is not None else None


def login_user(user_id: int) -> None:
    session.clear()
    session[SESSION_USER_KEY] = user_id


def logout_user() -> None:
    session.clear()


def login_required(view: F) -> F:
    """Reject anonymous callers with 401 before reaching the view."""

    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any):
        if current_user_id() is None:
            return jsonify({"reason": "unauthenticated", "message": "Login required"}), 401
        return view(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
