"""Shares blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("shares", __name__, url_prefix="/shares")

from . import routes  # noqa: E402,F401

__all__ = ["bp"]
