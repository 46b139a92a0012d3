"""Blueprint exports."""

from . import admin, auth, shares

__all__ = [
    "admin",
    "auth",
    "shares",
]
