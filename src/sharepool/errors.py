"""Typed rejections raised by the share engine.

Every error carries a stable ``reason`` code plus the constraint values that caused
it, so a client can explain the failure without asking the engine again.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


class ShareEngineError(Exception):
    """Base class for recoverable engine rejections."""

    reason = "share_engine_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "message": self.message,
            "details": {key: _jsonable(value) for key, value in self.details.items()},
        }


class NotEligibleToday(ShareEngineError):
    reason = "not_eligible_today"


class ExceedsDailyCap(ShareEngineError):
    reason = "exceeds_daily_cap"


class InsufficientSupply(ShareEngineError):
    reason = "insufficient_supply"


class InvalidValue(ShareEngineError, ValueError):
    """Non-positive price or quantity, or an unknown target record."""

    reason = "invalid_value"


class LotNotFound(ShareEngineError):
    reason = "lot_not_found"


class NotMature(ShareEngineError):
    reason = "not_mature"


class ExceedsHolding(ShareEngineError):
    reason = "exceeds_holding"


class PermissionDenied(ShareEngineError):
    reason = "permission_denied"


class ConcurrentConflict(ShareEngineError):
    """A concurrent writer won the race; the caller may retry."""

    reason = "concurrent_conflict"


__all__ = [
    "ShareEngineError",
    "NotEligibleToday",
    "ExceedsDailyCap",
    "InsufficientSupply",
    "InvalidValue",
    "LotNotFound",
    "NotMature",
    "ExceedsHolding",
    "PermissionDenied",
    "ConcurrentConflict",
]
