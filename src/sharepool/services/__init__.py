"""Service module exports."""

from . import admin, auth, pricing, trading
from .trading import TradingService

__all__ = [
    "admin",
    "auth",
    "pricing",
    "trading",
    "TradingService",
]
