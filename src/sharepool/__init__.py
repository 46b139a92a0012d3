"""SharePool: fixed-pool share purchase and maturity engine."""

from __future__ import annotations

from .config import BaseConfig, DevConfig, TestConfig
from .context import AppContext, create_app_context
from .webapp import create_app

__all__ = [
    "AppContext",
    "BaseConfig",
    "DevConfig",
    "TestConfig",
    "create_app",
    "create_app_context",
]
