"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .errors import InvalidValue
from .models.pool import check_price

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    """Read an integer setting, rejecting garbage and values below ``minimum``."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_price(name: str, default: str) -> Decimal:
    """Read a unit price that fits the pool's price column."""

    raw = os.getenv(name, default).strip()
    try:
        return check_price(raw)
    except InvalidValue as exc:
        raise ValueError(f"{name}: {exc.message}, got {raw!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "SharePool"
    DB_FILENAME = "sharepool.db"
    TESTING = False

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.SECRET_KEY = os.getenv("SHAREPOOL_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir(data_dir)
        self.DEV_MODE = _env_bool("SHAREPOOL_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("SHAREPOOL_DATABASE_URL", self._build_sqlite_url())
        self.DB_TIMEOUT = _env_int("SHAREPOOL_DB_TIMEOUT", 30, minimum=1)

        # Pool seed values only apply when the pool row does not exist yet.
        self.TOTAL_UNITS = _env_int("SHAREPOOL_TOTAL_UNITS", 10_000, minimum=1)
        self.INITIAL_PRICE = _env_price("SHAREPOOL_INITIAL_PRICE", "10.00")
        self.DAILY_CAP = _env_int("SHAREPOOL_DAILY_CAP", 100, minimum=1)

        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("SHAREPOOL_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self, override: Path | str | None = None) -> Path:
        """Return the directory holding the SQLite file and logs."""

        data_root = override or os.getenv("SHAREPOOL_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {"pool_pre_ping": True}
        # Threads share the engine; the busy timeout bounds how long a writer waits.
        connect_args: dict[str, Any] = {"check_same_thread": False, "timeout": self.DB_TIMEOUT}
        return {"connect_args": connect_args}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True


class TestConfig(BaseConfig):
    """Configuration used by the test-suite; never reads a real data dir."""

    TESTING = True

    def __init__(self, data_dir: Path | str) -> None:
        super().__init__(data_dir)
        # Ignore any SHAREPOOL_DATABASE_URL from the developer's environment.
        self.DATABASE_URL = self._build_sqlite_url()
