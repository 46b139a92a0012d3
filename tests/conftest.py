"""Pytest configuration and shared fixtures for SharePool tests.

Each test gets its own temporary SQLite file, a frozen clock it can move forward,
and factories for users and trading services, so nothing touches a real data dir.
"""

from __future__ import annotations

import itertools
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from sharepool.models import User
from sharepool.infra.database import create_session_factory
from sharepool.infra.repositories import (
    SQLModelLotRepository,
    SQLModelPoolRepository,
    SQLModelTransactionRepository,
)
from sharepool.services.trading import TradingService

START = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when a test tells it to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current

    def set(self, value: datetime) -> datetime:
        self.current = value
        return self.current


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Transactional session scopes, the same shape the app uses."""
    return create_session_factory(db_engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


# =============================================================================
# Repositories and services
# =============================================================================


@pytest.fixture
def pool_repo(session_factory) -> SQLModelPoolRepository:
    return SQLModelPoolRepository(session_factory)


@pytest.fixture
def lot_repo(session_factory) -> SQLModelLotRepository:
    return SQLModelLotRepository(session_factory)


@pytest.fixture
def transaction_repo(session_factory) -> SQLModelTransactionRepository:
    return SQLModelTransactionRepository(session_factory)


@pytest.fixture
def build_trading(session_factory, pool_repo, lot_repo, transaction_repo, clock):
    """Factory for a TradingService over a freshly seeded pool.

    The pool is seeded by the first call only; later calls reuse it.
    """

    def _build(
        *,
        total_units: int = 10_000,
        price: str = "10.00",
        daily_cap: int = 100,
    ) -> TradingService:
        pool_repo.ensure_pool(total_units=total_units, unit_price=Decimal(price))
        return TradingService(
            session_factory=session_factory,
            pool_repo=pool_repo,
            lot_repo=lot_repo,
            transaction_repo=transaction_repo,
            daily_cap=daily_cap,
            clock=clock,
            lock_timeout=10.0,
        )

    return _build


@pytest.fixture
def trading(build_trading) -> TradingService:
    """10 000 units at $10.00 with a daily cap of 100."""
    return build_trading()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(session_factory):
    """Factory for persisted users; skips password hashing for speed."""

    counter = itertools.count(1)

    def _create_user(email: str | None = None, *, is_admin: bool = False) -> User:
        email = email or f"investor{next(counter)}@example.com"
        with session_factory() as session:
            user = User(email=email, password_hash="dummy-hash", is_admin=is_admin)
            session.add(user)
            session.flush()
            session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    return user_factory("tester@example.com")


@pytest.fixture
def admin_user(user_factory) -> User:
    return user_factory("admin@example.com", is_admin=True)
