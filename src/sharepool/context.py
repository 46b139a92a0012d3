"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .clock import Clock, utc_now
from .config import BaseConfig
from .infra.database import SessionFactory, create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelLotRepository,
    SQLModelPoolRepository,
    SQLModelTransactionRepository,
)
from .services.trading import TradingService


@dataclass
class AppContext:
    """Everything a client surface needs to call the engine."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    clock: Clock

    pool_repo: SQLModelPoolRepository
    lot_repo: SQLModelLotRepository
    transaction_repo: SQLModelTransactionRepository

    trading: TradingService


def create_app_context(
    config: Optional[BaseConfig] = None, *, clock: Optional[Clock] = None
) -> AppContext:
    """Create the engine, schema, repositories and services; seed the pool."""

    if config is None:
        config = BaseConfig()
    clock = clock or utc_now

    engine = create_db_engine(config)
    init_database(engine)
    session_factory = create_session_factory(engine)

    pool_repo = SQLModelPoolRepository(session_factory)
    lot_repo = SQLModelLotRepository(session_factory)
    transaction_repo = SQLModelTransactionRepository(session_factory)
    pool_repo.ensure_pool(total_units=config.TOTAL_UNITS, unit_price=config.INITIAL_PRICE)

    trading = TradingService(
        session_factory=session_factory,
        pool_repo=pool_repo,
        lot_repo=lot_repo,
        transaction_repo=transaction_repo,
        daily_cap=config.DAILY_CAP,
        clock=clock,
        lock_timeout=float(config.DB_TIMEOUT),
    )

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        clock=clock,
        pool_repo=pool_repo,
        lot_repo=lot_repo,
        transaction_repo=transaction_repo,
        trading=trading,
    )
