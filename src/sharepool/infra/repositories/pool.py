"""SQLModel implementation of the platform pool repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ...clock import utc_now
from ...errors import InsufficientSupply, InvalidValue
from ...models.pool import POOL_ID, SharePool, check_price
from ..database import SessionFactory


class SQLModelPoolRepository:
    """Reads and writes the singleton ``share_pool`` row.

    All writes are single conditional UPDATE statements so the bound check and the
    increment happen atomically inside the database.
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    def ensure_pool(self, *, total_units: int, unit_price: Decimal | str) -> SharePool:
        """Seed the pool row on first start; an existing row is left untouched."""
        if total_units <= 0:
            raise InvalidValue("Total units must be positive", field="total_units", value=total_units)
        price = check_price(unit_price)
        try:
            with self.session_factory() as session:
                if session.get(SharePool, POOL_ID) is None:
                    session.add(
                        SharePool(id=POOL_ID, total_units=total_units, units_sold=0, unit_price=price)
                    )
        except IntegrityError:
            # Another process seeded it between our read and insert.
            pass
        return self.snapshot()

    def snapshot(self) -> SharePool:
        """Return a detached copy of the pool row."""
        with self.session_factory() as session:
            return self.load(session)

    def load(self, session: Session) -> SharePool:
        """Fetch the pool row inside ``session``, bypassing the identity map."""
        pool = session.get(SharePool, POOL_ID, populate_existing=True)
        if pool is None:
            raise RuntimeError("Share pool not initialized")
        return pool

    def available_units(self) -> int:
        return self.snapshot().available_units

    def current_price(self) -> Decimal:
        return self.snapshot().unit_price

    def set_price(self, new_price: Decimal | str, *, now: datetime | None = None) -> SharePool:
        """Replace the unit price; lots bought earlier keep their own price."""
        price = check_price(new_price)
        with self.session_factory() as session:
            result = session.connection().execute(
                update(SharePool)
                .where(SharePool.id == POOL_ID)
                .values(
                    unit_price=price,
                    version=SharePool.version + 1,
                    updated_at=now or utc_now(),
                )
            )
            if result.rowcount == 0:
                raise RuntimeError("Share pool not initialized")
            return self.load(session)

    def reserve_units(self, session: Session, quantity: int, *, now: datetime) -> SharePool:
        """Move ``quantity`` units from available to sold within ``session``.

        Raises InsufficientSupply when the pool cannot cover the request; nothing is
        written in that case.
        """
        if quantity <= 0:
            raise InvalidValue("Quantity must be positive", field="quantity", value=quantity)
        result = session.connection().execute(
            update(SharePool)
            .where(SharePool.id == POOL_ID)
            .where(SharePool.units_sold + quantity <= SharePool.total_units)
            .values(
                units_sold=SharePool.units_sold + quantity,
                version=SharePool.version + 1,
                updated_at=now,
            )
        )
        pool = self.load(session)
        if result.rowcount == 0:
            raise InsufficientSupply(
                f"Only {pool.available_units} shares available",
                requested=quantity,
                available=pool.available_units,
            )
        return pool


__all__ = ["SQLModelPoolRepository"]
