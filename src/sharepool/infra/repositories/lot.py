"""SQLModel implementation of the share lot repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from ...errors import ConcurrentConflict
from ...models.lot import ShareLot
from ..database import SessionFactory


class SQLModelLotRepository:
    """SQLModel-based share lot repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, lot_id: int, *, user_id: int) -> Optional[ShareLot]:
        """Retrieve a lot owned by ``user_id``; other users' lots read as missing."""
        with self.session_factory() as session:
            return session.exec(
                select(ShareLot).where(ShareLot.id == lot_id, ShareLot.user_id == user_id)
            ).first()

    def list_active(self, *, user_id: int) -> list[ShareLot]:
        """List unsold lots, newest purchase first."""
        with self.session_factory() as session:
            statement = (
                select(ShareLot)
                .where(ShareLot.user_id == user_id)
                .where(ShareLot.is_sold == False)  # noqa: E712
                .order_by(ShareLot.purchased_at.desc(), ShareLot.id.desc())  # type: ignore
            )
            return list(session.exec(statement).all())

    def units_held_by_user(self) -> dict[int, int]:
        """Return {user_id: remaining units} across all unsold lots."""
        with self.session_factory() as session:
            statement = (
                select(ShareLot.user_id, func.sum(ShareLot.quantity))
                .where(ShareLot.is_sold == False)  # noqa: E712
                .group_by(ShareLot.user_id)
            )
            return {user_id: int(total or 0) for user_id, total in session.exec(statement).all()}

    def create(self, session: Session, lot: ShareLot) -> ShareLot:
        """Insert a new lot as part of the caller's transaction."""
        session.add(lot)
        session.flush()
        session.refresh(lot)
        return lot

    def consume(
        self, session: Session, lot_id: int, quantity: int, *, user_id: int, now: datetime
    ) -> ShareLot:
        """Take ``quantity`` units off a lot inside the caller's transaction.

        The decrement only applies while the lot still holds enough units, so a
        second seller racing on the same lot gets ConcurrentConflict instead of
        driving the quantity negative. A lot emptied here is flagged sold.
        """
        result = session.connection().execute(
            update(ShareLot)
            .where(ShareLot.id == lot_id)
            .where(ShareLot.user_id == user_id)
            .where(ShareLot.is_sold == False)  # noqa: E712
            .where(ShareLot.quantity >= quantity)
            .values(quantity=ShareLot.quantity - quantity)
        )
        if result.rowcount == 0:
            raise ConcurrentConflict(
                "Lot changed while selling; retry", resource="share_lot", lot_id=lot_id
            )
        lot = session.get(ShareLot, lot_id, populate_existing=True)
        if lot.quantity == 0:
            lot.is_sold = True
            lot.sold_at = now
            session.add(lot)
            session.flush()
        return lot


__all__ = ["SQLModelLotRepository"]
