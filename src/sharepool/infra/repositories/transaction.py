"""SQLModel implementation of the transaction log and purchase index."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...clock import ensure_utc
from ...errors import ConcurrentConflict, NotEligibleToday
from ...models.purchase_window import PurchaseWindow
from ...models.transaction import BUY, TRANSACTION_KINDS, ShareTransaction
from ..database import SessionFactory


class SQLModelTransactionRepository:
    """Append-only buy/sell log.

    Rows are only ever inserted. The ``purchase_window`` index is written next to
    each buy so "when did this user last buy" is a primary-key lookup.
    """

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def append(
        self,
        session: Session,
        *,
        user_id: int,
        kind: str,
        quantity: int,
        unit_price: Decimal,
        total_amount: Decimal,
        created_at: datetime,
        lot_id: Optional[int] = None,
    ) -> ShareTransaction:
        """Record an executed trade as part of the caller's transaction."""
        if kind not in TRANSACTION_KINDS:
            raise ValueError(f"Invalid transaction kind: {kind}")
        txn = ShareTransaction(
            user_id=user_id,
            kind=kind,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=total_amount,
            created_at=created_at,
            lot_id=lot_id,
        )
        session.add(txn)
        session.flush()
        session.refresh(txn)
        return txn

    def get_by_id(self, transaction_id: int, *, user_id: int) -> Optional[ShareTransaction]:
        """Retrieve a transaction by ID."""
        with self.session_factory() as session:
            return session.exec(
                select(ShareTransaction)
                .where(ShareTransaction.id == transaction_id)
                .where(ShareTransaction.user_id == user_id)
            ).first()

    def list_for_user(
        self,
        *,
        user_id: int,
        kind: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ShareTransaction]:
        """List a user's transactions newest first, optionally only one kind."""
        if kind is not None and kind not in TRANSACTION_KINDS:
            raise ValueError(f"Invalid transaction kind: {kind}")
        with self.session_factory() as session:
            statement = select(ShareTransaction).where(ShareTransaction.user_id == user_id)
            if kind is not None:
                statement = statement.where(ShareTransaction.kind == kind)
            statement = (
                statement.order_by(
                    ShareTransaction.created_at.desc(),  # type: ignore
                    ShareTransaction.id.desc(),  # type: ignore
                )
                .offset(max(offset, 0))
                .limit(max(limit, 1))
            )
            return list(session.exec(statement).all())

    def last_purchase_at(self, *, user_id: int, session: Session | None = None) -> Optional[datetime]:
        """Return when ``user_id`` last bought, or None if they never have.

        Falls back to the newest ``buy`` row for users without an index entry.
        """
        if session is None:
            with self.session_factory() as scoped:
                return self.last_purchase_at(user_id=user_id, session=scoped)

        window = session.get(PurchaseWindow, user_id, populate_existing=True)
        if window is not None:
            return ensure_utc(window.last_purchase_at)
        newest = session.exec(
            select(func.max(ShareTransaction.created_at))
            .where(ShareTransaction.user_id == user_id)
            .where(ShareTransaction.kind == BUY)
        ).one()
        return ensure_utc(newest) if newest is not None else None

    def claim_purchase_window(
        self, session: Session, *, user_id: int, now: datetime, cooldown: timedelta
    ) -> None:
        """Stamp ``now`` as the user's last purchase if the cooldown has elapsed.

        The check and the write are one conditional UPDATE, so two writers cannot
        both claim the same window.
        """
        cutoff = now - cooldown
        result = session.connection().execute(
            update(PurchaseWindow)
            .where(PurchaseWindow.user_id == user_id)
            .where(PurchaseWindow.last_purchase_at <= cutoff)
            .values(last_purchase_at=now)
        )
        if result.rowcount == 1:
            return

        window = session.get(PurchaseWindow, user_id, populate_existing=True)
        if window is not None:
            last = ensure_utc(window.last_purchase_at)
            raise NotEligibleToday(
                "You can only purchase shares once per day",
                last_purchase_at=last,
                next_eligible_at=last + cooldown,
            )
        session.add(PurchaseWindow(user_id=user_id, last_purchase_at=now))
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConcurrentConflict(
                "Another purchase for this user is in progress; retry",
                resource="purchase_window",
                user_id=user_id,
            ) from exc

    def totals(self) -> tuple[int, Decimal]:
        """Return (transaction count, traded volume) across all users."""
        with self.session_factory() as session:
            count, volume = session.exec(
                select(func.count(ShareTransaction.id), func.sum(ShareTransaction.total_amount))
            ).one()
            return int(count or 0), Decimal(volume or 0)

    def spent_by_user(self) -> dict[int, Decimal]:
        """Return {user_id: sum of buy totals}."""
        with self.session_factory() as session:
            statement = (
                select(ShareTransaction.user_id, func.sum(ShareTransaction.total_amount))
                .where(ShareTransaction.kind == BUY)
                .group_by(ShareTransaction.user_id)
            )
            return {user_id: Decimal(total or 0) for user_id, total in session.exec(statement).all()}


__all__ = ["SQLModelTransactionRepository"]
