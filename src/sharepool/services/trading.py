"""Buy/sell operations and the read models built on top of them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import OperationalError

from ..clock import Clock, ensure_utc, utc_now
from ..errors import (
    ConcurrentConflict,
    ExceedsDailyCap,
    ExceedsHolding,
    LotNotFound,
    NotEligibleToday,
    NotMature,
    ShareEngineError,
)
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelLotRepository,
    SQLModelPoolRepository,
    SQLModelTransactionRepository,
)
from ..logging_config import get_logger
from ..models.lot import ShareLot
from ..models.pool import POOL_ID
from ..models.transaction import BUY, SELL, ShareTransaction
from . import pricing
from .locks import KeyedLocks

logger = get_logger(__name__)


@dataclass(frozen=True)
class Eligibility:
    can_buy_today: bool
    next_eligible_at: Optional[datetime]
    last_purchase_at: Optional[datetime]
    max_quantity: int
    daily_cap: int
    available_units: int

    def to_dict(self) -> dict[str, object]:
        return {
            "can_buy_today": self.can_buy_today,
            "next_eligible_at": self.next_eligible_at.isoformat() if self.next_eligible_at else None,
            "last_purchase_at": self.last_purchase_at.isoformat() if self.last_purchase_at else None,
            "max_quantity": self.max_quantity,
            "daily_cap": self.daily_cap,
            "available_units": self.available_units,
        }


@dataclass(frozen=True)
class PlatformStatus:
    available_units: int
    total_units: int
    price: Decimal

    def to_dict(self) -> dict[str, object]:
        return {
            "available_units": self.available_units,
            "total_units": self.total_units,
            "price": str(pricing.to_money(self.price)),
        }


@dataclass(frozen=True)
class PurchaseResult:
    lot: ShareLot
    transaction: ShareTransaction
    quote: pricing.Quote


@dataclass(frozen=True)
class SaleResult:
    lot: ShareLot
    transaction: ShareTransaction
    payout: Decimal


class TradingService:
    """Entry point for every user-facing share operation.

    Writers are serialized per user (buys), per lot (sells) and on the pool
    (reservations) with in-process locks; the repositories' conditional updates
    keep the same guarantees across processes.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory,
        pool_repo: SQLModelPoolRepository,
        lot_repo: SQLModelLotRepository,
        transaction_repo: SQLModelTransactionRepository,
        daily_cap: int,
        clock: Clock = utc_now,
        lock_timeout: float = 30.0,
    ) -> None:
        if daily_cap <= 0:
            raise ValueError("daily_cap must be positive")
        self.session_factory = session_factory
        self.pool_repo = pool_repo
        self.lot_repo = lot_repo
        self.transaction_repo = transaction_repo
        self.daily_cap = daily_cap
        self._clock = clock
        self._user_locks = KeyedLocks("user", timeout=lock_timeout)
        self._lot_locks = KeyedLocks("share_lot", timeout=lock_timeout)
        self._pool_lock = KeyedLocks("share_pool", timeout=lock_timeout)

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    # ------------------------------------------------------------------ reads

    def get_platform_status(self) -> PlatformStatus:
        pool = self.pool_repo.snapshot()
        return PlatformStatus(
            available_units=pool.available_units,
            total_units=pool.total_units,
            price=pool.unit_price,
        )

    def get_eligibility(self, user_id: int) -> Eligibility:
        now = self.now()
        last = self.transaction_repo.last_purchase_at(user_id=user_id)
        available = self.pool_repo.available_units()
        can_buy = pricing.can_purchase_today(last, now)
        return Eligibility(
            can_buy_today=can_buy,
            next_eligible_at=pricing.next_eligible_at(last, now),
            last_purchase_at=last,
            max_quantity=pricing.max_purchasable_today(available, self.daily_cap) if can_buy else 0,
            daily_cap=self.daily_cap,
            available_units=available,
        )

    def quote(self, quantity: int) -> pricing.Quote:
        """Price ``quantity`` units at the current pool price without buying."""
        return pricing.quote(quantity, self.pool_repo.current_price())

    def get_portfolio(self, user_id: int) -> pricing.PortfolioSummary:
        return pricing.portfolio_summary(self.lot_repo.list_active(user_id=user_id), self.now())

    def list_lots(self, user_id: int) -> list[pricing.LotView]:
        now = self.now()
        return [pricing.lot_view(lot, now) for lot in self.lot_repo.list_active(user_id=user_id)]

    def list_history(
        self, user_id: int, *, kind: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> list[ShareTransaction]:
        return self.transaction_repo.list_for_user(
            user_id=user_id, kind=kind, limit=limit, offset=offset
        )

    # ----------------------------------------------------------------- writes

    def buy(self, user_id: int, quantity: int) -> PurchaseResult:
        """Buy ``quantity`` units from the pool at the current price.

        Raises InvalidValue, NotEligibleToday, ExceedsDailyCap, InsufficientSupply
        or ConcurrentConflict; on any of them nothing is written.
        """
        try:
            pricing.validate_quantity(quantity)
            with self._user_locks.hold(user_id):
                now = self.now()
                self._check_purchase_window(user_id, now)
                if quantity > self.daily_cap:
                    available = self.pool_repo.available_units()
                    raise ExceedsDailyCap(
                        f"You can buy at most {self.daily_cap} shares per day",
                        requested=quantity,
                        daily_cap=self.daily_cap,
                        max_quantity=pricing.max_purchasable_today(available, self.daily_cap),
                    )
                with self._pool_lock.hold(POOL_ID):
                    result = self._commit_purchase(user_id, quantity, now)
        except ShareEngineError as exc:
            logger.info(
                "Purchase rejected",
                extra={"user_id": user_id, "quantity": quantity, "reason": exc.reason},
            )
            raise

        logger.info(
            "Purchase committed",
            extra={
                "user_id": user_id,
                "lot_id": result.lot.id,
                "quantity": quantity,
                "unit_price": str(result.lot.unit_price),
                "total": str(result.transaction.total_amount),
            },
        )
        return result

    def _check_purchase_window(self, user_id: int, now: datetime) -> None:
        last = self.transaction_repo.last_purchase_at(user_id=user_id)
        if not pricing.can_purchase_today(last, now):
            raise NotEligibleToday(
                "You can only purchase shares once per day",
                last_purchase_at=last,
                next_eligible_at=pricing.next_eligible_at(last, now),
            )

    def _commit_purchase(self, user_id: int, quantity: int, now: datetime) -> PurchaseResult:
        try:
            with self.session_factory() as session:
                self.transaction_repo.claim_purchase_window(
                    session, user_id=user_id, now=now, cooldown=pricing.PURCHASE_COOLDOWN
                )
                pool = self.pool_repo.reserve_units(session, quantity, now=now)
                purchase = pricing.quote(quantity, pool.unit_price)
                lot = self.lot_repo.create(
                    session,
                    ShareLot(
                        user_id=user_id,
                        quantity=quantity,
                        original_quantity=quantity,
                        unit_price=pool.unit_price,
                        purchased_at=now,
                        matures_at=pricing.maturity_timestamp(now),
                    ),
                )
                txn = self.transaction_repo.append(
                    session,
                    user_id=user_id,
                    kind=BUY,
                    quantity=quantity,
                    unit_price=pool.unit_price,
                    total_amount=pricing.to_money(purchase.total_price),
                    created_at=now,
                    lot_id=lot.id,
                )
        except OperationalError as exc:
            raise ConcurrentConflict(
                "Database busy while purchasing; retry", resource="share_pool", user_id=user_id
            ) from exc
        return PurchaseResult(lot=lot, transaction=txn, quote=purchase)

    def sell(self, user_id: int, lot_id: int, quantity: int) -> SaleResult:
        """Sell part or all of a mature lot back at its cost plus the markup.

        Pool counters are not touched: sold units stay retired.
        """
        try:
            pricing.validate_quantity(quantity)
            with self._lot_locks.hold(lot_id):
                now = self.now()
                lot = self.lot_repo.get_by_id(lot_id, user_id=user_id)
                if lot is None or lot.is_sold:
                    raise LotNotFound("Share not found", lot_id=lot_id)
                if not pricing.is_mature(lot, now):
                    raise NotMature(
                        "Shares are not mature yet",
                        lot_id=lot_id,
                        matures_at=ensure_utc(lot.matures_at),
                    )
                if quantity > lot.quantity:
                    raise ExceedsHolding(
                        "Cannot sell more shares than you own",
                        lot_id=lot_id,
                        requested=quantity,
                        remaining=lot.quantity,
                    )
                payout = pricing.to_money(pricing.sell_price(lot, quantity))
                result = self._commit_sale(user_id, lot, quantity, payout, now)
        except ShareEngineError as exc:
            logger.info(
                "Sale rejected",
                extra={"user_id": user_id, "lot_id": lot_id, "quantity": quantity, "reason": exc.reason},
            )
            raise

        logger.info(
            "Sale settled",
            extra={
                "user_id": user_id,
                "lot_id": lot_id,
                "quantity": quantity,
                "payout": str(payout),
                "remaining": result.lot.quantity,
            },
        )
        return result

    def _commit_sale(
        self, user_id: int, lot: ShareLot, quantity: int, payout: Decimal, now: datetime
    ) -> SaleResult:
        try:
            with self.session_factory() as session:
                updated = self.lot_repo.consume(
                    session, lot.id, quantity, user_id=user_id, now=now
                )
                txn = self.transaction_repo.append(
                    session,
                    user_id=user_id,
                    kind=SELL,
                    quantity=quantity,
                    unit_price=lot.unit_price,
                    total_amount=payout,
                    created_at=now,
                    lot_id=lot.id,
                )
        except OperationalError as exc:
            raise ConcurrentConflict(
                "Database busy while selling; retry", resource="share_lot", lot_id=lot.id
            ) from exc
        return SaleResult(lot=updated, transaction=txn, payout=payout)
