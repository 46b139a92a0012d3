"""Privileged operations: pricing, admin flags and platform rollups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlmodel import select

from ..clock import Clock, ensure_utc, utc_now
from ..errors import InvalidValue, PermissionDenied
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelLotRepository,
    SQLModelPoolRepository,
    SQLModelTransactionRepository,
)
from ..logging_config import get_logger
from ..models.pool import SharePool
from ..models.user import User
from . import auth
from .pricing import ZERO, to_money

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlatformSummary:
    total_units: int
    units_sold: int
    available_units: int
    price: Decimal
    total_users: int
    total_transactions: int
    total_volume: Decimal

    @property
    def availability_pct(self) -> int:
        if self.total_units <= 0:
            return 0
        return round(self.available_units * 100 / self.total_units)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_units": self.total_units,
            "units_sold": self.units_sold,
            "available_units": self.available_units,
            "availability_pct": self.availability_pct,
            "price": str(to_money(self.price)),
            "total_users": self.total_users,
            "total_transactions": self.total_transactions,
            "total_volume": str(to_money(self.total_volume)),
        }


@dataclass(frozen=True)
class UserOverview:
    id: int
    email: str
    created_at: datetime
    is_admin: bool
    units_owned: int
    total_spent: Decimal

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
            "is_admin": self.is_admin,
            "units_owned": self.units_owned,
            "total_spent": str(to_money(self.total_spent)),
        }


def require_admin(actor_id: int | None, *, action: str, session_factory: SessionFactory) -> User:
    """Return the acting user, or raise PermissionDenied if they are not an admin."""
    actor = auth.get_user(actor_id, session_factory) if actor_id is not None else None
    if actor is None or not actor.is_admin:
        logger.warning("Admin action denied", extra={"user_id": actor_id, "action": action})
        raise PermissionDenied("Admin access required", user_id=actor_id, action=action)
    return actor


def set_share_price(
    *,
    actor_id: int,
    new_price: Decimal | str,
    session_factory: SessionFactory,
    clock: Clock = utc_now,
) -> SharePool:
    """Change the pool price for future purchases only."""
    require_admin(actor_id, action="set_share_price", session_factory=session_factory)
    pool_repo = SQLModelPoolRepository(session_factory)
    previous = pool_repo.current_price()
    pool = pool_repo.set_price(new_price, now=ensure_utc(clock()))
    logger.info(
        "Share price updated",
        extra={"user_id": actor_id, "old_price": str(previous), "new_price": str(pool.unit_price)},
    )
    return pool


def set_admin_flag(
    *,
    actor_id: int,
    target_user_id: int,
    is_admin: bool,
    session_factory: SessionFactory,
) -> User:
    """Grant or revoke the admin capability.

    Any admin may demote any admin, themselves and the last remaining one included.
    """
    require_admin(actor_id, action="set_admin_flag", session_factory=session_factory)
    try:
        target = auth.update_admin_flag(
            user_id=target_user_id, is_admin=is_admin, session_factory=session_factory
        )
    except LookupError as exc:
        raise InvalidValue("User not found", field="user_id", value=target_user_id) from exc

    logger.info(
        "Admin flag updated",
        extra={"user_id": actor_id, "target_user_id": target_user_id, "is_admin": is_admin},
    )
    if not is_admin:
        if target_user_id == actor_id:
            logger.warning("Admin revoked their own admin flag", extra={"user_id": actor_id})
        with session_factory() as session:
            remaining = session.exec(
                select(func.count(User.id)).where(User.is_admin == True)  # noqa: E712
            ).one()
        if not remaining:
            logger.warning("No admin users remain", extra={"user_id": actor_id})
    return target


def platform_summary(*, actor_id: int, session_factory: SessionFactory) -> PlatformSummary:
    """Roll up pool state and the whole transaction log; recomputed on every call."""
    require_admin(actor_id, action="platform_summary", session_factory=session_factory)
    pool = SQLModelPoolRepository(session_factory).snapshot()
    total_transactions, total_volume = SQLModelTransactionRepository(session_factory).totals()
    return PlatformSummary(
        total_units=pool.total_units,
        units_sold=pool.units_sold,
        available_units=pool.available_units,
        price=pool.unit_price,
        total_users=auth.count_users(session_factory),
        total_transactions=total_transactions,
        total_volume=total_volume,
    )


def list_user_overview(*, actor_id: int, session_factory: SessionFactory) -> list[UserOverview]:
    """Per-user holdings and spend, newest account first."""
    require_admin(actor_id, action="list_user_overview", session_factory=session_factory)
    held = SQLModelLotRepository(session_factory).units_held_by_user()
    spent = SQLModelTransactionRepository(session_factory).spent_by_user()
    return [
        UserOverview(
            id=user.id,
            email=user.email,
            created_at=ensure_utc(user.created_at),
            is_admin=user.is_admin,
            units_owned=held.get(user.id, 0),
            total_spent=spent.get(user.id, ZERO),
        )
        for user in auth.list_users(session_factory)
    ]
