"""SQLModel definitions for the buy/sell transaction log."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .user import User

BUY = "buy"
SELL = "sell"
TRANSACTION_KINDS = frozenset({BUY, SELL})


class ShareTransaction(SQLModel, table=True):
    """Immutable record of one executed buy or sell."""

    __tablename__: ClassVar[str] = "share_transaction"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    kind: str = Field(nullable=False, max_length=8, index=True)
    quantity: int = Field(nullable=False)
    unit_price: Decimal = Field(nullable=False, max_digits=14, decimal_places=4)
    total_amount: Decimal = Field(nullable=False, max_digits=16, decimal_places=2)
    created_at: datetime = Field(nullable=False, index=True)
    lot_id: Optional[int] = Field(default=None, foreign_key="share_lot.id", index=True)

    user: "User" = Relationship(
        back_populates="transactions",
        sa_relationship=relationship("User", back_populates="transactions"),
    )
