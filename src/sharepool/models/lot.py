"""Share lots: the unsold remainder of a single purchase."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


class ShareLot(SQLModel, table=True):
    """Units bought in one purchase.

    ``quantity`` is what is still held; ``unit_price`` and ``matures_at`` are fixed
    at purchase and survive partial sells.
    """

    __tablename__: ClassVar[str] = "share_lot"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    quantity: int = Field(nullable=False)
    original_quantity: int = Field(nullable=False)
    unit_price: Decimal = Field(nullable=False, max_digits=14, decimal_places=4)
    purchased_at: datetime = Field(nullable=False, index=True)
    matures_at: datetime = Field(nullable=False, index=True)
    is_sold: bool = Field(default=False, nullable=False, index=True)
    sold_at: Optional[datetime] = Field(default=None)

    user: "User" = Relationship(
        back_populates="lots",
        sa_relationship=relationship("User", back_populates="lots"),
    )

    @property
    def purchase_total(self) -> Decimal:
        """Cost basis of the units still held."""
        return self.unit_price * self.quantity
