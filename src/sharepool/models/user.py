"""User model supporting authentication and the admin capability."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .lot import ShareLot
    from .transaction import ShareTransaction


class User(SQLModel, table=True):
    """Registered investor; ``is_admin`` gates the admin operations."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(nullable=False, unique=True, index=True, max_length=255)
    password_hash: str = Field(nullable=False, max_length=255)
    is_admin: bool = Field(default=False, nullable=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    last_login: Optional[datetime] = Field(default=None)

    lots: list["ShareLot"] = Relationship(
        back_populates="user",
        sa_relationship=relationship("ShareLot", back_populates="user"),
    )
    transactions: list["ShareTransaction"] = Relationship(
        back_populates="user",
        sa_relationship=relationship("ShareTransaction", back_populates="user"),
    )
