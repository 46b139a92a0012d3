"""Per-user index of the most recent purchase."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar

from sqlmodel import Field, SQLModel


class PurchaseWindow(SQLModel, table=True):
    """Written in the same database transaction as every ``buy`` record."""

    __tablename__: ClassVar[str] = "purchase_window"

    user_id: int = Field(foreign_key="user.id", primary_key=True)
    last_purchase_at: datetime = Field(nullable=False)
