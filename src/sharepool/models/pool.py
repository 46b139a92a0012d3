"""Platform-wide share pool state."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import ClassVar

from sqlmodel import Field, SQLModel

from ..errors import InvalidValue

POOL_ID = 1

# unit_price is stored as NUMERIC(14, 4)
PRICE_STEP = Decimal("0.0001")
MAX_PRICE = Decimal("10000000000")


class SharePool(SQLModel, table=True):
    """Singleton row holding the pool counters and the current unit price.

    ``version`` is bumped by every write so readers can tell snapshots apart.
    """

    __tablename__: ClassVar[str] = "share_pool"

    id: int = Field(default=POOL_ID, primary_key=True)
    total_units: int = Field(nullable=False)
    units_sold: int = Field(default=0, nullable=False)
    unit_price: Decimal = Field(nullable=False, max_digits=14, decimal_places=4)
    version: int = Field(default=1, nullable=False)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def available_units(self) -> int:
        return max(self.total_units - self.units_sold, 0)


def check_price(value: object) -> Decimal:
    """Parse a unit price the ``unit_price`` column can store exactly.

    Raises InvalidValue for non-numbers, non-positive values, more than four
    decimal places, or amounts too large for the column.
    """
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
        exact = price.is_finite() and price.quantize(PRICE_STEP) == price
    except (InvalidOperation, ValueError) as exc:
        raise InvalidValue(f"Invalid share price: {value!r}", field="price", value=value) from exc
    if not price.is_finite() or price <= 0:
        raise InvalidValue("Price must be greater than zero", field="price", value=price)
    if not exact:
        raise InvalidValue(
            "Price can have at most 4 decimal places", field="price", value=price
        )
    if price >= MAX_PRICE:
        raise InvalidValue("Price is too large", field="price", value=price)
    return price
