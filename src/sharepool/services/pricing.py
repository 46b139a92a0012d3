"""Eligibility and pricing calculators.

Everything here is pure: callers pass the lots, pool numbers and "now", and get
values back. Money stays an unrounded ``Decimal`` until ``to_money`` is applied at
display or settlement time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable, Optional

from ..clock import ensure_utc
from ..errors import InvalidValue
from ..models.lot import ShareLot

MATURITY_PERIOD = timedelta(hours=24)
PURCHASE_COOLDOWN = timedelta(hours=24)
PROFIT_RATE = Decimal("0.02")
MARKUP = Decimal("1") + PROFIT_RATE
CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal) -> Decimal:
    """Round to cents using banker's rounding."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def validate_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidValue("Quantity must be a positive whole number", field="quantity", value=quantity)


@dataclass(frozen=True)
class Quote:
    """Cost and projected redemption value of a purchase."""

    quantity: int
    unit_price: Decimal
    total_price: Decimal
    future_value: Decimal
    profit: Decimal

    def to_dict(self) -> dict[str, object]:
        return {
            "quantity": self.quantity,
            "unit_price": str(to_money(self.unit_price)),
            "total_price": str(to_money(self.total_price)),
            "future_value": str(to_money(self.future_value)),
            "profit": str(to_money(self.profit)),
        }


@dataclass(frozen=True)
class PortfolioSummary:
    total_quantity: int = 0
    total_cost: Decimal = ZERO
    mature_quantity: int = 0
    mature_value: Decimal = ZERO
    pending_quantity: int = 0
    pending_value: Decimal = ZERO
    pending_projected_value: Decimal = ZERO

    @property
    def realizable_profit(self) -> Decimal:
        """Profit that can be collected right now by selling every mature lot."""
        return self.mature_value - self.mature_value / MARKUP

    def to_dict(self) -> dict[str, object]:
        return {
            "total_quantity": self.total_quantity,
            "total_cost": str(to_money(self.total_cost)),
            "mature_quantity": self.mature_quantity,
            "mature_value": str(to_money(self.mature_value)),
            "realizable_profit": str(to_money(self.realizable_profit)),
            "pending_quantity": self.pending_quantity,
            "pending_value": str(to_money(self.pending_value)),
            "pending_projected_value": str(to_money(self.pending_projected_value)),
        }


@dataclass(frozen=True)
class LotView:
    """Read model of a single lot as of a given instant."""

    id: int
    quantity: int
    original_quantity: int
    unit_price: Decimal
    purchase_total: Decimal
    purchased_at: datetime
    matures_at: datetime
    is_mature: bool
    expected_profit: Decimal
    sell_value: Decimal
    seconds_to_maturity: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "quantity": self.quantity,
            "original_quantity": self.original_quantity,
            "unit_price": str(to_money(self.unit_price)),
            "purchase_total": str(to_money(self.purchase_total)),
            "purchased_at": self.purchased_at.isoformat(),
            "matures_at": self.matures_at.isoformat(),
            "is_mature": self.is_mature,
            "expected_profit": str(to_money(self.expected_profit)),
            "sell_value": str(to_money(self.sell_value)),
            "seconds_to_maturity": self.seconds_to_maturity,
        }


def can_purchase_today(last_purchase_at: Optional[datetime], now: datetime) -> bool:
    """True when the user never bought, or the cooldown has fully elapsed.

    The boundary instant itself counts as eligible.
    """
    if last_purchase_at is None:
        return True
    return ensure_utc(now) >= ensure_utc(last_purchase_at) + PURCHASE_COOLDOWN


def next_eligible_at(last_purchase_at: Optional[datetime], now: datetime) -> Optional[datetime]:
    """When the user may buy again, or None if they already may."""
    if can_purchase_today(last_purchase_at, now):
        return None
    return ensure_utc(last_purchase_at) + PURCHASE_COOLDOWN


def max_purchasable_today(available_units: int, daily_cap: int) -> int:
    return max(0, min(available_units, daily_cap))


def quote(quantity: int, unit_price: Decimal) -> Quote:
    validate_quantity(quantity)
    if unit_price <= 0:
        raise InvalidValue("Price must be greater than zero", field="price", value=unit_price)
    total_price = unit_price * quantity
    future_value = total_price * MARKUP
    return Quote(
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        future_value=future_value,
        profit=future_value - total_price,
    )


def maturity_timestamp(purchased_at: datetime) -> datetime:
    """Exactly 24 hours after purchase; not tied to calendar days."""
    return ensure_utc(purchased_at) + MATURITY_PERIOD


def is_mature(lot: ShareLot, now: datetime) -> bool:
    return ensure_utc(now) >= ensure_utc(lot.matures_at)


def expected_profit(lot: ShareLot) -> Decimal:
    return lot.purchase_total * PROFIT_RATE


def sell_price(lot: ShareLot, quantity: int) -> Decimal:
    """Payout for selling ``quantity`` units of ``lot``.

    The markup applies per unit of the lot's own cost, so selling part of a lot
    pays exactly the matching fraction of selling all of it.
    """
    validate_quantity(quantity)
    unit_cost = lot.purchase_total / lot.quantity
    return unit_cost * quantity * MARKUP


def _accrued_fraction(lot: ShareLot, now: datetime) -> Decimal:
    purchased_at = ensure_utc(lot.purchased_at)
    window = (ensure_utc(lot.matures_at) - purchased_at).total_seconds()
    if window <= 0:
        return Decimal(1)
    elapsed = (ensure_utc(now) - purchased_at).total_seconds()
    fraction = Decimal(str(elapsed)) / Decimal(str(window))
    return min(max(fraction, ZERO), Decimal(1))


def portfolio_summary(lots: Iterable[ShareLot], now: datetime) -> PortfolioSummary:
    """Aggregate unsold lots into holdings, mature value and pending value.

    Pending lots are valued at cost plus the part of their profit accrued so far,
    growing linearly from purchase to maturity.
    """
    total_quantity = mature_quantity = pending_quantity = 0
    total_cost = mature_value = pending_value = pending_projected = ZERO

    for lot in lots:
        if lot.is_sold or lot.quantity <= 0:
            continue
        cost = lot.purchase_total
        total_quantity += lot.quantity
        total_cost += cost
        if is_mature(lot, now):
            mature_quantity += lot.quantity
            mature_value += cost * MARKUP
        else:
            pending_quantity += lot.quantity
            pending_value += cost + cost * PROFIT_RATE * _accrued_fraction(lot, now)
            pending_projected += cost * MARKUP

    return PortfolioSummary(
        total_quantity=total_quantity,
        total_cost=total_cost,
        mature_quantity=mature_quantity,
        mature_value=mature_value,
        pending_quantity=pending_quantity,
        pending_value=pending_value,
        pending_projected_value=pending_projected,
    )


def lot_view(lot: ShareLot, now: datetime) -> LotView:
    matures_at = ensure_utc(lot.matures_at)
    remaining = (matures_at - ensure_utc(now)).total_seconds()
    return LotView(
        id=lot.id,
        quantity=lot.quantity,
        original_quantity=lot.original_quantity,
        unit_price=lot.unit_price,
        purchase_total=lot.purchase_total,
        purchased_at=ensure_utc(lot.purchased_at),
        matures_at=matures_at,
        is_mature=is_mature(lot, now),
        expected_profit=expected_profit(lot),
        sell_value=sell_price(lot, lot.quantity),
        seconds_to_maturity=max(int(remaining), 0),
    )
