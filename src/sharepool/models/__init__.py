"""SQLModel table exports."""

from .lot import ShareLot
from .pool import POOL_ID, SharePool, check_price
from .purchase_window import PurchaseWindow
from .transaction import BUY, SELL, ShareTransaction
from .user import User

__all__ = [
    "BUY",
    "POOL_ID",
    "SELL",
    "PurchaseWindow",
    "ShareLot",
    "SharePool",
    "ShareTransaction",
    "User",
    "check_price",
]
