"""Concrete repository implementations using SQLModel."""

from .lot import SQLModelLotRepository
from .pool import SQLModelPoolRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelLotRepository",
    "SQLModelPoolRepository",
    "SQLModelTransactionRepository",
]
