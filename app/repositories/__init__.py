"""Ledger store implementations"""

from .ledger import LedgerStore, SqlAlchemyLedgerStore, PointsAward, new_profile
from .memory import InMemoryLedgerStore

__all__ = [
    "LedgerStore",
    "SqlAlchemyLedgerStore",
    "InMemoryLedgerStore",
    "PointsAward",
    "new_profile",
]
