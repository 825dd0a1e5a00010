"""
Ledger store package.
"""

from app.store.base import (
    AccountExistsError,
    ConcurrentUpdateError,
    DuplicateReferenceError,
    LedgerStore,
    RecordNotFoundError,
    StoreError,
)
from app.store.memory import InMemoryLedgerStore
from app.store.sql import SqlAlchemyLedgerStore

__all__ = [
    "AccountExistsError",
    "ConcurrentUpdateError",
    "DuplicateReferenceError",
    "LedgerStore",
    "RecordNotFoundError",
    "StoreError",
    "InMemoryLedgerStore",
    "SqlAlchemyLedgerStore",
]
