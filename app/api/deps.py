"""
Request dependencies wiring the ledger store into the payment services.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database import get_db
from app.services.payments import PaymentEngine, PaymentQueryService
from app.store.base import LedgerStore
from app.store.sql import SqlAlchemyLedgerStore


def get_sql_ledger_store(db: Session = Depends(get_db)) -> LedgerStore:
    """Ledger store over the request-scoped database session."""
    return SqlAlchemyLedgerStore(db)


def get_memory_ledger_store(request: Request) -> LedgerStore:
    """The single in-process store kept on app.state; opens no session."""
    return request.app.state.memory_store


# Backend is chosen once at import from LEDGER_BACKEND
get_ledger_store = (
    get_memory_ledger_store if settings.LEDGER_BACKEND == "memory" else get_sql_ledger_store
)


def get_payment_engine(
    request: Request,
    store: LedgerStore = Depends(get_ledger_store)
) -> PaymentEngine:
    return PaymentEngine(store, locks=request.app.state.account_locks)


def get_payment_query(store: LedgerStore = Depends(get_ledger_store)) -> PaymentQueryService:
    return PaymentQueryService(store)
