"""
Database models package.
"""

from app.models.account import Account
from app.models.transaction import Transaction
from app.models.ledger import (
    AccountRecord,
    PaymentKind,
    PaymentResult,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "Account",
    "Transaction",
    "AccountRecord",
    "PaymentKind",
    "PaymentResult",
    "TransactionRecord",
    "TransactionStatus",
    "TransactionType",
]
