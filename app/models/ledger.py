"""
Store-independent ledger records.
These are what the payment services and every LedgerStore backend exchange.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

# Money columns are Numeric(MONEY_PRECISION, MONEY_SCALE)
MONEY_PRECISION = 15
MONEY_SCALE = 2
CENT = Decimal("0.01")
MAX_MONEY = Decimal("9999999999999.99")


class TransactionType(str, enum.Enum):
    """Direction of a balance movement."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class TransactionStatus(str, enum.Enum):
    """Transaction status states."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class PaymentKind(str, enum.Enum):
    """Payment type selector supplied with the request (``?type=``)."""
    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.DEBIT if self is PaymentKind.DEBIT else TransactionType.CREDIT


@dataclass
class AccountRecord:
    account_id: str
    balance: Decimal
    created_at: datetime
    version: int = 0


@dataclass
class TransactionRecord:
    reference: str
    account_id: str
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    created_at: datetime = field(default_factory=datetime.utcnow)
    # Account version the balance write for this movement produces
    applied_version: Optional[int] = None


@dataclass
class PaymentResult:
    """Projection returned to callers of both payment operations."""
    account_id: str
    reference: str
    amount: Decimal
    replayed: bool = False

    @classmethod
    def from_transaction(cls, tx: TransactionRecord, replayed: bool = False) -> "PaymentResult":
        return cls(
            account_id=tx.account_id,
            reference=tx.reference,
            amount=tx.amount,
            replayed=replayed,
        )
