"""
Transaction database model.
Represents the immutable debit and credit records of the ledger.
"""

from sqlalchemy import Column, String, Numeric, DateTime, Integer, ForeignKey, Index, Enum as SQLEnum
from datetime import datetime
from app.database import Base
from app.models.ledger import MONEY_PRECISION, MONEY_SCALE, TransactionRecord, TransactionStatus, TransactionType


class Transaction(Base):
    """
    Transaction table - one row per accepted payment, keyed by its reference.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(100), unique=True, index=True, nullable=False)
    account_id = Column(String(50), ForeignKey("accounts.account_id"), index=True, nullable=False)
    amount = Column(Numeric(precision=MONEY_PRECISION, scale=MONEY_SCALE), nullable=False)
    type = Column(SQLEnum(TransactionType), nullable=False)
    status = Column(SQLEnum(TransactionStatus), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    applied_version = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_transactions_account_version", "account_id", "applied_version"),
    )

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "Transaction":
        return cls(
            reference=record.reference,
            account_id=record.account_id,
            amount=record.amount,
            type=record.type,
            status=record.status,
            created_at=record.created_at,
            applied_version=record.applied_version,
        )

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            reference=self.reference,
            account_id=self.account_id,
            amount=self.amount,
            type=self.type,
            status=self.status,
            created_at=self.created_at,
            applied_version=self.applied_version,
        )

    def __repr__(self):
        return f"<Transaction(reference={self.reference}, account={self.account_id}, type={self.type}, amount={self.amount})>"
