"""
Account database model.
Represents accounts whose balance is moved by payments.
"""

from sqlalchemy import Column, String, Numeric, DateTime, Integer
from datetime import datetime
from app.database import Base
from app.models.ledger import AccountRecord, MONEY_PRECISION, MONEY_SCALE


class Account(Base):
    """
    Account table - stores the authoritative balance of each account.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(String(50), unique=True, index=True, nullable=False)
    balance = Column(Numeric(precision=MONEY_PRECISION, scale=MONEY_SCALE), nullable=False, default=0.00)
    # Incremented on every balance update; used for conditional writes
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_record(self) -> AccountRecord:
        return AccountRecord(
            account_id=self.account_id,
            balance=self.balance,
            created_at=self.created_at,
            version=self.version,
        )

    def __repr__(self):
        return f"<Account(account_id={self.account_id}, balance={self.balance}, version={self.version})>"
