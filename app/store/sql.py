"""
SQLAlchemy implementation of the ledger store.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.account import Account
from app.models.ledger import AccountRecord, TransactionRecord
from app.models.transaction import Transaction
from app.store.base import (
    AccountExistsError,
    ConcurrentUpdateError,
    DuplicateReferenceError,
    LedgerStore,
    RecordNotFoundError,
    StoreError,
)


class SqlAlchemyLedgerStore(LedgerStore):
    """
    Ledger store backed by a request-scoped SQLAlchemy session.
    Every operation commits its own unit of work.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: str) -> AccountRecord:
        try:
            account = self.db.query(Account).filter(Account.account_id == account_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"account lookup failed: {e}") from e

        if not account:
            raise RecordNotFoundError(f"Account {account_id} not found")

        return account.to_record()

    def update_balance(
        self,
        account_id: str,
        new_balance: Decimal,
        expected_version: Optional[int] = None,
    ) -> None:
        stmt = (
            update(Account)
            .where(Account.account_id == account_id)
            .values(balance=new_balance, version=Account.version + 1)
        )
        if expected_version is not None:
            stmt = stmt.where(Account.version == expected_version)

        try:
            result = self.db.execute(stmt)
            if result.rowcount == 1:
                self.db.commit()
                return
            self.db.rollback()
            # Nothing matched: either the account is gone or its version moved
            exists = self.db.query(Account.id).filter(Account.account_id == account_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"balance update failed: {e}") from e

        if not exists:
            raise RecordNotFoundError(f"Account {account_id} not found")
        raise ConcurrentUpdateError(
            f"Account {account_id} changed since version {expected_version}"
        )

    def insert_transaction(self, tx: TransactionRecord) -> None:
        try:
            self.db.add(Transaction.from_record(tx))
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # The unique index on reference is the only constraint a valid
            # record can violate once the account exists
            if self._reference_exists(tx.reference):
                raise DuplicateReferenceError(f"Transaction {tx.reference} already exists") from e
            raise StoreError(f"transaction insert failed: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"transaction insert failed: {e}") from e

    def get_transaction_by_reference(self, reference: str) -> TransactionRecord:
        try:
            transaction = self.db.query(Transaction).filter(
                Transaction.reference == reference
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"transaction lookup failed: {e}") from e

        if not transaction:
            raise RecordNotFoundError(f"Transaction {reference} not found")

        return transaction.to_record()

    def get_transactions_for_version(self, account_id: str, version: int) -> List[TransactionRecord]:
        try:
            transactions = self.db.query(Transaction).filter(
                Transaction.account_id == account_id,
                Transaction.applied_version == version,
            ).order_by(Transaction.id).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"transaction lookup failed: {e}") from e

        return [transaction.to_record() for transaction in transactions]

    def create_account(self, account_id: str, balance: Decimal = Decimal("0.00")) -> AccountRecord:
        account = Account(account_id=account_id, balance=balance, version=0)
        try:
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
        except IntegrityError as e:
            self.db.rollback()
            raise AccountExistsError(f"Account {account_id} already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"account insert failed: {e}") from e

        return account.to_record()

    def _reference_exists(self, reference: str) -> bool:
        try:
            return self.db.query(Transaction.id).filter(
                Transaction.reference == reference
            ).first() is not None
        except SQLAlchemyError:
            self.db.rollback()
            return False
