"""
In-process ledger store.

Holds accounts and transactions in dictionaries guarded by one lock. Used
when LEDGER_BACKEND=memory and by the engine tests.
"""

import threading
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from app.models.ledger import AccountRecord, TransactionRecord
from app.store.base import (
    AccountExistsError,
    ConcurrentUpdateError,
    DuplicateReferenceError,
    LedgerStore,
    RecordNotFoundError,
)


class InMemoryLedgerStore(LedgerStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._accounts: Dict[str, AccountRecord] = {}
        self._transactions: Dict[str, TransactionRecord] = {}

    def create_account(self, account_id: str, balance: Decimal = Decimal("0.00")) -> AccountRecord:
        record = AccountRecord(
            account_id=account_id,
            balance=Decimal(balance),
            created_at=datetime.utcnow(),
        )
        with self._lock:
            if account_id in self._accounts:
                raise AccountExistsError(f"Account {account_id} already exists")
            self._accounts[account_id] = record
        return replace(record)

    def get_account(self, account_id: str) -> AccountRecord:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise RecordNotFoundError(f"Account {account_id} not found")
            return replace(account)

    def update_balance(
        self,
        account_id: str,
        new_balance: Decimal,
        expected_version: Optional[int] = None,
    ) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise RecordNotFoundError(f"Account {account_id} not found")
            if expected_version is not None and account.version != expected_version:
                raise ConcurrentUpdateError(
                    f"Account {account_id} changed since version {expected_version}"
                )
            self._accounts[account_id] = replace(
                account, balance=new_balance, version=account.version + 1
            )

    def insert_transaction(self, tx: TransactionRecord) -> None:
        with self._lock:
            if tx.reference in self._transactions:
                raise DuplicateReferenceError(f"Transaction {tx.reference} already exists")
            self._transactions[tx.reference] = replace(tx)

    def get_transaction_by_reference(self, reference: str) -> TransactionRecord:
        with self._lock:
            tx = self._transactions.get(reference)
            if tx is None:
                raise RecordNotFoundError(f"Transaction {reference} not found")
            return replace(tx)

    def get_transactions_for_version(self, account_id: str, version: int) -> List[TransactionRecord]:
        # dicts keep insertion order
        with self._lock:
            return [
                replace(tx) for tx in self._transactions.values()
                if tx.account_id == account_id and tx.applied_version == version
            ]

    def count_transactions(self, reference: Optional[str] = None) -> int:
        with self._lock:
            if reference is None:
                return len(self._transactions)
            return int(reference in self._transactions)
