"""
Ledger store interface.

The payment services only ever talk to a LedgerStore; concrete backends
translate their own failures into the exceptions defined here.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from app.models.ledger import AccountRecord, TransactionRecord


class StoreError(Exception):
    """A store operation failed, including timeouts."""


class RecordNotFoundError(StoreError):
    """The requested account or transaction does not exist."""


class DuplicateReferenceError(StoreError):
    """A transaction with the same reference is already recorded."""


class ConcurrentUpdateError(StoreError):
    """The account changed between read and conditional write."""


class AccountExistsError(StoreError):
    """An account with the same id is already provisioned."""


class LedgerStore(ABC):
    """
    Persistence operations required by the payment services.

    Each operation is atomic against its own record only; there is no
    atomicity between inserting a transaction and updating a balance.
    """

    @abstractmethod
    def get_account(self, account_id: str) -> AccountRecord:
        """Return the account or raise RecordNotFoundError."""

    @abstractmethod
    def update_balance(
        self,
        account_id: str,
        new_balance: Decimal,
        expected_version: Optional[int] = None,
    ) -> None:
        """
        Set the balance and bump the account version.

        When ``expected_version`` is given the write only applies if the
        stored version still matches, otherwise ConcurrentUpdateError.
        """

    @abstractmethod
    def insert_transaction(self, tx: TransactionRecord) -> None:
        """Append a transaction or raise DuplicateReferenceError."""

    @abstractmethod
    def get_transaction_by_reference(self, reference: str) -> TransactionRecord:
        """Return the transaction or raise RecordNotFoundError."""

    @abstractmethod
    def get_transactions_for_version(self, account_id: str, version: int) -> List[TransactionRecord]:
        """
        Return the transactions of an account whose movement targets
        ``version``, oldest first.
        """

    @abstractmethod
    def create_account(self, account_id: str, balance: Decimal = Decimal("0.00")) -> AccountRecord:
        """
        Provision an account out-of-band (admin router, seeding).
        Not used by the payment services. Raises AccountExistsError.
        """
