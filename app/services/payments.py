"""
Payment services.

PaymentEngine posts a single debit or credit: it records the transaction
first and then writes the new balance. PaymentQueryService resolves a
recorded transaction by its reference. Both depend only on a LedgerStore.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from app.core.errors import (
    AccountNotFoundError,
    BalanceUpdateFailure,
    InsufficientFundsError,
    PersistenceError,
    ReferenceConflictError,
    ReferenceNotFoundError,
    TransactionPersistFailure,
    ValidationError,
)
from app.models.ledger import (
    CENT,
    MAX_MONEY,
    MONEY_SCALE,
    PaymentKind,
    PaymentResult,
    TransactionRecord,
    TransactionStatus,
)
from app.services.locks import AccountLockRegistry, AccountLockTimeout
from app.store.base import (
    DuplicateReferenceError,
    LedgerStore,
    RecordNotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)


def parse_kind(kind: Union[str, PaymentKind, None]) -> PaymentKind:
    """Parse the payment type selector; only lower-case debit/credit are accepted."""
    try:
        return PaymentKind(kind)
    except ValueError:
        raise ValidationError("invalid payment type") from None


def parse_amount(amount: Union[Decimal, int, float, str]) -> Decimal:
    """Parse a payment amount into cents; it must fit the money columns exactly."""
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError("amount must be a number") from None
    if not value.is_finite() or value <= 0:
        raise ValidationError("amount must be positive")
    if value > MAX_MONEY:
        raise ValidationError("amount exceeds the supported range")
    cents = value.quantize(CENT)
    if cents != value:
        raise ValidationError(f"amount must have at most {MONEY_SCALE} decimal places")
    return cents


class PaymentEngine:
    """
    Posts payments against account balances.

    Mutations on one account are serialized through ``locks``; the store's
    conditional balance write catches writers outside this process. A
    reference that was already posted is replayed, not applied twice.
    """

    def __init__(self, store: LedgerStore, locks: Optional[AccountLockRegistry] = None):
        self.store = store
        self.locks = locks if locks is not None else AccountLockRegistry()

    def post_payment(
        self,
        account_id: str,
        reference: str,
        amount: Decimal,
        kind: Union[str, PaymentKind, None],
    ) -> PaymentResult:
        payment_kind = parse_kind(kind)
        amount = parse_amount(amount)

        try:
            with self.locks.hold(account_id):
                return self._post_locked(account_id, reference, amount, payment_kind)
        except AccountLockTimeout as e:
            logger.error("payment_rejected reason=account_busy account_id=%s reference=%s", account_id, reference)
            raise PersistenceError("account is busy") from e

    def _post_locked(
        self,
        account_id: str,
        reference: str,
        amount: Decimal,
        kind: PaymentKind,
    ) -> PaymentResult:
        existing = self._find_transaction(reference)
        if existing is not None:
            return self._replay(existing, account_id, amount, kind)

        try:
            account = self.store.get_account(account_id)
        except RecordNotFoundError as e:
            logger.warning("payment_rejected reason=account_not_found account_id=%s reference=%s", account_id, reference)
            raise AccountNotFoundError() from e
        except StoreError as e:
            logger.error("account_lookup_failed account_id=%s error=%s", account_id, e)
            raise PersistenceError() from e

        if kind is PaymentKind.DEBIT:
            if amount > account.balance:
                logger.warning(
                    "payment_rejected reason=insufficient_funds account_id=%s reference=%s amount=%s balance=%s",
                    account_id, reference, amount, account.balance,
                )
                raise InsufficientFundsError()
            new_balance = account.balance - amount
        else:
            new_balance = account.balance + amount
            if new_balance > MAX_MONEY:
                logger.warning(
                    "payment_rejected reason=balance_out_of_range account_id=%s reference=%s amount=%s",
                    account_id, reference, amount,
                )
                raise ValidationError("resulting balance exceeds the supported range")

        transaction = TransactionRecord(
            reference=reference,
            account_id=account_id,
            amount=amount,
            type=kind.transaction_type,
            status=TransactionStatus.SUCCESS,
            applied_version=account.version + 1,
        )

        try:
            self.store.insert_transaction(transaction)
        except DuplicateReferenceError:
            # Another writer recorded this reference after our lookup
            winner = self._find_transaction(reference)
            if winner is None:
                raise TransactionPersistFailure()
            return self._replay(winner, account_id, amount, kind)
        except StoreError as e:
            logger.error("transaction_persist_failed account_id=%s reference=%s error=%s", account_id, reference, e)
            raise TransactionPersistFailure() from e

        try:
            self.store.update_balance(account_id, new_balance, expected_version=account.version)
        except StoreError as e:
            # The transaction is recorded but the balance does not reflect it
            logger.error(
                "balance_update_failed account_id=%s reference=%s type=%s amount=%s "
                "expected_balance=%s version=%s error=%s",
                account_id, reference, transaction.type.value, amount, new_balance, account.version, e,
            )
            raise BalanceUpdateFailure(reference=reference, account_id=account_id) from e

        logger.info(
            "payment_posted account_id=%s reference=%s type=%s amount=%s balance=%s",
            account_id, reference, transaction.type.value, amount, new_balance,
        )
        return PaymentResult.from_transaction(transaction)

    def _find_transaction(self, reference: str) -> Optional[TransactionRecord]:
        try:
            return self.store.get_transaction_by_reference(reference)
        except RecordNotFoundError:
            return None
        except StoreError as e:
            logger.error("transaction_lookup_failed reference=%s error=%s", reference, e)
            raise PersistenceError() from e

    def _replay(
        self,
        existing: TransactionRecord,
        account_id: str,
        amount: Decimal,
        kind: PaymentKind,
    ) -> PaymentResult:
        if (
            existing.account_id != account_id
            or existing.amount != amount
            or existing.type is not kind.transaction_type
        ):
            logger.warning(
                "payment_rejected reason=reference_conflict reference=%s account_id=%s",
                existing.reference, account_id,
            )
            raise ReferenceConflictError()

        if not self._movement_applied(existing):
            # Recorded earlier but its balance write never landed
            logger.error(
                "balance_update_failed account_id=%s reference=%s type=%s amount=%s replayed=true",
                account_id, existing.reference, existing.type.value, existing.amount,
            )
            raise BalanceUpdateFailure(reference=existing.reference, account_id=account_id)

        logger.info("payment_replayed account_id=%s reference=%s", account_id, existing.reference)
        return PaymentResult.from_transaction(existing, replayed=True)

    def _movement_applied(self, existing: TransactionRecord) -> bool:
        """
        Whether the balance reflects a recorded transaction.

        A movement is applied when the account reached the version it
        targeted and no later transaction claimed that same version.
        """
        if existing.applied_version is None:
            return True
        try:
            account = self.store.get_account(existing.account_id)
            if account.version < existing.applied_version:
                return False
            claimants = self.store.get_transactions_for_version(
                existing.account_id, existing.applied_version
            )
        except StoreError as e:
            logger.error("replay_check_failed reference=%s error=%s", existing.reference, e)
            raise PersistenceError() from e
        return bool(claimants) and claimants[-1].reference == existing.reference


class PaymentQueryService:
    """Resolves recorded payments by reference."""

    def __init__(self, store: LedgerStore):
        self.store = store

    def get_payment(self, reference: str) -> PaymentResult:
        try:
            transaction = self.store.get_transaction_by_reference(reference)
        except RecordNotFoundError as e:
            raise ReferenceNotFoundError() from e
        except StoreError as e:
            logger.error("transaction_lookup_failed reference=%s error=%s", reference, e)
            raise PersistenceError() from e

        return PaymentResult.from_transaction(transaction)
