"""
Payment engine tests.
Exercises the money-movement rules directly against the in-memory store,
including persistence failures and concurrent payments.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal

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
from app.models.ledger import TransactionRecord, TransactionStatus, TransactionType
from app.services.locks import AccountLockRegistry, AccountLockTimeout
from app.services.payments import PaymentEngine, PaymentQueryService
from app.store.base import ConcurrentUpdateError, StoreError
from app.store.memory import InMemoryLedgerStore


class FailingInsertStore(InMemoryLedgerStore):
    """Store whose transaction insert always fails."""

    def insert_transaction(self, tx):
        raise StoreError("insert timed out")


class FailingBalanceStore(InMemoryLedgerStore):
    """Store whose balance update always fails after the insert succeeded."""

    def update_balance(self, account_id, new_balance, expected_version=None):
        raise StoreError("update timed out")


class FailOnceBalanceStore(InMemoryLedgerStore):
    """Store whose first balance update fails; later ones go through."""

    def __init__(self):
        super().__init__()
        self.failures_left = 1

    def update_balance(self, account_id, new_balance, expected_version=None):
        if self.failures_left:
            self.failures_left -= 1
            raise StoreError("update timed out")
        super().update_balance(account_id, new_balance, expected_version=expected_version)


class FailingLookupStore(InMemoryLedgerStore):
    """Store whose reads fail."""

    def get_transaction_by_reference(self, reference):
        raise StoreError("connection reset")


class StaleVersionStore(InMemoryLedgerStore):
    """Store where another process bumps the account between read and write."""

    def update_balance(self, account_id, new_balance, expected_version=None):
        super().update_balance(account_id, Decimal("0.00"))
        super().update_balance(account_id, new_balance, expected_version=expected_version)


@pytest.fixture
def store():
    store = InMemoryLedgerStore()
    store.create_account("acc_001", Decimal("10.00"))
    return store


@pytest.fixture
def engine(store):
    return PaymentEngine(store)


@pytest.fixture
def query(store):
    return PaymentQueryService(store)


def make_engine(store_cls, balance="10.00"):
    store = store_cls()
    store.create_account("acc_001", Decimal(balance))
    return store, PaymentEngine(store)


# ==================== DEBIT / CREDIT TESTS ====================

def test_debit(engine, store):
    """Test that a debit reduces the balance and records one DEBIT transaction."""
    result = engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    assert result.account_id == "acc_001"
    assert result.reference == "ref-001"
    assert result.amount == Decimal("1.50")
    assert result.replayed is False

    assert store.get_account("acc_001").balance == Decimal("8.50")
    tx = store.get_transaction_by_reference("ref-001")
    assert tx.type is TransactionType.DEBIT
    assert tx.status is TransactionStatus.SUCCESS
    assert store.count_transactions() == 1


def test_credit(engine, store):
    """Test that a credit increases the balance and records one CREDIT transaction."""
    engine.post_payment("acc_001", "ref-002", Decimal("1.50"), "credit")

    assert store.get_account("acc_001").balance == Decimal("11.50")
    tx = store.get_transaction_by_reference("ref-002")
    assert tx.type is TransactionType.CREDIT
    assert tx.status is TransactionStatus.SUCCESS


def test_balance_update_bumps_version(engine, store):
    """Test that every posted payment advances the account version."""
    engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")
    engine.post_payment("acc_001", "ref-002", Decimal("1.00"), "debit")

    assert store.get_account("acc_001").version == 2


def test_decimal_amounts_do_not_drift(engine, store):
    """Test that repeated small credits add up exactly."""
    for i in range(10):
        engine.post_payment("acc_001", f"ref-{i}", Decimal("0.10"), "credit")

    assert store.get_account("acc_001").balance == Decimal("11.00")


def test_float_amount_is_converted_exactly(engine, store):
    """Test that a float amount is read by its decimal representation."""
    engine.post_payment("acc_001", "ref-001", 0.1, "credit")

    assert store.get_account("acc_001").balance == Decimal("10.10")


# ==================== REJECTION TESTS ====================

def test_insufficient_funds(engine, store):
    """Test that a debit above the balance persists nothing."""
    with pytest.raises(InsufficientFundsError):
        engine.post_payment("acc_001", "ref-001", Decimal("100"), "debit")

    assert store.get_account("acc_001").balance == Decimal("10.00")
    assert store.count_transactions() == 0


def test_account_not_found(engine, store):
    """Test that a payment on a missing account fails before any write."""
    with pytest.raises(AccountNotFoundError):
        engine.post_payment("missing", "ref-001", Decimal("1.00"), "credit")

    assert store.count_transactions() == 0


@pytest.mark.parametrize("kind", ["refund", "DEBIT", "Credit", "", None])
def test_unknown_kind(engine, store, kind):
    """Test that anything but lower-case debit/credit is a validation error."""
    with pytest.raises(ValidationError):
        engine.post_payment("acc_001", "ref-001", Decimal("1.00"), kind)

    assert store.count_transactions() == 0


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1.00"), "abc", "NaN"])
def test_invalid_amount(engine, store, amount):
    """Test that non-positive or non-numeric amounts are rejected."""
    with pytest.raises(ValidationError):
        engine.post_payment("acc_001", "ref-001", amount, "credit")

    assert store.get_account("acc_001").balance == Decimal("10.00")


@pytest.mark.parametrize("amount", [Decimal("0.001"), "1.005", 0.001])
def test_sub_cent_amount_is_rejected(engine, store, amount):
    """Test that amounts finer than a cent are rejected instead of rounded."""
    with pytest.raises(ValidationError):
        engine.post_payment("acc_001", "ref-001", amount, "credit")

    assert store.count_transactions() == 0
    assert store.get_account("acc_001").balance == Decimal("10.00")


def test_trailing_zeros_are_not_extra_precision(engine, store):
    """Test that 1.500 is the same amount as 1.50 and replays as such."""
    engine.post_payment("acc_001", "ref-001", Decimal("1.500"), "credit")
    result = engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "credit")

    assert result.replayed is True
    assert store.get_transaction_by_reference("ref-001").amount == Decimal("1.50")


def test_amount_above_column_range(engine, store):
    """Test that an amount wider than the money columns is rejected."""
    with pytest.raises(ValidationError):
        engine.post_payment("acc_001", "ref-001", Decimal("10000000000000.00"), "credit")

    assert store.count_transactions() == 0


def test_credit_overflowing_balance_persists_nothing():
    """Test that a credit whose resulting balance does not fit is rejected before any write."""
    store, engine = make_engine(InMemoryLedgerStore, balance="9999999999999.99")

    with pytest.raises(ValidationError) as exc_info:
        engine.post_payment("acc_001", "ref-001", Decimal("0.01"), "credit")

    assert exc_info.value.message == "resulting balance exceeds the supported range"
    assert store.count_transactions() == 0
    assert store.get_account("acc_001").balance == Decimal("9999999999999.99")


# ==================== IDEMPOTENCY TESTS ====================

def test_replay_same_payment(engine, store):
    """Test that posting the same reference twice moves money once."""
    first = engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")
    second = engine.post_payment("acc_001", "ref-001", Decimal("1.5"), "debit")

    assert second.replayed is True
    assert (second.account_id, second.reference, second.amount) == (
        first.account_id, first.reference, first.amount
    )
    assert store.get_account("acc_001").balance == Decimal("8.50")
    assert store.count_transactions() == 1


def test_replay_skips_insufficient_funds_check(engine, store):
    """Test that a replayed debit succeeds even once the balance is too low."""
    engine.post_payment("acc_001", "ref-001", Decimal("10.00"), "debit")

    result = engine.post_payment("acc_001", "ref-001", Decimal("10.00"), "debit")
    assert result.replayed is True
    assert store.get_account("acc_001").balance == Decimal("0.00")


def test_reference_conflict(engine, store):
    """Test that reusing a reference with another account is rejected."""
    store.create_account("acc_002", Decimal("5.00"))
    engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")

    with pytest.raises(ReferenceConflictError):
        engine.post_payment("acc_002", "ref-001", Decimal("1.00"), "credit")

    assert store.get_account("acc_002").balance == Decimal("5.00")


def test_transaction_records_target_version(engine, store):
    """Test that each transaction remembers the account version its balance write produces."""
    engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")
    engine.post_payment("acc_001", "ref-002", Decimal("1.00"), "debit")

    assert store.get_transaction_by_reference("ref-001").applied_version == 1
    assert store.get_transaction_by_reference("ref-002").applied_version == 2


def test_retry_after_balance_update_failure_is_not_success():
    """Test that retrying a payment whose balance write failed does not report success."""
    store, engine = make_engine(FailOnceBalanceStore)

    with pytest.raises(BalanceUpdateFailure):
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    with pytest.raises(BalanceUpdateFailure) as exc_info:
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    assert exc_info.value.reference == "ref-001"
    assert exc_info.value.account_id == "acc_001"
    assert store.get_account("acc_001").balance == Decimal("10.00")
    assert store.count_transactions() == 1


def test_retry_after_failure_detects_version_taken_by_later_payment():
    """Test that a later payment reaching the same version does not make a failed one look applied."""
    store, engine = make_engine(FailOnceBalanceStore)

    with pytest.raises(BalanceUpdateFailure):
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")
    engine.post_payment("acc_001", "ref-002", Decimal("2.00"), "credit")

    with pytest.raises(BalanceUpdateFailure):
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    assert store.get_account("acc_001").balance == Decimal("12.00")


def test_replay_of_record_without_target_version(engine, store):
    """Test that transactions recorded before versions were tracked still replay."""
    store.insert_transaction(TransactionRecord(
        reference="legacy-001",
        account_id="acc_001",
        amount=Decimal("1.00"),
        type=TransactionType.CREDIT,
        status=TransactionStatus.SUCCESS,
    ))

    result = engine.post_payment("acc_001", "legacy-001", Decimal("1.00"), "credit")
    assert result.replayed is True


# ==================== PERSISTENCE FAILURE TESTS ====================

def test_transaction_persist_failure_leaves_balance():
    """Test that a failed insert surfaces distinctly and the balance is untouched."""
    store, engine = make_engine(FailingInsertStore)

    with pytest.raises(TransactionPersistFailure) as exc_info:
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == "error creating transaction record"
    assert store.get_account("acc_001").balance == Decimal("10.00")


def test_balance_update_failure_keeps_transaction():
    """Test the inconsistency window: transaction stored, balance unchanged."""
    store, engine = make_engine(FailingBalanceStore)

    with pytest.raises(BalanceUpdateFailure) as exc_info:
        engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    error = exc_info.value
    assert not isinstance(error, TransactionPersistFailure)
    assert error.reference == "ref-001"
    assert error.account_id == "acc_001"
    assert error.message == "error updating balance"

    assert store.get_account("acc_001").balance == Decimal("10.00")
    result = PaymentQueryService(store).get_payment("ref-001")
    assert result.amount == Decimal("1.50")


def test_stale_version_is_a_balance_update_failure():
    """Test that a write from another process is detected, not overwritten."""
    store, engine = make_engine(StaleVersionStore)

    with pytest.raises(BalanceUpdateFailure) as exc_info:
        engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")

    assert isinstance(exc_info.value.__cause__, ConcurrentUpdateError)
    assert store.get_account("acc_001").balance == Decimal("0.00")


def test_lookup_failure_is_persistence_error():
    """Test that a failing read is reported before any mutation."""
    store, engine = make_engine(FailingLookupStore)

    with pytest.raises(PersistenceError):
        engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")

    assert store.count_transactions() == 0
    assert store.get_account("acc_001").balance == Decimal("10.00")


def test_account_lock_timeout(store):
    """Test that a busy account is rejected once the lock wait runs out."""
    locks = AccountLockRegistry(timeout_seconds=0.01)
    engine = PaymentEngine(store, locks=locks)

    with locks.hold("acc_001"):
        with pytest.raises(PersistenceError) as exc_info:
            engine.post_payment("acc_001", "ref-001", Decimal("1.00"), "credit")

    assert exc_info.value.message == "account is busy"
    assert store.count_transactions() == 0
    assert len(locks) == 0


# ==================== QUERY TESTS ====================

def test_get_payment(engine, query):
    """Test resolving a posted payment returns what was submitted."""
    engine.post_payment("acc_001", "ref-001", Decimal("1.50"), "debit")

    result = query.get_payment("ref-001")
    assert (result.account_id, result.reference, result.amount) == ("acc_001", "ref-001", Decimal("1.50"))


def test_get_unknown_payment(query):
    """Test that an unknown reference is not found."""
    with pytest.raises(ReferenceNotFoundError):
        query.get_payment("never-posted")


def test_get_payment_store_failure():
    """Test that a failing store read is a persistence error, not a 404."""
    store = FailingLookupStore()

    with pytest.raises(PersistenceError) as exc_info:
        PaymentQueryService(store).get_payment("ref-001")

    assert not isinstance(exc_info.value, ReferenceNotFoundError)


# ==================== CONCURRENCY TESTS ====================

def test_concurrent_credits_lose_no_update(engine, store):
    """Test that 100 concurrent credits on one account all land."""
    def credit(i):
        engine.post_payment("acc_001", f"ref-{i}", Decimal("1.00"), "credit")
        return True

    with ThreadPoolExecutor(max_workers=20) as executor:
        futures = [executor.submit(credit, i) for i in range(100)]
        results = [future.result() for future in as_completed(futures)]

    assert all(results)
    assert store.get_account("acc_001").balance == Decimal("110.00")
    assert store.count_transactions() == 100


def test_concurrent_debits_never_overdraw(engine, store):
    """Test that only as many debits succeed as the balance allows."""
    def debit(i):
        try:
            engine.post_payment("acc_001", f"ref-{i}", Decimal("2.00"), "debit")
            return "success"
        except InsufficientFundsError:
            return "failed"

    with ThreadPoolExecutor(max_workers=10) as executor:
        futures = [executor.submit(debit, i) for i in range(10)]
        results = [future.result() for future in as_completed(futures)]

    assert results.count("success") == 5
    assert results.count("failed") == 5
    assert store.get_account("acc_001").balance == Decimal("0.00")


def test_concurrent_duplicate_references(engine, store):
    """Test that the same reference posted concurrently moves money once."""
    def credit():
        return engine.post_payment("acc_001", "ref-dup", Decimal("1.00"), "credit")

    with ThreadPoolExecutor(max_workers=10) as executor:
        futures = [executor.submit(credit) for _ in range(10)]
        results = [future.result() for future in as_completed(futures)]

    assert sum(1 for r in results if not r.replayed) == 1
    assert store.get_account("acc_001").balance == Decimal("11.00")
    assert store.count_transactions() == 1


def test_accounts_do_not_block_each_other(store):
    """Test that holding one account's lock does not stall another account."""
    store.create_account("acc_002", Decimal("0.00"))
    locks = AccountLockRegistry(timeout_seconds=0.01)
    engine = PaymentEngine(store, locks=locks)

    with locks.hold("acc_001"):
        engine.post_payment("acc_002", "ref-001", Decimal("1.00"), "credit")

    assert store.get_account("acc_002").balance == Decimal("1.00")


def test_lock_registry_is_shared_even_when_empty(store):
    """Test that the engine uses the registry it is given, not a fresh one."""
    locks = AccountLockRegistry()

    assert PaymentEngine(store, locks=locks).locks is locks


def test_lock_registry_forgets_idle_accounts(store):
    """Test that lock entries do not accumulate for unknown account ids."""
    locks = AccountLockRegistry()
    engine = PaymentEngine(store, locks=locks)

    for i in range(1000):
        with pytest.raises(AccountNotFoundError):
            engine.post_payment(f"missing-{i}", f"ref-{i}", Decimal("1.00"), "credit")
    engine.post_payment("acc_001", "ref-ok", Decimal("1.00"), "credit")

    assert len(locks) == 0


def test_lock_registry_keeps_entry_while_held():
    """Test that an entry lives exactly as long as someone holds or awaits it."""
    locks = AccountLockRegistry(timeout_seconds=0.01)

    with locks.hold("acc_001"):
        assert len(locks) == 1
        with pytest.raises(AccountLockTimeout):
            with locks.hold("acc_001"):
                pass
        assert len(locks) == 1

    assert len(locks) == 0
