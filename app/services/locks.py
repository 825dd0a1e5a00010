"""
Per-account write serialization.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


class AccountLockTimeout(Exception):
    """The account lock could not be acquired in time."""


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Callers currently waiting on or holding the lock
    users: int = 0


class AccountLockRegistry:
    """
    Hands out one lock per account id so balance mutations on the same
    account run one at a time within this process. Different accounts
    never block each other.

    Entries are reference counted and dropped once no caller uses them,
    so the registry only holds accounts with a payment in flight.
    """

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout_seconds = timeout_seconds
        self._guard = threading.Lock()
        self._locks: Dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire_entry(self, account_id: str) -> _LockEntry:
        with self._guard:
            entry = self._locks.get(account_id)
            if entry is None:
                entry = self._locks[account_id] = _LockEntry()
            entry.users += 1
            return entry

    def _release_entry(self, account_id: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[account_id]

    @contextmanager
    def hold(self, account_id: str) -> Iterator[None]:
        entry = self._acquire_entry(account_id)
        try:
            if not entry.lock.acquire(timeout=self.timeout_seconds):
                raise AccountLockTimeout(
                    f"Timed out after {self.timeout_seconds}s waiting for account {account_id}"
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._release_entry(account_id, entry)
