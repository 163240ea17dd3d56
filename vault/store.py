"""
store.py - Record storage with per-record atomic read-modify-write

Every record (the oracle, each deposit ledger) is its own lockable unit.
Operations on different keys never share a lock, so independent depositors
never wait on each other. Records are frozen; readers always get a fully
committed snapshot.

Usage:
    store = RecordStore()
    store.create("alice", DepositLedger("alice"))
    with store.locked("alice") as txn:
        txn.record                      # committed snapshot
        txn.commit(new_ledger)          # applied when the block exits cleanly

An exception inside the block discards the staged record.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
import threading

from .core import RecordExists, RecordNotFound


class RecordTransaction:
    """Staging area for a single locked read-modify-write."""

    def __init__(self, key: str, record: Any):
        self.key = key
        self.record = record
        self._staged: Optional[Any] = None

    def commit(self, record: Any) -> None:
        """Stage `record` to replace the current one when the lock is released."""
        if type(record) is not type(self.record):
            raise TypeError(
                f"Cannot replace {type(self.record).__name__} with {type(record).__name__}"
            )
        self._staged = record

    @property
    def staged(self) -> Optional[Any]:
        return self._staged


class RecordStore:
    """
    Keyed store of immutable records.

    Thread Safety:
        Thread-safe. A registry lock guards record creation and lock lookup;
        each key then has its own reentrant lock held for the duration of a
        read-modify-write.
    """

    def __init__(self):
        self._records: Dict[str, Any] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def create(self, key: str, record: Any) -> Any:
        """
        Allocate a new record under `key`.

        Raises:
            RecordExists: If the key is already allocated.
        """
        with self._registry_lock:
            if key in self._records:
                raise RecordExists(f"Record {key} already exists")
            self._locks[key] = threading.RLock()
            self._records[key] = record
        return record

    def exists(self, key: str) -> bool:
        with self._registry_lock:
            return key in self._records

    def get(self, key: str) -> Any:
        """
        Return the committed record for `key`.

        Raises:
            RecordNotFound: If the key was never allocated.
        """
        with self._registry_lock:
            if key not in self._records:
                raise RecordNotFound(f"Record {key} not found")
            return self._records[key]

    def keys(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._records.keys())

    def _lock_for(self, key: str) -> threading.RLock:
        with self._registry_lock:
            if key not in self._locks:
                raise RecordNotFound(f"Record {key} not found")
            return self._locks[key]

    @contextmanager
    def locked(self, key: str) -> Iterator[RecordTransaction]:
        """
        Hold the lock for `key` and yield a RecordTransaction.

        The staged record is committed only if the block exits without an
        exception. Nothing is written otherwise.
        """
        lock = self._lock_for(key)
        with lock:
            txn = RecordTransaction(key, self._records[key])
            yield txn
            if txn.staged is not None:
                with self._registry_lock:
                    self._records[key] = txn.staged
