"""LMDB-backed storage for records, the composite index, processing states and payments."""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import lmdb

from permitdb.models import IndexKey, Payment, ProcessingState, Record

DEFAULT_MAP_SIZE = 1024 * 1024 * 1024
MAX_DBS = 1000
_DATABASES = ("main_db", "composite_index", "processing_state_db", "payments_db")


def _encode(data) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class Transaction:
    """Typed access to the store's databases inside one LMDB transaction."""

    def __init__(self, txn: lmdb.Transaction, databases: dict) -> None:
        self._txn = txn
        self._main = databases["main_db"]
        self._index = databases["composite_index"]
        self._processing = databases["processing_state_db"]
        self._payments = databases["payments_db"]

    def _prefix(self, db, prefix: str) -> Iterator[tuple[str, bytes]]:
        raw_prefix = prefix.encode("utf-8")
        with self._txn.cursor(db) as cursor:
            if not cursor.set_range(raw_prefix):
                return
            for key, value in cursor:
                if not key.startswith(raw_prefix):
                    break
                yield key.decode("utf-8"), value

    def _get(self, db, key: str) -> Optional[bytes]:
        return self._txn.get(key.encode("utf-8"), db=db)

    # Records

    def get_record(self, key: str) -> Optional[Record]:
        raw = self._get(self._main, key)
        return None if raw is None else Record.from_dict(json.loads(raw))

    def put_record(self, key: str, record: Record) -> None:
        self._txn.put(key.encode("utf-8"), _encode(record.to_dict()), db=self._main)

    def delete_record(self, key: str) -> bool:
        return self._txn.delete(key.encode("utf-8"), db=self._main)

    def iter_records(self) -> Iterator[tuple[str, Record]]:
        """All records in key order."""
        return self.iter_records_prefix("")

    def iter_records_prefix(self, prefix: str) -> Iterator[tuple[str, Record]]:
        for key, raw in self._prefix(self._main, prefix):
            yield key, Record.from_dict(json.loads(raw))

    def count_records(self) -> int:
        return self._txn.stat(self._main)["entries"]

    # Composite index

    def get_index(self, key: IndexKey) -> Optional[set[str]]:
        raw = self._txn.get(key.to_bytes(), db=self._index)
        return None if raw is None else set(json.loads(raw))

    def put_index(self, key: IndexKey, uuids) -> None:
        self._txn.put(key.to_bytes(), _encode(sorted(uuids)), db=self._index)

    # Processing states

    def get_processing(self, key: str) -> Optional[ProcessingState]:
        raw = self._get(self._processing, key)
        return None if raw is None else ProcessingState.from_dict(json.loads(raw))

    def put_processing(self, key: str, state: ProcessingState) -> None:
        self._txn.put(key.encode("utf-8"), _encode(state.to_dict()), db=self._processing)

    def delete_processing(self, key: str) -> bool:
        return self._txn.delete(key.encode("utf-8"), db=self._processing)

    def iter_processing_prefix(self, prefix: str) -> Iterator[tuple[str, ProcessingState]]:
        for key, raw in self._prefix(self._processing, prefix):
            yield key, ProcessingState.from_dict(json.loads(raw))

    # Payments

    def get_payment(self, key: str) -> Optional[Payment]:
        raw = self._get(self._payments, key)
        return None if raw is None else Payment.from_dict(json.loads(raw))

    def put_payment(self, key: str, payment: Payment) -> None:
        self._txn.put(key.encode("utf-8"), _encode(payment.to_dict()), db=self._payments)

    def delete_payment(self, key: str) -> bool:
        return self._txn.delete(key.encode("utf-8"), db=self._payments)

    def iter_payments_prefix(self, prefix: str) -> Iterator[tuple[str, Payment]]:
        for key, raw in self._prefix(self._payments, prefix):
            yield key, Payment.from_dict(json.loads(raw))


class Store:
    """An LMDB environment holding the four named databases."""

    def __init__(self, path, map_size: int = DEFAULT_MAP_SIZE) -> None:
        self.path = Path(os.fspath(path))
        self.path.mkdir(parents=True, exist_ok=True)
        self._env = lmdb.open(str(self.path), map_size=map_size, max_dbs=MAX_DBS)
        self._dbs = {name: self._env.open_db(name.encode("ascii")) for name in _DATABASES}

    def close(self) -> None:
        self._env.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def read(self) -> Iterator[Transaction]:
        """A read-only transaction."""
        with self._env.begin(write=False) as txn:
            yield Transaction(txn, self._dbs)

    @contextmanager
    def write(self) -> Iterator[Transaction]:
        """A write transaction, committed on success and aborted on error."""
        with self._env.begin(write=True) as txn:
            yield Transaction(txn, self._dbs)


def open_store(path) -> Store:
    """Open (creating if needed) the store at ``path``."""
    return Store(path)