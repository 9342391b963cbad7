# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Document store abstraction used by every Launchpad service.

A store addresses whole documents by (collection, document id). Mutations that
span a read and a write run through `run_transaction`, which gives the callback
a transaction exposing the same document calls. Reads must precede writes and
the writes are applied atomically when the callback returns, so a
read-modify-write cannot silently overwrite a concurrent change.
"""

import copy
import itertools
import logging
import threading
from typing import Callable, Dict, List, Optional, Protocol, Tuple, TypeVar

from shared.errors import NotFoundError, StoreFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")
DocKey = Tuple[str, str]
WriteOp = Tuple[str, Optional[dict]]

DEFAULT_MAX_ATTEMPTS = 5


class TransactionConflict(Exception):
    """A document read by the transaction changed before it could commit."""


class ReadAfterWriteError(Exception):
    """A transaction attempted a read after it had buffered a write."""


class Transaction(Protocol):
    """Document operations available inside `DocumentStore.run_transaction`."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        ...

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...


class DocumentStore(Protocol):
    """Interface the services need from the persistence layer."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        ...

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        ...


class BufferedTransaction:
    """
    Optimistic transaction shared by the non-Firestore stores.

    Records the version of every document it reads and buffers writes until
    `commit`. Subclasses implement `_read` and `commit`; `commit` must raise
    `TransactionConflict` when any recorded version is stale.
    """

    def __init__(self):
        self.read_versions: Dict[DocKey, Optional[int]] = {}
        self.writes: Dict[DocKey, List[WriteOp]] = {}

    def _read(self, key: DocKey) -> Tuple[Optional[int], Optional[dict]]:
        raise NotImplementedError

    def commit(self) -> None:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        if self.writes:
            raise ReadAfterWriteError(
                "Transactions must perform all reads before any writes."
            )
        key = (collection, doc_id)
        version, data = self._read(key)
        self.read_versions[key] = version
        return copy.deepcopy(data)

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self._buffer(collection, doc_id, ("set", copy.deepcopy(document)))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._buffer(collection, doc_id, ("update", copy.deepcopy(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._buffer(collection, doc_id, ("delete", None))

    def _buffer(self, collection: str, doc_id: str, op: WriteOp) -> None:
        self.writes.setdefault((collection, doc_id), []).append(op)


def apply_writes(
    key: DocKey, current: Optional[dict], ops: List[WriteOp]
) -> Optional[dict]:
    """Folds buffered writes over a document. None means the document is gone."""
    data = copy.deepcopy(current)
    for op, payload in ops:
        if op == "set":
            data = copy.deepcopy(payload)
        elif op == "update":
            if data is None:
                raise NotFoundError(key[0], key[1])
            data.update(copy.deepcopy(payload))
        else:
            data = None
    return data


def run_with_retries(
    new_transaction: Callable[[], BufferedTransaction],
    fn: Callable[[Transaction], T],
    max_attempts: int,
) -> T:
    """
    Runs `fn` in a fresh transaction until it commits without conflict.

    Only commit conflicts are retried. Errors raised by `fn` propagate at once
    and nothing is written.
    """
    for attempt in range(1, max_attempts + 1):
        transaction = new_transaction()
        result = fn(transaction)
        try:
            transaction.commit()
        except TransactionConflict as e:
            logger.info(
                "Transaction conflict on attempt %s of %s: %s",
                attempt,
                max_attempts,
                e,
            )
            continue
        return result
    raise StoreFailureError(
        f"Transaction aborted after {max_attempts} attempts due to contention."
    )


class _InMemoryTransaction(BufferedTransaction):
    def __init__(self, store: "InMemoryDocumentStore"):
        super().__init__()
        self._store = store

    def _read(self, key: DocKey) -> Tuple[Optional[int], Optional[dict]]:
        return self._store._snapshot(key)

    def commit(self) -> None:
        self._store._commit(self)


class InMemoryDocumentStore:
    """Thread-safe in-memory document store for development and tests."""

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.max_attempts = max_attempts
        self.documents: Dict[DocKey, Tuple[int, dict]] = {}
        self._lock = threading.Lock()
        self._versions = itertools.count(1)

    def _snapshot(self, key: DocKey) -> Tuple[Optional[int], Optional[dict]]:
        with self._lock:
            entry = self.documents.get(key)
            if entry is None:
                return None, None
            version, data = entry
            return version, copy.deepcopy(data)

    def _commit(self, transaction: BufferedTransaction) -> None:
        with self._lock:
            for key, expected in transaction.read_versions.items():
                entry = self.documents.get(key)
                current = entry[0] if entry else None
                if current != expected:
                    raise TransactionConflict(
                        f"{key[0]}/{key[1]} changed (read version {expected}, now {current})"
                    )

            # Fold everything before touching the map so a failed update
            # leaves the store unchanged.
            results = {}
            for key, ops in transaction.writes.items():
                entry = self.documents.get(key)
                results[key] = apply_writes(key, entry[1] if entry else None, ops)

            for key, data in results.items():
                if data is None:
                    self.documents.pop(key, None)
                else:
                    self.documents[key] = (next(self._versions), data)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        _, data = self._snapshot((collection, doc_id))
        return data

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self.run_transaction(lambda t: t.set(collection, doc_id, document))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self.run_transaction(lambda t: t.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self.run_transaction(lambda t: t.delete(collection, doc_id))

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        return run_with_retries(
            lambda: _InMemoryTransaction(self), fn, self.max_attempts
        )

    def reset(self) -> None:
        """Clear all stored documents (useful in tests)."""
        with self._lock:
            self.documents.clear()
