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

"""Firestore-backed implementation of the document store."""

import logging
from typing import Callable, Optional, TypeVar

from firebase_admin import firestore
from google.api_core import exceptions

from shared.document_store import DEFAULT_MAX_ATTEMPTS, Transaction
from shared.errors import NotFoundError, StoreFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _FirestoreTransaction:
    """Adapts a native Firestore transaction to the `Transaction` protocol."""

    def __init__(self, client, transaction):
        self._client = client
        self._transaction = transaction

    def _ref(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self._ref(collection, doc_id).get(transaction=self._transaction)
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self._transaction.set(self._ref(collection, doc_id), document)

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._transaction.update(self._ref(collection, doc_id), fields)

    def delete(self, collection: str, doc_id: str) -> None:
        self._transaction.delete(self._ref(collection, doc_id))


class FirestoreDocumentStore:
    """
    Document store on top of the Firebase Admin Firestore client.

    Transactions use Firestore's own optimistic transactions, which re-run the
    callback on contention up to `max_attempts` times.
    """

    def __init__(self, client=None, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self._client = client if client is not None else firestore.client()
        self._max_attempts = max_attempts

    def _ref(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            snapshot = self._ref(collection, doc_id).get()
        except exceptions.GoogleAPICallError as e:
            logger.error("Error reading %s/%s: %s", collection, doc_id, e)
            raise StoreFailureError(f"Error reading {collection}/{doc_id}") from e
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        try:
            self._ref(collection, doc_id).set(document)
        except exceptions.GoogleAPICallError as e:
            logger.error("Error writing %s/%s: %s", collection, doc_id, e)
            raise StoreFailureError(f"Error writing {collection}/{doc_id}") from e

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        try:
            self._ref(collection, doc_id).update(fields)
        except exceptions.NotFound as e:
            raise NotFoundError(collection, doc_id) from e
        except exceptions.GoogleAPICallError as e:
            logger.error("Error updating %s/%s: %s", collection, doc_id, e)
            raise StoreFailureError(f"Error updating {collection}/{doc_id}") from e

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._ref(collection, doc_id).delete()
        except exceptions.GoogleAPICallError as e:
            logger.error("Error deleting %s/%s: %s", collection, doc_id, e)
            raise StoreFailureError(f"Error deleting {collection}/{doc_id}") from e

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        transaction = self._client.transaction(max_attempts=self._max_attempts)

        @firestore.transactional
        def _run(transaction):
            return fn(_FirestoreTransaction(self._client, transaction))

        try:
            return _run(transaction)
        except exceptions.GoogleAPICallError as e:
            logger.error("Firestore transaction failed: %s", e)
            raise StoreFailureError("Firestore transaction failed") from e
        except ValueError as e:
            # Raised by the client once every attempt has been aborted.
            logger.error("Firestore transaction gave up: %s", e)
            raise StoreFailureError(str(e)) from e
