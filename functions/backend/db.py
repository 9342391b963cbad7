"""
SQLAlchemy-backed document store (Postgres in production, SQLite in tests).

Each document is a JSON row with a version counter. Transactions remember the
version of every row they read and the commit re-checks those versions under a
row lock, so a stale read-modify-write aborts instead of overwriting.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy import JSON, Column, Integer, String, create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.document_store import (
    DEFAULT_MAX_ATTEMPTS,
    BufferedTransaction,
    DocKey,
    Transaction,
    TransactionConflict,
    apply_writes,
    run_with_retries,
)
from shared.errors import StoreFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _json_default(value):
    # Timestamps (join dates, achievement dates) are stored as ISO-8601 text.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value) -> str:
    return json.dumps(value, default=_json_default)


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)


class _SqlTransaction(BufferedTransaction):
    def __init__(self, store: "SqlDocumentStore"):
        super().__init__()
        self._store = store

    def _read(self, key: DocKey):
        return self._store._read(key)

    def commit(self) -> None:
        self._store._commit(self)


class SqlDocumentStore:
    """
    Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        self.max_attempts = max_attempts
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
            json_serializer=_dumps,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _read(self, key: DocKey):
        collection, doc_id = key
        try:
            with self.Session() as session:
                row = session.get(DocumentRow, (collection, doc_id))
                if not row:
                    return None, None
                return row.version, row.data
        except SQLAlchemyError as e:
            logger.exception("Error reading %s/%s", collection, doc_id)
            raise StoreFailureError(f"Error reading {collection}/{doc_id}") from e

    def _commit(self, transaction: BufferedTransaction) -> None:
        keys = set(transaction.read_versions) | set(transaction.writes)
        try:
            with self.Session() as session:
                rows = {}
                for key in sorted(keys):
                    stmt = (
                        select(DocumentRow)
                        .where(
                            DocumentRow.collection == key[0],
                            DocumentRow.doc_id == key[1],
                        )
                        .with_for_update()
                    )
                    rows[key] = session.execute(stmt).scalar_one_or_none()

                for key, expected in transaction.read_versions.items():
                    row = rows[key]
                    current = row.version if row else None
                    if current != expected:
                        raise TransactionConflict(
                            f"{key[0]}/{key[1]} changed (read version {expected}, now {current})"
                        )

                for key, ops in transaction.writes.items():
                    row = rows[key]
                    data = apply_writes(key, row.data if row else None, ops)
                    if data is None:
                        if row:
                            session.delete(row)
                    elif row:
                        row.data = data
                        row.version = row.version + 1
                    else:
                        session.add(
                            DocumentRow(
                                collection=key[0], doc_id=key[1], data=data, version=1
                            )
                        )
                session.commit()
        except IntegrityError as e:
            # Another transaction created one of our documents first.
            raise TransactionConflict(f"Concurrent insert: {e}") from e
        except SQLAlchemyError as e:
            logger.exception("Error committing transaction")
            raise StoreFailureError("Error committing transaction") from e

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        _, data = self._read((collection, doc_id))
        return data

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self.run_transaction(lambda t: t.set(collection, doc_id, document))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self.run_transaction(lambda t: t.update(collection, doc_id, fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self.run_transaction(lambda t: t.delete(collection, doc_id))

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        return run_with_retries(lambda: _SqlTransaction(self), fn, self.max_attempts)
