"""
URL record store strategies.

Every operation is a single transaction: it either fully applies or leaves
the store untouched. Implementations:
- SQLAlchemyURLStore: relational database (SQLite/PostgreSQL)
- InMemoryURLStore: dict guarded by a lock, for tests and local runs
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import asdict, replace
from typing import Dict, List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from quickurl.exceptions import ConflictError, StoreError
from quickurl.models.record import URLRecord
from quickurl.models.url import URL

logger = logging.getLogger(__name__)


class URLStoreStrategy(ABC):
    """Storage contract consumed by the services."""

    @abstractmethod
    def insert(self, record: URLRecord) -> None:
        """
        Persist a new record.

        Raises:
            ConflictError: If the token or id already exists
        """
        pass

    @abstractmethod
    def get_by_token(self, token: str) -> Optional[URLRecord]:
        """Exact-match lookup. Returns None when the token is unknown."""
        pass

    @abstractmethod
    def list_all(self) -> List[URLRecord]:
        """All records, newest first (created_at descending)."""
        pass

    @abstractmethod
    def increment_click_count(self, token: str) -> int:
        """
        Atomically add 1 to click_count.

        Returns:
            Number of rows affected (0 if the token is unknown)
        """
        pass

    @abstractmethod
    def delete_by_token(self, token: str) -> int:
        """
        Hard delete, regardless of expiration.

        Returns:
            Number of rows affected (0 if the token is unknown)
        """
        pass


class SQLAlchemyURLStore(URLStoreStrategy):
    """
    Relational store on top of a SQLAlchemy session.

    The session comes from the request scope (get_db); the engine behind it
    is the only state shared between requests.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _transaction(self, action: str):
        """Commit on success; roll back and raise a store error on failure."""
        try:
            yield
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("Uniqueness violation during %s: %s", action, e.orig)
            raise ConflictError("Token already exists") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error during %s: %s", action, e)
            raise StoreError(f"Database error during {action}") from e

    @staticmethod
    def _to_record(row: URL) -> URLRecord:
        return URLRecord(
            id=row.id,
            token=row.token,
            original_url=row.original_url,
            title=row.title,
            created_at=row.created_at,
            expires_at=row.expires_at,
            click_count=row.click_count,
        )

    def insert(self, record: URLRecord) -> None:
        with self._transaction("insert"):
            self.db.add(URL(**asdict(record)))
            self.db.flush()

    def get_by_token(self, token: str) -> Optional[URLRecord]:
        with self._transaction("lookup"):
            row = self.db.query(URL).filter(URL.token == token).first()
            record = self._to_record(row) if row else None
        return record

    def list_all(self) -> List[URLRecord]:
        with self._transaction("list"):
            rows = (
                self.db.query(URL)
                .order_by(URL.created_at.desc(), URL.id)
                .all()
            )
            records = [self._to_record(row) for row in rows]
        return records

    def increment_click_count(self, token: str) -> int:
        # Single UPDATE statement: the database serializes concurrent increments
        with self._transaction("increment"):
            result = self.db.execute(
                update(URL)
                .where(URL.token == token)
                .values(click_count=URL.click_count + 1)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount

    def delete_by_token(self, token: str) -> int:
        with self._transaction("delete"):
            result = self.db.execute(
                delete(URL)
                .where(URL.token == token)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount


class InMemoryURLStore(URLStoreStrategy):
    """
    Dict-backed store.

    A single lock makes every operation atomic, which is enough to honor the
    same uniqueness and no-lost-update guarantees as the database.
    Data is lost on restart.
    """

    def __init__(self):
        self._records: Dict[str, URLRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: URLRecord) -> None:
        with self._lock:
            if record.token in self._records:
                raise ConflictError("Token already exists")
            if any(r.id == record.id for r in self._records.values()):
                raise ConflictError("Record id already exists")
            self._records[record.token] = record

    def get_by_token(self, token: str) -> Optional[URLRecord]:
        with self._lock:
            return self._records.get(token)

    def list_all(self) -> List[URLRecord]:
        with self._lock:
            records = list(self._records.values())
        records.sort(key=lambda r: r.id)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def increment_click_count(self, token: str) -> int:
        with self._lock:
            record = self._records.get(token)
            if record is None:
                return 0
            self._records[token] = replace(record, click_count=record.click_count + 1)
            return 1

    def delete_by_token(self, token: str) -> int:
        with self._lock:
            return 1 if self._records.pop(token, None) is not None else 0
