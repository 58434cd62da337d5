"""Key/value storage shared by every collection.

Each value is a JSON document addressed by key. Every write stamps the entry
with a database-wide revision that only grows, which is what the sync loop
uses to order and de-duplicate change notifications. A ``Storage`` instance
belongs to one execution context (its ``origin``); entries written by other
origins are reported by ``changes_since``.
"""

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from warehouse.errors import PersistenceError
from warehouse.models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)

# Mutations from every context in this process are serialized.
_write_lock = threading.RLock()


@dataclass(frozen=True)
class StorageChange:
    key: str
    origin: str
    revision: int


class _TxState(threading.local):
    session: Session | None = None
    callbacks: list[Callable[[], None]]
    keys: set[str]

    def __init__(self):
        self.session = None
        self.callbacks = []
        self.keys = set()


class Storage:
    def __init__(self, session_factory: sessionmaker, origin: str | None = None):
        self._session_factory = session_factory
        self.origin = origin or uuid.uuid4().hex[:12]
        self._tx = _TxState()

    # --- transactions ---

    @contextmanager
    def transaction(self):
        """Group writes into one database transaction.

        Nested calls join the outermost transaction. Callbacks registered with
        ``after_commit`` run once the outermost transaction has committed.
        """
        if self._tx.session is not None:
            yield
            return

        with _write_lock:
            session = self._session_factory()
            self._tx.session = session
            committed = False
            try:
                yield
                try:
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    raise PersistenceError(", ".join(sorted(self._tx.keys)) or "storage", "commit", e) from e
                committed = True
            except BaseException:
                if not committed:
                    session.rollback()
                raise
            finally:
                session.close()
                callbacks = self._tx.callbacks
                self._tx.session = None
                self._tx.callbacks = []
                self._tx.keys = set()

        for callback in callbacks:
            callback()

    def in_transaction(self) -> bool:
        return self._tx.session is not None

    def after_commit(self, callback: Callable[[], None]) -> None:
        if self._tx.session is None:
            callback()
        else:
            self._tx.callbacks.append(callback)

    @contextmanager
    def _session(self):
        if self._tx.session is not None:
            yield self._tx.session
            return
        session = self._session_factory()
        try:
            yield session
        finally:
            session.close()

    # --- key/value access ---

    def get_item(self, key: str) -> str | None:
        try:
            with self._session() as session:
                entry = session.get(StorageEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            raise PersistenceError(key, "read", e) from e

    def set_item(self, key: str, value: str) -> int:
        """Write ``value`` under ``key`` and return the new revision."""
        with self.transaction():
            session = self._tx.session
            try:
                revision = (session.scalar(select(func.max(StorageEntry.revision))) or 0) + 1
                entry = session.get(StorageEntry, key)
                if entry is None:
                    entry = StorageEntry(key=key, value=value, origin=self.origin, revision=revision)
                    session.add(entry)
                else:
                    entry.value = value
                    entry.origin = self.origin
                    entry.revision = revision
                session.flush()
            except SQLAlchemyError as e:
                raise PersistenceError(key, "write", e) from e
            self._tx.keys.add(key)
        return revision

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        return json.loads(raw) if raw is not None else default

    def set_json(self, key: str, value: Any) -> int:
        return self.set_item(key, json.dumps(value, ensure_ascii=False))

    # --- change tracking ---

    def revision(self) -> int:
        try:
            with self._session() as session:
                return session.scalar(select(func.max(StorageEntry.revision))) or 0
        except SQLAlchemyError as e:
            raise PersistenceError("storage", "read", e) from e

    def changes_since(self, revision: int, include_own: bool = False) -> list[StorageChange]:
        """Entries written after ``revision``, oldest first."""
        q = select(StorageEntry.key, StorageEntry.origin, StorageEntry.revision).where(
            StorageEntry.revision > revision
        )
        if not include_own:
            q = q.where(StorageEntry.origin != self.origin)
        try:
            with self._session() as session:
                rows = session.execute(q.order_by(StorageEntry.revision)).all()
        except SQLAlchemyError as e:
            raise PersistenceError("storage", "read", e) from e
        return [StorageChange(key=r.key, origin=r.origin, revision=r.revision) for r in rows]
