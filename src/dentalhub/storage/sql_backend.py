"""SQLAlchemy-backed key-value store."""

import copy
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy.orm import Session, sessionmaker

from dentalhub.core.database import get_db
from dentalhub.models.kv_entry import KVEntry
from dentalhub.storage.base import KeyValueStore, document_size
from dentalhub.utils.logging import get_logger
from dentalhub.utils.time import utcnow

logger = get_logger(__name__)


class SQLKeyValueStore(KeyValueStore):
    """Stores documents as rows of the ``kv_entries`` table.

    Each outermost transaction runs in one ORM session that commits on a
    clean exit and rolls back when the block raises. Calls outside a
    transaction get a short-lived session of their own.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        scope: str = "persistent",
        quota_bytes: Optional[int] = None,
    ):
        """Initialize SQL store.

        Args:
            session_factory: Factory producing ORM sessions
            scope: Scope column value separating this store's rows
            quota_bytes: Capacity of the scope, ``None`` for unlimited
        """
        super().__init__(scope, quota_bytes)
        self._session_factory = session_factory
        self._active: Optional[Session] = None

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        if self._active is not None:
            yield self._active
            return
        with get_db(self._session_factory) as db:
            yield db

    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under ``key`` or ``None``."""
        with self._session() as db:
            entry = db.get(KVEntry, (self.scope, key))
            # Callers get a detached copy so in-place edits are seen by set()
            return None if entry is None else copy.deepcopy(entry.value)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        with self._session() as db:
            entries = db.query(KVEntry).filter(KVEntry.scope == self.scope).all()
            self.check_quota(
                key, value, {e.key: document_size(e.value) for e in entries}
            )
            entry = db.get(KVEntry, (self.scope, key))
            if entry is None:
                db.add(KVEntry(scope=self.scope, key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = utcnow()
            db.flush()

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        with self._session() as db:
            entry = db.get(KVEntry, (self.scope, key))
            if entry is not None:
                db.delete(entry)
                db.flush()

    def clear(self) -> None:
        """Delete every row of this scope."""
        with self._session() as db:
            db.query(KVEntry).filter(KVEntry.scope == self.scope).delete()
            db.flush()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Run the block in one ORM session."""
        if self._active is not None:
            yield
            return

        with get_db(self._session_factory) as db:
            self._active = db
            try:
                yield
            finally:
                self._active = None
