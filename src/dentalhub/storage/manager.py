"""Storage manager holding the persistent and session scopes."""

from contextlib import ExitStack, contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine

from dentalhub.config import Settings
from dentalhub.core.database import create_session_factory, engine_for_settings, init_db
from dentalhub.storage.base import KeyValueStore
from dentalhub.storage.memory_backend import MemoryKeyValueStore
from dentalhub.storage.sql_backend import SQLKeyValueStore
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


class StorageManager:
    """Gives services access to both storage scopes.

    ``persistent`` keeps users, clinics, subscriptions, login failures, edit
    locks and the logs. ``session_scope`` keeps the current session and
    pending one-time codes.
    """

    def __init__(self, persistent: KeyValueStore, session_scope: KeyValueStore):
        """Initialize storage manager."""
        self.persistent = persistent
        self.session_scope = session_scope

    @classmethod
    def in_memory(cls, settings: Optional[Settings] = None) -> "StorageManager":
        """Both scopes in process memory."""
        quota = settings.storage_quota_bytes if settings else None
        return cls(
            persistent=MemoryKeyValueStore("persistent", quota),
            session_scope=MemoryKeyValueStore("session", quota),
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, engine: Optional[Engine] = None
    ) -> "StorageManager":
        """Persistent scope in the configured database, session scope in memory."""
        engine = engine or engine_for_settings(settings)
        init_db(engine)
        logger.info("storage_initialized", backend=engine.dialect.name)
        return cls(
            persistent=SQLKeyValueStore(
                create_session_factory(engine),
                scope="persistent",
                quota_bytes=settings.storage_quota_bytes,
            ),
            session_scope=MemoryKeyValueStore("session", settings.storage_quota_bytes),
        )

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Open a transaction spanning both scopes."""
        with ExitStack() as stack:
            stack.enter_context(self.persistent.transaction())
            stack.enter_context(self.session_scope.transaction())
            yield
