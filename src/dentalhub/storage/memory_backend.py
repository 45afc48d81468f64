"""In-memory key-value store."""

import json
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from dentalhub.storage.base import KeyValueStore
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store keeping each document as serialised JSON.

    Reads always return a fresh copy, so callers can mutate what they get
    without touching stored state.
    """

    def __init__(self, scope: str = "memory", quota_bytes: Optional[int] = None):
        """Initialize in-memory store."""
        super().__init__(scope, quota_bytes)
        self._data: Dict[str, str] = {}
        self._depth = 0

    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under ``key`` or ``None``."""
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        sizes = {k: len(v.encode("utf-8")) for k, v in self._data.items()}
        self.check_quota(key, value, sizes)
        self._data[key] = json.dumps(value, separators=(",", ":"))

    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""
        self._data.pop(key, None)

    def clear(self) -> None:
        """Delete every key."""
        self._data.clear()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Snapshot on entry, restore the snapshot if the block raises."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = dict(self._data)
        self._depth = 1
        try:
            yield
        except BaseException:
            self._data = snapshot
            logger.debug("memory_transaction_rolled_back", scope=self.scope)
            raise
        finally:
            self._depth = 0
