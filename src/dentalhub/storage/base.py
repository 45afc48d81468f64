"""Base key-value storage abstraction.

Every record of the access core is a JSON document stored under a string key
in one of two scopes: a long-lived persistent scope and a session scope that
lives as long as one client session.
"""

import json
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from dentalhub.utils.exceptions import QuotaExceededException
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


def document_size(value: Any) -> int:
    """Size in bytes of a value once serialised to JSON."""
    return len(json.dumps(value, separators=(",", ":")).encode("utf-8"))


class KeyValueStore(ABC):
    """Abstract base class for key-value stores."""

    def __init__(self, scope: str, quota_bytes: Optional[int] = None):
        """Initialize store.

        Args:
            scope: Name of the scope this store serves
            quota_bytes: Capacity of the scope, ``None`` for unlimited
        """
        self.scope = scope
        self.quota_bytes = quota_bytes

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under ``key`` or ``None``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``.

        Raises:
            QuotaExceededException: If the write would exceed the capacity
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every key in the scope."""

    @abstractmethod
    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Group writes atomically.

        Nested calls join the outermost transaction. An exception escaping
        the outermost block discards every write made inside it.
        """
        yield  # pragma: no cover

    def check_quota(self, key: str, value: Any, sizes: Dict[str, int]) -> None:
        """Raise if writing ``value`` under ``key`` would overflow the scope.

        Args:
            key: Key being written
            value: New document
            sizes: Current serialised size of every key in the scope
        """
        if self.quota_bytes is None:
            return
        required = document_size(value) + sum(
            size for other, size in sizes.items() if other != key
        )
        if required > self.quota_bytes:
            logger.error(
                "storage_quota_exceeded",
                scope=self.scope,
                key=key,
                required=required,
                capacity=self.quota_bytes,
            )
            raise QuotaExceededException(key, required, self.quota_bytes)
