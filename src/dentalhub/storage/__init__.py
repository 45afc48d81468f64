"""Key-value persistence for the access core."""

from dentalhub.storage.base import KeyValueStore
from dentalhub.storage.manager import StorageManager
from dentalhub.storage.memory_backend import MemoryKeyValueStore
from dentalhub.storage.sql_backend import SQLKeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLKeyValueStore",
    "StorageManager",
]
