"""Base service class for common functionality."""

from typing import Any, Dict, List, Optional, Type, TypeVar

from dentalhub.config import Settings, get_settings
from dentalhub.models.base import DocumentModel
from dentalhub.storage import KeyValueStore, StorageManager
from dentalhub.utils.time import Clock, utcnow

T = TypeVar("T", bound=DocumentModel)


class BaseService:
    """Base service class with shared storage helpers."""

    def __init__(
        self,
        storage: StorageManager,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize service with storage, settings and a clock."""
        self.storage = storage
        self.settings = settings or get_settings()
        self.clock: Clock = clock or utcnow

    @property
    def store(self) -> KeyValueStore:
        """The persistent scope."""
        return self.storage.persistent

    def load_list(
        self, key: str, model_class: Type[T], store: Optional[KeyValueStore] = None
    ) -> List[T]:
        """Load a list collection stored under ``key``."""
        raw = (store or self.store).get(key) or []
        return [model_class.from_document(item) for item in raw]

    def save_list(
        self, key: str, items: List[T], store: Optional[KeyValueStore] = None
    ) -> None:
        """Persist a list collection under ``key``."""
        (store or self.store).set(key, [item.to_document() for item in items])

    def load_map(
        self, key: str, model_class: Type[T], store: Optional[KeyValueStore] = None
    ) -> Dict[str, T]:
        """Load a dict collection stored under ``key``."""
        raw: Dict[str, Any] = (store or self.store).get(key) or {}
        return {k: model_class.from_document(v) for k, v in raw.items()}

    def save_map(
        self, key: str, items: Dict[str, T], store: Optional[KeyValueStore] = None
    ) -> None:
        """Persist a dict collection under ``key``."""
        (store or self.store).set(key, {k: v.to_document() for k, v in items.items()})
