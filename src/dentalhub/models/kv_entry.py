"""Key-value entry table backing the SQL store."""

from sqlalchemy import JSON, Column, DateTime, String

from dentalhub.models.base import Base
from dentalhub.utils.time import utcnow


class KVEntry(Base):
    """One JSON document stored under ``(scope, key)``."""

    __tablename__ = "kv_entries"

    scope = Column(String(64), primary_key=True)
    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<KVEntry(scope={self.scope}, key={self.key})>"
