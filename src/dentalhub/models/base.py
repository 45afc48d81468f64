"""Base model classes for stored records."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import declarative_base

Base: Any = declarative_base()


class DocumentModel(BaseModel):
    """Base class for records persisted as JSON documents."""

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("*")
    @classmethod
    def assume_utc(cls, v: Any) -> Any:
        """Read naive timestamps as UTC so they compare with the clock."""
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_document(self) -> Dict[str, Any]:
        """Serialise to a JSON-compatible dict."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> Any:
        """Rebuild a record from its stored document."""
        return cls.model_validate(data)
