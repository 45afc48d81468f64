"""User account model."""

from datetime import datetime
from enum import Enum

from pydantic import field_validator

from dentalhub.core.constants import CLINIC_WILDCARD
from dentalhub.models.base import DocumentModel


class UserRole(str, Enum):
    """Roles a user account can hold."""

    SUPERADMIN = "superadmin"
    CLINIC_ADMIN = "clinic_admin"
    ADMIN = "admin"
    DOCTOR = "doctor"
    REGISTRAR = "registrar"


# Roles allowed to manage user accounts inside their own clinic
USER_MANAGER_ROLES = frozenset({UserRole.CLINIC_ADMIN, UserRole.ADMIN})


class User(DocumentModel):
    """A person who can log in to the clinic system."""

    id: str
    name: str
    username: str
    phone: str = ""
    email: str = ""
    role: UserRole
    clinic_id: str
    password_hash: str
    is_active: bool = True
    must_change_password: bool = False
    created_at: datetime

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        """Usernames are stored lower-cased."""
        return v.strip().lower()

    @property
    def is_superadmin(self) -> bool:
        """Check if this is the cross-clinic superadmin."""
        return self.role == UserRole.SUPERADMIN

    @property
    def is_cross_clinic(self) -> bool:
        """Check if the user belongs to every clinic."""
        return self.clinic_id == CLINIC_WILDCARD
