"""Authentication state: failure counters, one-time codes and sessions."""

from datetime import datetime
from typing import NamedTuple, Optional

from dentalhub.models.base import DocumentModel
from dentalhub.models.user import User, UserRole


class LoginFailureRecord(DocumentModel):
    """Failed-login counter for one lower-cased username."""

    username: str
    count: int = 0
    locked_until: Optional[datetime] = None
    last_fail_at: Optional[datetime] = None


class FailureState(NamedTuple):
    """Current counter and lock deadline for a username."""

    count: int = 0
    locked_until: Optional[datetime] = None


class OtpChallenge(DocumentModel):
    """Pending one-time code for a user."""

    user_id: str
    code: str
    expires_at: datetime


class Session(DocumentModel):
    """Authenticated session. ``id`` is the user id."""

    id: str
    login: str
    role: UserRole
    name: str
    clinic_id: str
    issued_at: datetime
    expires_at: datetime
    token: str = ""

    @property
    def is_superadmin(self) -> bool:
        """Check if the session belongs to the superadmin."""
        return self.role == UserRole.SUPERADMIN


class LoginResult(NamedTuple):
    """Outcome of a successful credential check.

    Exactly one field is set: ``session`` for a normal login, or
    ``pending_user`` when the account must change its password first.
    """

    session: Optional[Session] = None
    pending_user: Optional[User] = None

    @property
    def requires_password_change(self) -> bool:
        """Whether the caller must route to the forced password change."""
        return self.pending_user is not None


class PasswordResetChallenge(NamedTuple):
    """A user matched by the forgot-password flow and the code issued to them."""

    user: User
    code: str
