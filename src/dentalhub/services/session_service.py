"""Session issuer."""

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from dentalhub.core.constants import SESSION_KEY
from dentalhub.models.auth import Session
from dentalhub.models.user import User
from dentalhub.services.base import BaseService
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)

_SESSION_CLAIMS = ("id", "login", "role", "name", "clinic_id", "issued_at", "expires_at")


class SessionService(BaseService):
    """Mints, persists and validates authenticated sessions.

    Callers must have checked that the user is active, that the clinic
    subscription allows access and that no password change is pending.
    """

    def issue(self, user: User) -> Session:
        """Create and persist a session for ``user``."""
        now = self.clock()
        session = Session(
            id=user.id,
            login=user.username,
            role=user.role,
            name=user.name,
            clinic_id=user.clinic_id or self.settings.default_clinic_id,
            issued_at=now,
            expires_at=now + timedelta(minutes=self.settings.session_ttl_minutes),
        )
        session.token = self._encode(session)
        self.storage.session_scope.set(SESSION_KEY, session.to_document())

        logger.info(
            "session_issued",
            user_id=user.id,
            role=user.role.value,
            clinic_id=session.clinic_id,
            expires_at=session.expires_at.isoformat(),
        )
        return session

    def current(self) -> Optional[Session]:
        """Return the stored session, clearing it once expired."""
        raw = self.storage.session_scope.get(SESSION_KEY)
        if raw is None:
            return None

        session = Session.from_document(raw)
        if session.expires_at < self.clock():
            self.clear()
            logger.info("session_expired", user_id=session.id)
            return None
        return session

    def clear(self) -> None:
        """Remove the stored session."""
        self.storage.session_scope.remove(SESSION_KEY)

    def decode_token(self, token: str) -> Optional[Session]:
        """Validate a session token's signature and expiry.

        Returns:
            The session carried by the token, or ``None`` when the token is
            forged, malformed or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.session_secret_key,
                algorithms=[self.settings.session_algorithm],
                options={"verify_exp": False},
            )
            session = Session.model_validate(
                {name: payload.get(name) for name in _SESSION_CLAIMS}
            )
        except (JWTError, ValidationError) as e:
            logger.warning("session_token_rejected", error_type=type(e).__name__)
            return None

        if session.expires_at < self.clock():
            logger.info("session_token_expired", user_id=session.id)
            return None

        session.token = token
        return session

    def _encode(self, session: Session) -> str:
        claims: Dict[str, Any] = session.to_document()
        claims.pop("token", None)
        claims["sub"] = session.id
        claims["iat"] = int(session.issued_at.timestamp())
        claims["exp"] = int(session.expires_at.timestamp())
        return jwt.encode(
            claims,
            self.settings.session_secret_key,
            algorithm=self.settings.session_algorithm,
        )

