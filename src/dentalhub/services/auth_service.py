"""
Authentication service module.

Orchestrates the login, logout, forced password change, forgot-password and
password change flows over the credential store, login-attempt governor,
OTP issuer, session issuer and subscription registry.

Each public operation runs in a single storage transaction. Failures that
must leave a trace (failed-login counters and their log entries) are
committed first and raised afterwards.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from dentalhub.config import Settings
from dentalhub.core.constants import CLINIC_WILDCARD, PASSWORD_RESET_GRANTS_KEY
from dentalhub.models.audit_log import ActionType, AuditAction, EntityType
from dentalhub.models.auth import LoginResult, PasswordResetChallenge, Session
from dentalhub.models.user import User, UserRole
from dentalhub.security.access_control import can_manage_users
from dentalhub.services.audit_service import AuditService
from dentalhub.services.base import BaseService
from dentalhub.services.clinic_service import ClinicService
from dentalhub.services.credential_service import CredentialService
from dentalhub.services.login_attempt_service import LoginAttemptService
from dentalhub.services.otp_service import OTPService
from dentalhub.services.session_service import SessionService
from dentalhub.storage import StorageManager
from dentalhub.utils.exceptions import (
    AccountInactiveException,
    AuthenticationException,
    AuthorizationException,
    InvalidCredentialsException,
    InvalidOrExpiredOtpException,
    LockedOutException,
    PasswordValidationException,
    SubscriptionInactiveException,
    UserNotFoundException,
)
from dentalhub.utils.logging import get_logger, security_event_logger
from dentalhub.utils.time import Clock

logger = get_logger(__name__)


def validate_new_password(password: str, confirm: str, min_length: int) -> None:
    """Check a new password against the length and confirmation rules.

    Raises:
        PasswordValidationException: If the password is too short or the
            confirmation differs
    """
    if len(password or "") < min_length:
        raise PasswordValidationException(
            f"Password must be at least {min_length} characters", "PASSWORD_TOO_SHORT"
        )
    if password != confirm:
        raise PasswordValidationException(
            "Passwords do not match", "PASSWORD_MISMATCH"
        )


class AuthenticationService(BaseService):
    """Service for user authentication flows."""

    def __init__(
        self,
        storage: StorageManager,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize authentication service and its component services."""
        super().__init__(storage, settings, clock)
        self.credentials = CredentialService(storage, self.settings, self.clock)
        self.attempts = LoginAttemptService(storage, self.settings, self.clock)
        self.otp = OTPService(storage, self.settings, self.clock)
        self.sessions = SessionService(storage, self.settings, self.clock)
        self.clinics = ClinicService(storage, self.settings, self.clock)
        self.audit = AuditService(storage, self.settings, self.clock)

    # Login and logout

    def login(self, username: str, password: str) -> LoginResult:
        """Authenticate a user.

        The lockout check runs before the password is looked at, so a locked
        username fails even with the right password.

        Returns:
            A session, or the user record when a forced password change is
            pending

        Raises:
            LockedOutException: While the username is locked, or when this
                attempt reached the failure threshold
            InvalidCredentialsException: Unknown user or wrong password
            AccountInactiveException: The account is blocked
            SubscriptionInactiveException: The clinic subscription is
                expired or blocked
        """
        login = (username or "").strip().lower()
        error: Optional[AuthenticationException] = None
        result: Optional[LoginResult] = None

        with self.storage.transaction():
            state = self.attempts.get_failure_state(login)
            if state.locked_until is not None:
                error = LockedOutException(self.attempts.minutes_remaining(state))
            else:
                user = self.credentials.find_by_username(login)
                if user is None or not self.credentials.verify(
                    password, user.password_hash
                ):
                    error = self._record_failed_login(login)
                elif not user.is_active:
                    error = AccountInactiveException()
                else:
                    access = self.clinics.check_access(user.clinic_id, user.role)
                    if not access.active:
                        error = SubscriptionInactiveException(access.status or "inactive")
                    else:
                        result = self._complete_login(user)

        if error is not None:
            logger.warning("login_rejected", username=login, reason=error.code)
            security_event_logger.log_authentication(
                login, "login", False, {"reason": error.code}
            )
            raise error

        security_event_logger.log_authentication(login, "login", True)
        return result

    def _record_failed_login(self, login: str) -> AuthenticationException:
        limit = self.settings.max_failed_login_attempts
        state = self.attempts.record_failure(login)
        self.audit.append_action(
            CLINIC_WILDCARD,
            user_id="",
            user_name=login,
            action=ActionType.LOGIN_FAILED,
            entity=EntityType.USER,
            entity_id=login,
            details=f"Failed attempt {state.count}/{limit}",
        )
        if state.locked_until is not None:
            return LockedOutException(self.attempts.minutes_remaining(state))
        return InvalidCredentialsException(max(0, limit - state.count))

    def _complete_login(self, user: User) -> LoginResult:
        self.attempts.clear_failures(user.username)
        self.audit.append_action(
            user.clinic_id,
            user_id=user.id,
            user_name=user.name,
            action=ActionType.LOGIN,
            entity=EntityType.USER,
            entity_id=user.id,
            details=(
                "Login with temporary password"
                if user.must_change_password
                else "Successful login"
            ),
        )
        if user.must_change_password:
            logger.info("password_change_required", user_id=user.id)
            return LoginResult(pending_user=user)
        return LoginResult(session=self.sessions.issue(user))

    def logout(self, session: Session) -> None:
        """End a session."""
        with self.storage.transaction():
            self.audit.append_action(
                session.clinic_id,
                user_id=session.id,
                user_name=session.name,
                action=ActionType.LOGOUT,
                entity=EntityType.USER,
                entity_id=session.id,
            )
            self.sessions.clear()

        security_event_logger.log_authentication(session.login, "logout", True)

    def complete_forced_password_change(
        self, user_id: str, new_password: str, confirm_password: str
    ) -> Session:
        """Replace a temporary password and open a normal session.

        Raises:
            PasswordValidationException: If the new password breaks the rules
            AuthorizationException: If the account has no pending change
        """
        validate_new_password(
            new_password, confirm_password, self.settings.password_min_length
        )

        with self.storage.transaction():
            user = self.credentials.get(user_id)
            if not user.must_change_password:
                raise AuthorizationException("No password change is pending")
            if not user.is_active:
                raise AccountInactiveException()

            self.credentials.set_password(user.id, new_password)
            user = self.credentials.update(user.id, {"must_change_password": False})
            self.audit.append_audit(
                AuditAction.PASSWORD_CHANGED,
                actor_id=user.id,
                actor_name=user.name,
                target_id=user.id,
                target_name=user.name,
                details="Temporary password replaced",
            )
            self.audit.append_action(
                user.clinic_id,
                user_id=user.id,
                user_name=user.name,
                action=ActionType.PASSWORD_CHANGED,
                entity=EntityType.USER,
                entity_id=user.id,
                details="Temporary password replaced",
            )
            session = self.sessions.issue(user)

        return session

    # Forgot password

    def request_password_reset(self, identifier: str) -> PasswordResetChallenge:
        """Start the forgot-password flow for a username, e-mail or phone.

        The code is returned for out-of-band delivery.

        Raises:
            UserNotFoundException: If no account matches
        """
        with self.storage.transaction():
            user = self.credentials.find_by_identifier(identifier)
            if user is None:
                raise UserNotFoundException(identifier)

            code = self.otp.issue(user.id)
            self.audit.append_action(
                user.clinic_id,
                user_id=user.id,
                user_name=user.name,
                action=ActionType.PASSWORD_RESET_REQUESTED,
                entity=EntityType.USER,
                entity_id=user.id,
                details="One-time code sent for password reset",
            )

        return PasswordResetChallenge(user=user, code=code)

    def verify_reset_code(self, user_id: str, code: str) -> None:
        """Check the reset code and allow :meth:`complete_password_reset`.

        Raises:
            InvalidOrExpiredOtpException: For any code failure
        """
        with self.storage.transaction():
            if not self.otp.verify(user_id, code):
                raise InvalidOrExpiredOtpException()

            grants = self._load_reset_grants()
            grants[user_id] = (
                self.clock() + timedelta(minutes=self.settings.otp_ttl_minutes)
            ).isoformat()
            self.storage.session_scope.set(PASSWORD_RESET_GRANTS_KEY, grants)

    def complete_password_reset(
        self, user_id: str, new_password: str, confirm_password: str
    ) -> User:
        """Set a new password after a verified reset code.

        Raises:
            PasswordValidationException: If the new password breaks the rules
            InvalidOrExpiredOtpException: If no verified code is on record
        """
        validate_new_password(
            new_password, confirm_password, self.settings.password_min_length
        )

        with self.storage.transaction():
            grants = self._load_reset_grants()
            expires_at = grants.pop(user_id, None)
            if expires_at is None or self.clock() > datetime.fromisoformat(expires_at):
                raise InvalidOrExpiredOtpException()
            self.storage.session_scope.set(PASSWORD_RESET_GRANTS_KEY, grants)

            self.credentials.set_password(user_id, new_password)
            user = self.credentials.update(user_id, {"must_change_password": False})
            self.audit.append_action(
                user.clinic_id,
                user_id=user.id,
                user_name=user.name,
                action=ActionType.PASSWORD_RESET_COMPLETED,
                entity=EntityType.USER,
                entity_id=user.id,
                details="Password reset via one-time code",
            )

        security_event_logger.log_authentication(user.username, "password_reset", True)
        return user

    def _load_reset_grants(self) -> Dict[str, str]:
        return self.storage.session_scope.get(PASSWORD_RESET_GRANTS_KEY) or {}

    # Password change from settings

    def request_password_change_code(self, session: Session) -> str:
        """Issue a code the session's user must present to change their password."""
        return self.otp.issue(session.id)

    def change_password(
        self,
        session: Session,
        target_user_id: str,
        new_password: str,
        confirm_password: str,
        otp_code: Optional[str] = None,
    ) -> User:
        """Change a password from the settings screens.

        Users changing their own password must present a valid one-time
        code. An administrator changing someone else's password does not.

        Raises:
            PasswordValidationException: If the new password breaks the rules
            InvalidOrExpiredOtpException: For a missing or wrong own-password code
            AuthorizationException: If the session may not manage the target
        """
        validate_new_password(
            new_password, confirm_password, self.settings.password_min_length
        )

        with self.storage.transaction():
            target = self.credentials.get(target_user_id)
            own = target.id == session.id
            if own:
                if not otp_code or not self.otp.verify(session.id, otp_code):
                    raise InvalidOrExpiredOtpException()
            else:
                self._authorize_password_change(session, target)

            target = self.credentials.set_password(target.id, new_password)
            details = "Own password changed" if own else "Password changed by administrator"
            self.audit.append_audit(
                AuditAction.PASSWORD_CHANGED,
                actor_id=session.id,
                actor_name=session.name,
                target_id=target.id,
                target_name=target.name,
                details=details,
            )
            self.audit.append_action(
                CLINIC_WILDCARD if target.is_superadmin else target.clinic_id,
                user_id=session.id,
                user_name=session.name,
                action=ActionType.PASSWORD_CHANGED,
                entity=EntityType.USER,
                entity_id=target.id,
                details=details,
            )

        return target

    def _authorize_password_change(self, session: Session, target: User) -> None:
        if session.role == UserRole.SUPERADMIN:
            return
        if (
            can_manage_users(session.role)
            and not target.is_superadmin
            and target.clinic_id == session.clinic_id
        ):
            return
        logger.warning(
            "password_change_denied", actor_id=session.id, target_id=target.id
        )
        raise AuthorizationException("Not allowed to change this user's password")

    # Emergency unlock

    def unlock_all(self, actor: Optional[Session] = None) -> int:
        """Clear every login lockout.

        Returns:
            Number of failure records cleared
        """
        with self.storage.transaction():
            cleared = self.attempts.unlock_all()
            self.audit.append_action(
                CLINIC_WILDCARD,
                user_id=actor.id if actor else "",
                user_name=actor.name if actor else "",
                action=ActionType.LOCKOUTS_CLEARED,
                entity=EntityType.USER,
                details=f"{cleared} lockout records cleared",
            )
        return cleared
