"""Custom exceptions for the DentalHub access core."""

from typing import Optional


class DentalHubException(Exception):
    """Base exception for all DentalHub exceptions."""

    def __init__(self, message: str, code: Optional[str] = None):
        """Initialize exception.

        Args:
            message: Error message
            code: Optional error code
        """
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationException(DentalHubException):
    """Raised when validation fails."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        """Initialize ValidationException."""
        super().__init__(message, code)


class UsernameTakenException(ValidationException):
    """Raised when a username already belongs to a different user."""

    def __init__(self, username: str):
        """Initialize UsernameTakenException."""
        super().__init__(f"Username '{username}' is already taken", "USERNAME_TAKEN")
        self.username = username


class PasswordValidationException(ValidationException):
    """Raised when a new password is too short or its confirmation differs."""

    def __init__(self, message: str, code: str = "PASSWORD_INVALID"):
        """Initialize PasswordValidationException."""
        super().__init__(message, code)


class NotFoundException(DentalHubException):
    """Base exception for lookups of unknown ids."""


class UserNotFoundException(NotFoundException):
    """Raised when a user id or identifier matches nobody."""

    def __init__(self, user_ref: str):
        """Initialize UserNotFoundException."""
        super().__init__(f"User {user_ref} not found", "USER_NOT_FOUND")


class ClinicNotFoundException(NotFoundException):
    """Raised when a clinic id does not exist."""

    def __init__(self, clinic_id: str):
        """Initialize ClinicNotFoundException."""
        super().__init__(f"Clinic {clinic_id} not found", "CLINIC_NOT_FOUND")


class SubscriptionNotFoundException(NotFoundException):
    """Raised when a clinic has no subscription record to update."""

    def __init__(self, clinic_id: str):
        """Initialize SubscriptionNotFoundException."""
        super().__init__(
            f"Subscription for clinic {clinic_id} not found", "SUBSCRIPTION_NOT_FOUND"
        )


class AuthenticationException(DentalHubException):
    """Base exception for authentication errors."""


class InvalidCredentialsException(AuthenticationException):
    """Raised when the username or password is wrong."""

    def __init__(self, attempts_remaining: int):
        """Initialize InvalidCredentialsException."""
        super().__init__(
            f"Invalid username or password, {attempts_remaining} attempts remaining",
            "INVALID_CREDENTIALS",
        )
        self.attempts_remaining = attempts_remaining


class AccountInactiveException(AuthenticationException):
    """Raised when a deactivated account tries to log in."""

    def __init__(self, message: str = "Account is blocked"):
        """Initialize AccountInactiveException."""
        super().__init__(message, "ACCOUNT_INACTIVE")


class SubscriptionInactiveException(AuthenticationException):
    """Raised when the clinic subscription is expired or blocked."""

    def __init__(self, status: str):
        """Initialize SubscriptionInactiveException."""
        super().__init__(
            f"Clinic subscription is not active ({status})", "SUBSCRIPTION_INACTIVE"
        )
        self.status = status


class LockedOutException(AuthenticationException):
    """Raised while a username is locked after too many failed attempts."""

    def __init__(self, minutes_remaining: int):
        """Initialize LockedOutException."""
        super().__init__(
            f"Too many failed attempts, try again in {minutes_remaining} min",
            "LOCKED_OUT",
        )
        self.minutes_remaining = minutes_remaining


class InvalidOrExpiredOtpException(AuthenticationException):
    """Raised for any one-time code failure.

    The cause (no challenge, other user, expired, wrong code) is deliberately
    not reported.
    """

    def __init__(self, message: str = "Invalid or expired code"):
        """Initialize InvalidOrExpiredOtpException."""
        super().__init__(message, "INVALID_OR_EXPIRED_OTP")


class AuthorizationException(DentalHubException):
    """Raised when an actor's role or clinic does not permit an operation."""

    def __init__(self, message: str = "Operation not permitted"):
        """Initialize AuthorizationException."""
        super().__init__(message, "NOT_AUTHORIZED")


class StorageException(DentalHubException):
    """Raised when the persistence substrate fails."""


class QuotaExceededException(StorageException):
    """Raised when a write would exceed the storage capacity."""

    def __init__(self, key: str, required: int, capacity: int):
        """Initialize QuotaExceededException."""
        super().__init__(
            f"Storage full: writing '{key}' needs {required} bytes of {capacity}",
            "QUOTA_EXCEEDED",
        )
        self.key = key
        self.required = required
        self.capacity = capacity
