"""Base configuration settings."""

import os
import secrets
import warnings
from enum import Enum
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MissingSubscriptionPolicy(str, Enum):
    """What check_access answers for a clinic without a subscription record."""

    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class Settings(BaseSettings):
    """Application settings.

    Every value can be overridden with a ``DENTALHUB_`` prefixed environment
    variable or from a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DENTALHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "DentalHub"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # console | json

    # Persistence
    database_url: str = "sqlite:///./dentalhub.db"
    storage_quota_bytes: Optional[int] = Field(
        default=5 * 1024 * 1024,
        description="Capacity of a key-value scope; None disables the check",
    )

    # Security
    session_secret_key: str = Field(
        default_factory=lambda: os.getenv("DENTALHUB_SESSION_SECRET_KEY", ""),
        description="Signing key for session tokens - MUST be set in production",
        validate_default=True,
    )
    session_algorithm: str = "HS256"
    session_ttl_minutes: int = 8 * 60
    bcrypt_rounds: int = 12
    password_min_length: int = 6

    # Login lockout
    max_failed_login_attempts: int = 5
    lockout_window_minutes: int = 2

    # One-time codes
    otp_ttl_minutes: int = 5
    otp_length: int = 6

    # Advisory patient edit locks
    edit_lock_ttl_minutes: int = 5

    # Log retention caps
    audit_log_max_entries: int = 500
    action_log_max_entries: int = 2000
    patient_change_log_max_entries: int = 2000
    placeholder_ip: str = "127.0.0.1"

    # Tenancy and subscriptions
    default_clinic_id: str = "clinic_default"
    default_clinic_name: str = "Main clinic"
    trial_days: int = 30
    default_subscription_days: int = 365
    missing_subscription_policy: MissingSubscriptionPolicy = (
        MissingSubscriptionPolicy.FAIL_OPEN
    )

    # Bootstrap
    superadmin_username: str = "superadmin"
    superadmin_password: str = Field(
        default_factory=lambda: os.getenv("DENTALHUB_SUPERADMIN_PASSWORD", ""),
        description="Initial superadmin password, changed on first login",
    )

    @field_validator("session_secret_key")
    @classmethod
    def validate_session_secret(cls, v: str, info: ValidationInfo) -> str:
        """Refuse an empty signing key in production, generate one elsewhere."""
        if not v or "change-me" in v.lower():
            env = os.getenv("DENTALHUB_ENVIRONMENT", "development").lower()
            if env in ["production", "staging"]:
                raise ValueError(
                    f"{info.field_name} must be set to a secure value in {env}"
                )
            secure_key = secrets.token_urlsafe(64)
            warnings.warn(
                f"SECURITY WARNING: {info.field_name} is not set. "
                "Generated a temporary key; sessions will not survive a restart.",
                stacklevel=2,
            )
            return secure_key
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """bcrypt accepts cost factors between 4 and 31."""
        if not 4 <= v <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")
        return v

    @field_validator(
        "max_failed_login_attempts",
        "lockout_window_minutes",
        "otp_ttl_minutes",
        "session_ttl_minutes",
        "edit_lock_ttl_minutes",
        "audit_log_max_entries",
        "action_log_max_entries",
        "patient_change_log_max_entries",
    )
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Limits and windows must be positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v
