"""Test configuration for the DentalHub access core.

Provides fast settings, a controllable clock, in-memory and SQLite-backed
storage, and services wired together over the same storage and clock.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from dentalhub.config import Settings
from dentalhub.core.database import create_db_engine
from dentalhub.models.auth import Session
from dentalhub.models.user import User, UserRole
from dentalhub.services.admin_service import AdministrationService
from dentalhub.services.audit_service import AuditService
from dentalhub.services.auth_service import AuthenticationService
from dentalhub.services.bootstrap_service import seed_defaults
from dentalhub.services.clinic_service import ClinicService
from dentalhub.services.credential_service import CredentialService
from dentalhub.services.edit_lock_service import EditLockService
from dentalhub.services.login_attempt_service import LoginAttemptService
from dentalhub.services.otp_service import OTPService
from dentalhub.services.session_service import SessionService
from dentalhub.storage import StorageManager

# Set testing environment BEFORE any settings are built
os.environ["DENTALHUB_ENVIRONMENT"] = "testing"

TEST_SECRET_KEY = "dentalhub-test-signing-key-0123456789abcdef0123456789abcdef"
SUPERADMIN_PASSWORD = "Super-secret-1"
DEFAULT_PASSWORD = "correct-horse"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "security_critical: mark test as covering an authentication guarantee"
    )
    config.addinivalue_line(
        "markers", "audit_required: mark test as asserting audit or action log entries"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an end-to-end flow over SQL storage"
    )


class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        """Move time forward by a ``timedelta`` worth of keyword arguments."""
        self.now += timedelta(**kwargs)


def build_settings(**overrides) -> Settings:
    """Settings tuned for tests: cheap bcrypt, fixed key, no env file."""
    values = {
        "session_secret_key": TEST_SECRET_KEY,
        "bcrypt_rounds": 4,
        "superadmin_password": SUPERADMIN_PASSWORD,
        "storage_quota_bytes": None,
        "database_url": "sqlite:///:memory:",
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for test settings with overrides."""
    return build_settings


@pytest.fixture
def settings() -> Settings:
    """Fast test settings."""
    return build_settings()


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock shared by every service of a test."""
    return FakeClock()


@pytest.fixture
def storage(settings) -> StorageManager:
    """In-memory storage for both scopes."""
    return StorageManager.in_memory(settings)


@pytest.fixture
def sql_storage(settings) -> StorageManager:
    """Persistent scope in an in-memory SQLite database."""
    engine = create_db_engine("sqlite:///:memory:")
    yield StorageManager.from_settings(settings, engine=engine)
    engine.dispose()


@pytest.fixture
def credentials(storage, settings, clock) -> CredentialService:
    """Credential store."""
    return CredentialService(storage, settings, clock)


@pytest.fixture
def attempts(storage, settings, clock) -> LoginAttemptService:
    """Login-attempt governor."""
    return LoginAttemptService(storage, settings, clock)


@pytest.fixture
def otp(storage, settings, clock) -> OTPService:
    """One-time code issuer."""
    return OTPService(storage, settings, clock)


@pytest.fixture
def sessions(storage, settings, clock) -> SessionService:
    """Session issuer."""
    return SessionService(storage, settings, clock)


@pytest.fixture
def clinics(storage, settings, clock) -> ClinicService:
    """Clinic and subscription registry."""
    return ClinicService(storage, settings, clock)


@pytest.fixture
def audit(storage, settings, clock) -> AuditService:
    """Audit and action log."""
    return AuditService(storage, settings, clock)


@pytest.fixture
def edit_locks(storage, settings, clock) -> EditLockService:
    """Edit-lock registry."""
    return EditLockService(storage, settings, clock)


@pytest.fixture
def auth(storage, settings, clock) -> AuthenticationService:
    """Authentication flows."""
    return AuthenticationService(storage, settings, clock)


@pytest.fixture
def admin(storage, settings, clock) -> AdministrationService:
    """Administration console operations."""
    return AdministrationService(storage, settings, clock)


@pytest.fixture
def seeded(storage, settings, clock) -> StorageManager:
    """Storage with the default clinic and superadmin in place."""
    seed_defaults(storage, settings, clock)
    return storage


@pytest.fixture
def make_user(seeded, credentials) -> Callable[..., User]:
    """Factory creating users in the default clinic."""

    def _make_user(
        username: str,
        role: UserRole = UserRole.DOCTOR,
        password: str = DEFAULT_PASSWORD,
        **kwargs,
    ) -> User:
        return credentials.create(
            name=kwargs.pop("name", username.title()),
            username=username,
            password=password,
            role=role,
            **kwargs,
        )

    return _make_user


@pytest.fixture
def superadmin_session(seeded, credentials, sessions):
    """Session of the seeded superadmin."""
    user = credentials.find_by_username("superadmin")
    return sessions.issue(user)


@pytest.fixture
def make_session(clock) -> Callable[..., Session]:
    """Factory for sessions that bypass the login flow."""

    def _make_session(
        user_id: str = "user_doc",
        role: UserRole = UserRole.DOCTOR,
        clinic_id: str = "clinic_default",
        name: str = "Dr. Test",
    ) -> Session:
        return Session(
            id=user_id,
            login=user_id,
            role=role,
            name=name,
            clinic_id=clinic_id,
            issued_at=clock(),
            expires_at=clock() + timedelta(hours=8),
        )

    return _make_session
