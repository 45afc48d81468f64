"""Services of the DentalHub access core."""

from dentalhub.services.admin_service import AdministrationService
from dentalhub.services.audit_service import AuditService
from dentalhub.services.auth_service import AuthenticationService
from dentalhub.services.bootstrap_service import initialize, seed_defaults
from dentalhub.services.clinic_service import ClinicService
from dentalhub.services.credential_service import CredentialService
from dentalhub.services.edit_lock_service import EditLockService
from dentalhub.services.login_attempt_service import LoginAttemptService
from dentalhub.services.otp_service import OTPService
from dentalhub.services.session_service import SessionService

__all__ = [
    "AdministrationService",
    "AuditService",
    "AuthenticationService",
    "ClinicService",
    "CredentialService",
    "EditLockService",
    "LoginAttemptService",
    "OTPService",
    "SessionService",
    "initialize",
    "seed_defaults",
]
