"""Tenancy constants shared across the access core."""

# Clinic id carried by the superadmin and by cross-clinic action log rows
CLINIC_WILDCARD = "*"

# Fallback tenant for users and clinics not explicitly assigned one
DEFAULT_CLINIC_ID = "clinic_default"

# Storage keys in the persistent scope
USERS_KEY = "users"
CLINICS_KEY = "clinics"
SUBSCRIPTIONS_KEY = "subscriptions"
LOGIN_FAILURES_KEY = "login_failures"
EDIT_LOCKS_KEY = "edit_locks"
AUDIT_LOG_KEY = "audit_log"
ACTION_LOG_KEY = "action_log"
PATIENT_CHANGE_LOG_KEY = "patient_change_log"

# Storage keys in the session scope
SESSION_KEY = "session"
OTP_CHALLENGES_KEY = "otp_challenges"
PASSWORD_RESET_GRANTS_KEY = "password_reset_grants"
