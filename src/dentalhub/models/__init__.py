"""Record models for the access core."""

from dentalhub.models.audit_log import (
    ACTION_LABELS,
    ActionLogEntry,
    ActionType,
    AuditAction,
    AuditEntry,
    EntityType,
    PatientChangeLogEntry,
)
from dentalhub.models.auth import (
    FailureState,
    LoginFailureRecord,
    LoginResult,
    OtpChallenge,
    PasswordResetChallenge,
    Session,
)
from dentalhub.models.base import Base, DocumentModel
from dentalhub.models.clinic import (
    PLAN_LIMITS,
    AccessStatus,
    Clinic,
    PlanLimits,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from dentalhub.models.edit_lock import EditLock
from dentalhub.models.kv_entry import KVEntry
from dentalhub.models.user import User, UserRole

__all__ = [
    "ACTION_LABELS",
    "PLAN_LIMITS",
    "AccessStatus",
    "ActionLogEntry",
    "ActionType",
    "AuditAction",
    "AuditEntry",
    "Base",
    "Clinic",
    "DocumentModel",
    "EditLock",
    "EntityType",
    "FailureState",
    "KVEntry",
    "LoginFailureRecord",
    "LoginResult",
    "OtpChallenge",
    "PasswordResetChallenge",
    "PatientChangeLogEntry",
    "PlanLimits",
    "Session",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "User",
    "UserRole",
]
