"""
Audit trail, action log and patient change log models.

Two parallel logs are kept: fine-grained audit entries keyed by actor and
target, and clinic-scoped action entries for operational telemetry. Tags are
closed enums so that a typo cannot fragment the trail.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Union

from dentalhub.models.base import DocumentModel


class AuditAction(str, Enum):
    """Types of actor-on-target audit actions."""

    # User actions
    USER_CREATED = "user_created"
    USER_EDITED = "user_edited"
    USER_BLOCKED = "user_blocked"
    USER_UNBLOCKED = "user_unblocked"

    # Credential actions
    PASSWORD_CHANGED = "password_changed"
    PASSWORD_RESET = "password_reset"

    # Patient actions
    PATIENT_CREATED = "patient_created"
    PATIENT_EDITED = "patient_edited"
    PATIENT_DELETED = "patient_deleted"
    DIAGNOSIS_CHANGED = "diagnosis_changed"


class ActionType(str, Enum):
    """Types of clinic-scoped operational events."""

    # Session events
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    LOCKOUTS_CLEARED = "lockouts_cleared"

    # Account events
    USER_CREATED = "user_created"
    USER_EDITED = "user_edited"
    USER_BLOCK = "user_block"
    USER_UNBLOCK = "user_unblock"
    PROFILE_UPDATED = "profile_updated"
    PASSWORD_CHANGED = "password_changed"
    PASSWORD_RESET = "password_reset"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"

    # Tenant events
    CLINIC_CREATED = "clinic_created"
    CLINIC_UPDATED = "clinic_updated"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    DATA_EXPORTED = "data_exported"


class EntityType(str, Enum):
    """Kinds of entity an action log row refers to."""

    USER = "user"
    CLINIC = "clinic"
    SUBSCRIPTION = "subscription"
    PATIENT = "patient"


ACTION_LABELS: Dict[Union[AuditAction, ActionType], str] = {
    AuditAction.USER_CREATED: "User created",
    AuditAction.USER_EDITED: "Profile edited",
    AuditAction.USER_BLOCKED: "User blocked",
    AuditAction.USER_UNBLOCKED: "User unblocked",
    AuditAction.PASSWORD_CHANGED: "Password changed",
    AuditAction.PASSWORD_RESET: "Password reset",
    AuditAction.PATIENT_CREATED: "Patient created",
    AuditAction.PATIENT_EDITED: "Patient edited",
    AuditAction.PATIENT_DELETED: "Patient deleted",
    AuditAction.DIAGNOSIS_CHANGED: "Diagnosis changed",
    ActionType.LOGIN: "Login",
    ActionType.LOGIN_FAILED: "Failed login",
    ActionType.LOGOUT: "Logout",
    ActionType.LOCKOUTS_CLEARED: "Login lockouts cleared",
    ActionType.USER_CREATED: "User created",
    ActionType.USER_EDITED: "Profile edited",
    ActionType.USER_BLOCK: "User blocked",
    ActionType.USER_UNBLOCK: "User unblocked",
    ActionType.PROFILE_UPDATED: "Own profile updated",
    ActionType.PASSWORD_CHANGED: "Password changed",
    ActionType.PASSWORD_RESET: "Temporary password issued",
    ActionType.PASSWORD_RESET_REQUESTED: "Password reset requested",
    ActionType.PASSWORD_RESET_COMPLETED: "Password reset completed",
    ActionType.CLINIC_CREATED: "Clinic created",
    ActionType.CLINIC_UPDATED: "Clinic updated",
    ActionType.SUBSCRIPTION_UPDATED: "Subscription updated",
    ActionType.DATA_EXPORTED: "Clinic data exported",
}


def action_label(action: Union[AuditAction, ActionType]) -> str:
    """Human-readable label for a log tag."""
    return ACTION_LABELS.get(action, action.value)


class AuditEntry(DocumentModel):
    """Security-relevant action performed by an actor on a target."""

    id: str
    action: AuditAction
    actor_id: str
    actor_name: str = ""
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    details: str = ""
    timestamp: datetime


class ActionLogEntry(DocumentModel):
    """Clinic-scoped operational event. ``clinic_id`` may be the wildcard."""

    id: str
    clinic_id: str
    user_id: str
    user_name: str = ""
    action: ActionType
    entity: EntityType
    entity_id: Optional[str] = None
    details: str = ""
    ip: str
    created_at: datetime


class PatientChangeLogEntry(DocumentModel):
    """One field-level change to a patient record."""

    id: str
    patient_id: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: str
    changed_by_name: str = ""
    changed_at: datetime
