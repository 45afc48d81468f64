"""
Audit and action log service.

Keeps three bounded, newest-first logs in the persistent scope: the audit
trail (actor acted on target), the clinic-scoped action log, and the
field-level patient change log. Every append is mirrored to the ``audit``
structlog logger.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from dentalhub.core.constants import (
    ACTION_LOG_KEY,
    AUDIT_LOG_KEY,
    CLINIC_WILDCARD,
    PATIENT_CHANGE_LOG_KEY,
)
from dentalhub.models.audit_log import (
    ActionLogEntry,
    ActionType,
    AuditAction,
    AuditEntry,
    EntityType,
    PatientChangeLogEntry,
)
from dentalhub.models.auth import Session
from dentalhub.security.access_control import PATIENT_FIELD_LABELS, editable_patient_fields
from dentalhub.services.base import BaseService
from dentalhub.utils.id_generator import generate_id
from dentalhub.utils.logging import get_logger, security_event_logger

logger = get_logger(__name__)


def display_value(value: Any) -> str:
    """Render a patient field value for the change log."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


class AuditService(BaseService):
    """Service for appending to and reading the audit and action logs."""

    # Audit trail

    def append_audit(
        self,
        action: AuditAction,
        actor_id: str,
        actor_name: str = "",
        target_id: Optional[str] = None,
        target_name: Optional[str] = None,
        details: str = "",
    ) -> AuditEntry:
        """Prepend an audit entry, keeping the newest entries up to the cap."""
        entry = AuditEntry(
            id=generate_id(),
            action=AuditAction(action),
            actor_id=actor_id,
            actor_name=actor_name,
            target_id=target_id,
            target_name=target_name,
            details=details,
            timestamp=self.clock(),
        )
        entries = [entry] + self.list_audit()
        self.save_list(AUDIT_LOG_KEY, entries[: self.settings.audit_log_max_entries])

        security_event_logger.log_audit_entry(entry.to_document())
        return entry

    def list_audit(self) -> List[AuditEntry]:
        """Return audit entries, newest first."""
        return self.load_list(AUDIT_LOG_KEY, AuditEntry)

    # Action log

    def append_action(
        self,
        clinic_id: Optional[str],
        user_id: str,
        user_name: str,
        action: ActionType,
        entity: EntityType,
        entity_id: Optional[str] = None,
        details: str = "",
    ) -> ActionLogEntry:
        """Prepend an action entry stamped with the placeholder IP and time.

        A missing clinic id records the entry as cross-clinic.
        """
        entry = ActionLogEntry(
            id=generate_id(),
            clinic_id=clinic_id or CLINIC_WILDCARD,
            user_id=user_id,
            user_name=user_name,
            action=ActionType(action),
            entity=EntityType(entity),
            entity_id=entity_id,
            details=details,
            ip=self.settings.placeholder_ip,
            created_at=self.clock(),
        )
        entries = [entry] + self.load_list(ACTION_LOG_KEY, ActionLogEntry)
        self.save_list(ACTION_LOG_KEY, entries[: self.settings.action_log_max_entries])

        security_event_logger.log_action(entry.to_document())
        return entry

    def list_actions(
        self, clinic_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[ActionLogEntry]:
        """Return action entries, newest first.

        Args:
            clinic_id: Keep only this clinic's rows plus cross-clinic rows
            limit: Maximum number of rows returned

        Returns:
            Matching entries
        """
        entries = self.load_list(ACTION_LOG_KEY, ActionLogEntry)
        if clinic_id:
            entries = [
                e for e in entries if e.clinic_id in (clinic_id, CLINIC_WILDCARD)
            ]
        if limit:
            entries = entries[:limit]
        return entries

    # Patient change log

    def append_patient_change(
        self,
        patient_id: str,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        changed_by: str,
        changed_by_name: str = "",
    ) -> PatientChangeLogEntry:
        """Prepend one field-level change to the patient change log."""
        return self._append_patient_changes(
            [
                self._patient_change(
                    patient_id, field_name, old_value, new_value, changed_by, changed_by_name
                )
            ]
        )[0]

    def list_patient_changes(
        self, patient_id: Optional[str] = None
    ) -> List[PatientChangeLogEntry]:
        """Return change log entries, newest first, optionally for one patient."""
        entries = self.load_list(PATIENT_CHANGE_LOG_KEY, PatientChangeLogEntry)
        if patient_id:
            entries = [e for e in entries if e.patient_id == str(patient_id)]
        return entries

    def record_patient_edit(
        self,
        session: Session,
        patient_id: str,
        patient_name: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        fields: Optional[Iterable[str]] = None,
    ) -> List[PatientChangeLogEntry]:
        """Log the differences between two snapshots of a patient record.

        One change log entry is written per changed field, plus a single
        ``patient_edited`` audit entry naming the fields. Nothing is written
        when no field changed.

        Args:
            session: Session of the editing user
            patient_id: Edited patient
            patient_name: Display name for the audit entry
            before: Record as loaded
            after: Record as saved
            fields: Fields to compare; defaults to those the role may edit

        Returns:
            The change log entries written
        """
        checked = list(fields) if fields is not None else editable_patient_fields(session.role)
        changes = []
        for field in checked:
            old_value = display_value(before.get(field))
            new_value = display_value(after.get(field))
            if old_value != new_value:
                changes.append(
                    self._patient_change(
                        patient_id,
                        PATIENT_FIELD_LABELS.get(field, field),
                        old_value,
                        new_value,
                        session.id,
                        session.name or session.login,
                    )
                )

        if not changes:
            return []

        with self.store.transaction():
            written = self._append_patient_changes(changes)
            self.append_audit(
                AuditAction.PATIENT_EDITED,
                actor_id=session.id,
                actor_name=session.name or session.login,
                target_id=str(patient_id),
                target_name=patient_name,
                details=", ".join(change.field_name for change in changes),
            )
        return written

    def _patient_change(
        self,
        patient_id: str,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        changed_by: str,
        changed_by_name: str,
    ) -> PatientChangeLogEntry:
        return PatientChangeLogEntry(
            id=generate_id(),
            patient_id=str(patient_id),
            field_name=field_name,
            old_value=old_value if old_value is not None else "",
            new_value=new_value if new_value is not None else "",
            changed_by=str(changed_by),
            changed_by_name=changed_by_name,
            changed_at=self.clock(),
        )

    def _append_patient_changes(
        self, changes: List[PatientChangeLogEntry]
    ) -> List[PatientChangeLogEntry]:
        # Newest first: the last change of a batch goes on top
        entries = list(reversed(changes)) + self.list_patient_changes()
        self.save_list(
            PATIENT_CHANGE_LOG_KEY,
            entries[: self.settings.patient_change_log_max_entries],
        )
        logger.info(
            "patient_changes_recorded",
            patient_id=changes[0].patient_id,
            fields=[change.field_name for change in changes],
        )
        return changes
