"""Access control helpers."""

from dentalhub.security.access_control import (
    build_patient_filter,
    can_edit_patient,
    can_manage_users,
    editable_patient_fields,
)

__all__ = [
    "build_patient_filter",
    "can_edit_patient",
    "can_manage_users",
    "editable_patient_fields",
]
