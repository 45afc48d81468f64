"""
Access control for patient records and account management.

Row-level scope predicates computed here are advisory: they are applied by
the data layer of this process, and a network deployment must re-validate
them on the server.
"""

from typing import Any, Dict, Optional, Tuple

from dentalhub.core.constants import DEFAULT_CLINIC_ID
from dentalhub.models.auth import Session
from dentalhub.models.user import USER_MANAGER_ROLES, UserRole
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)

# Human-readable names of patient record fields, in form order
PATIENT_FIELD_LABELS: Dict[str, str] = {
    "full_name": "Full name",
    "birth_date": "Date of birth",
    "gender": "Gender",
    "phone": "Phone",
    "address": "Address",
    "profession": "Profession",
    "passport_id": "Passport / ID",
    "anam_heart": "Cardiovascular disease",
    "anam_diabetes": "Diabetes",
    "anam_asthma": "Asthma",
    "anam_blood": "Blood disorders",
    "anam_epilepsy": "Epilepsy",
    "anam_other_text": "Other conditions",
    "permanent_meds": "Medication",
    "allergy_text": "Allergies",
    "operations": "Operations",
    "infect_diseases": "Infectious diseases",
    "visit_reason": "Reason for visit",
    "duration": "Duration",
    "last_visit": "Last visit",
    "xray_results": "X-ray results",
    "main_diagnosis": "Main diagnosis",
    "sec_diagnoses": "Secondary diagnoses",
    "odontogram": "Dental chart",
}

# Registrars may only touch the demographic block
REGISTRAR_FIELDS: Tuple[str, ...] = (
    "full_name",
    "birth_date",
    "gender",
    "phone",
    "address",
    "profession",
    "passport_id",
)

FULL_EDIT_ROLES = frozenset({UserRole.SUPERADMIN, UserRole.CLINIC_ADMIN, UserRole.ADMIN})


def build_patient_filter(session: Session) -> Dict[str, Any]:
    """Equality predicates limiting the patients a session may see.

    Args:
        session: The authenticated session

    Returns:
        Empty for the superadmin; otherwise the session's clinic, narrowed to
        the doctor's own patients for doctors
    """
    if session.role == UserRole.SUPERADMIN:
        return {}

    scope: Dict[str, Any] = {"clinic_id": session.clinic_id or DEFAULT_CLINIC_ID}
    if session.role == UserRole.DOCTOR:
        scope["doctor_id"] = session.id
    return scope


def editable_patient_fields(role: UserRole) -> Tuple[str, ...]:
    """Patient fields a role may change."""
    if role == UserRole.REGISTRAR:
        return REGISTRAR_FIELDS
    return tuple(PATIENT_FIELD_LABELS)


def can_edit_patient(
    session: Session,
    patient_doctor_id: Optional[str],
    patient_clinic_id: Optional[str] = None,
) -> bool:
    """Check if a session may open a patient record for editing.

    Doctors may only edit their own patients. Registrars may edit any
    patient of their clinic, limited to :data:`REGISTRAR_FIELDS`.
    """
    if session.role != UserRole.SUPERADMIN and patient_clinic_id is not None:
        if patient_clinic_id != (session.clinic_id or DEFAULT_CLINIC_ID):
            logger.warning(
                "cross_clinic_edit_denied",
                user_id=session.id,
                clinic_id=session.clinic_id,
                patient_clinic_id=patient_clinic_id,
            )
            return False

    if session.role in FULL_EDIT_ROLES or session.role == UserRole.REGISTRAR:
        return True
    if session.role == UserRole.DOCTOR:
        return patient_doctor_id is not None and str(patient_doctor_id) == session.id
    return False


def can_manage_users(role: UserRole) -> bool:
    """Check if a role may create, edit or block user accounts."""
    return role == UserRole.SUPERADMIN or role in USER_MANAGER_ROLES
