"""Advisory patient edit lock."""

from datetime import datetime

from dentalhub.models.base import DocumentModel


class EditLock(DocumentModel):
    """Marks a patient record as being edited by a user."""

    patient_id: str
    user_id: str
    user_name: str
    locked_at: datetime
