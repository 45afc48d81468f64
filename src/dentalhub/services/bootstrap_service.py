"""Seeding of the default tenant and superadmin account."""

import secrets
from typing import Optional, Tuple

from dentalhub.config import Settings, get_settings
from dentalhub.core.constants import CLINIC_WILDCARD, USERS_KEY
from dentalhub.models.clinic import SubscriptionPlan, SubscriptionStatus
from dentalhub.models.user import UserRole
from dentalhub.services.clinic_service import ClinicService
from dentalhub.services.credential_service import CredentialService
from dentalhub.storage import StorageManager
from dentalhub.utils.logging import get_logger, setup_logging
from dentalhub.utils.time import Clock

logger = get_logger(__name__)


def migrate_legacy_users(storage: StorageManager, settings: Settings) -> int:
    """Backfill clinic ids and lower-case usernames on stored user documents.

    Returns:
        Number of user documents changed
    """
    documents = storage.persistent.get(USERS_KEY) or []
    changed = 0
    for document in documents:
        before = dict(document)
        if not document.get("clinic_id"):
            document["clinic_id"] = (
                CLINIC_WILDCARD
                if document.get("role") == UserRole.SUPERADMIN.value
                else settings.default_clinic_id
            )
        if document.get("username"):
            document["username"] = document["username"].strip().lower()
        if document != before:
            changed += 1

    if changed:
        storage.persistent.set(USERS_KEY, documents)
        logger.info("legacy_users_migrated", count=changed)
    return changed


def seed_defaults(
    storage: StorageManager,
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
) -> Optional[str]:
    """Create the default clinic, its subscription and the superadmin.

    Safe to run on every start: existing records are left alone.

    Returns:
        A generated superadmin password when none was configured and the
        account had to be created, otherwise ``None``
    """
    settings = settings or get_settings()
    clinics = ClinicService(storage, settings, clock)
    credentials = CredentialService(storage, settings, clock)
    generated: Optional[str] = None

    with storage.persistent.transaction():
        migrate_legacy_users(storage, settings)

        if clinics.get_clinic(settings.default_clinic_id) is None:
            clinics.create_clinic(
                {"name": settings.default_clinic_name},
                clinic_id=settings.default_clinic_id,
            )
            clinics.create_subscription(
                settings.default_clinic_id,
                plan=SubscriptionPlan.PROFESSIONAL,
                status=SubscriptionStatus.ACTIVE,
                days=settings.default_subscription_days,
            )
            logger.info("default_clinic_seeded", clinic_id=settings.default_clinic_id)

        if not any(user.is_superadmin for user in credentials.list_users()):
            password = settings.superadmin_password
            if not password:
                password = generated = secrets.token_urlsafe(12)
                logger.warning(
                    "superadmin_password_generated",
                    username=settings.superadmin_username,
                )
            superadmin = credentials.create(
                name="Superadmin",
                username=settings.superadmin_username,
                password=password,
                role=UserRole.SUPERADMIN,
            )
            credentials.update(superadmin.id, {"must_change_password": True})
            logger.info("superadmin_seeded", user_id=superadmin.id)

    return generated


def initialize(
    settings: Optional[Settings] = None, clock: Optional[Clock] = None
) -> Tuple[StorageManager, Optional[str]]:
    """Wire up the process: logging, storage and default records.

    Returns:
        The storage manager to hand to every service, and the generated
        superadmin password if one was created
    """
    settings = settings or get_settings()
    setup_logging(settings)

    storage = StorageManager.from_settings(settings)
    generated = seed_defaults(storage, settings, clock)

    logger.info(
        "dentalhub_initialized",
        app_name=settings.app_name,
        environment=settings.environment,
    )
    return storage, generated
