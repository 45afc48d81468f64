"""Tests for default data seeding and legacy migration."""

from dentalhub.models.clinic import SubscriptionPlan, SubscriptionStatus
from dentalhub.models.user import UserRole
from dentalhub.services.bootstrap_service import (
    initialize,
    migrate_legacy_users,
    seed_defaults,
)
from dentalhub.services.credential_service import CredentialService


class TestSeedDefaults:
    """First-run seeding."""

    def test_seeds_clinic_and_superadmin(self, storage, settings, clock, clinics, credentials):
        """A fresh store gets the default clinic and the superadmin."""
        assert seed_defaults(storage, settings, clock) is None

        subscription = clinics.get_subscription(settings.default_clinic_id)
        root = credentials.find_by_username("superadmin")

        assert clinics.get_clinic(settings.default_clinic_id).name == "Main clinic"
        assert subscription.plan == SubscriptionPlan.PROFESSIONAL
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert root.role == UserRole.SUPERADMIN
        assert root.clinic_id == "*"
        assert root.must_change_password is True

    def test_idempotent(self, storage, settings, clock, clinics, credentials):
        """Running twice creates nothing new."""
        seed_defaults(storage, settings, clock)
        seed_defaults(storage, settings, clock)

        assert len(clinics.list_clinics()) == 1
        assert len(credentials.list_users()) == 1

    def test_generated_password(self, storage, clock, make_settings, credentials):
        """Without a configured password one is generated and returned."""
        settings = make_settings(superadmin_password="")

        password = seed_defaults(storage, settings, clock)
        root = credentials.find_by_username("superadmin")

        assert password
        assert credentials.verify(password, root.password_hash)


class TestLegacyMigration:
    """Backfilling old user documents."""

    def test_backfills_clinic_and_username(self, storage, settings):
        """Old documents get a clinic and a lower-cased username."""
        storage.persistent.set(
            "users",
            [
                {"id": "u1", "username": "Doctor", "role": "doctor"},
                {"id": "u2", "username": "Root", "role": "superadmin"},
                {"id": "u3", "username": "reg", "role": "registrar", "clinic_id": "c1"},
            ],
        )

        assert migrate_legacy_users(storage, settings) == 2

        documents = storage.persistent.get("users")
        assert documents[0]["clinic_id"] == settings.default_clinic_id
        assert documents[0]["username"] == "doctor"
        assert documents[1]["clinic_id"] == "*"
        assert documents[2]["clinic_id"] == "c1"

    def test_nothing_to_migrate(self, storage, settings):
        """Clean documents are left untouched."""
        assert migrate_legacy_users(storage, settings) == 0


class TestInitialize:
    """Process start-up wiring."""

    def test_initialize_over_sqlite(self, make_settings, clock):
        """Start-up returns a seeded SQL-backed storage manager."""
        settings = make_settings(database_url="sqlite:///:memory:", log_format="json")

        storage, generated = initialize(settings, clock)

        root = CredentialService(storage, settings, clock).find_by_username("superadmin")
        assert generated is None
        assert root.must_change_password is True
        assert storage.persistent.get("clinics")[0]["id"] == settings.default_clinic_id
