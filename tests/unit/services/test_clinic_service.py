"""Tests for the clinic and subscription registry."""

from datetime import datetime, timedelta

import pytest

from dentalhub.config import MissingSubscriptionPolicy
from dentalhub.models.audit_log import ActionType, EntityType
from dentalhub.models.clinic import SubscriptionPlan, SubscriptionStatus
from dentalhub.models.user import UserRole
from dentalhub.services.clinic_service import ClinicService
from dentalhub.utils.exceptions import (
    ClinicNotFoundException,
    SubscriptionNotFoundException,
    ValidationException,
)


class TestClinics:
    """Clinic records."""

    def test_create_clinic_with_trial(self, clinics, clock):
        """New clinics start on a 30 day trial."""
        clinic = clinics.create_clinic({"name": " Smile ", "phone": "123"})
        subscription = clinics.get_subscription(clinic.id)

        assert clinic.name == "Smile"
        assert clinic.id.startswith("clinic_")
        assert clinic.is_active
        assert clinics.get_clinic(clinic.id) == clinic
        assert subscription.plan == SubscriptionPlan.TRIAL
        assert subscription.status == SubscriptionStatus.TRIAL
        assert subscription.expires_at == clock() + timedelta(days=30)
        assert subscription.limits.doctors == 1
        assert subscription.limits.patients == 100
        assert subscription.limits.storage_mb == 50

    def test_unknown_fields_rejected(self, clinics):
        """Only known clinic attributes are accepted."""
        with pytest.raises(ValidationException):
            clinics.create_clinic({"name": "X", "id": "hijack"})

    def test_update_clinic(self, clinics):
        """Patching keeps the id."""
        clinic = clinics.create_clinic({"name": "Smile"})

        updated = clinics.update_clinic(clinic.id, {"name": "Smile+", "address": "Main st"})

        assert updated.id == clinic.id
        assert updated.name == "Smile+"
        assert clinics.get_clinic(clinic.id).address == "Main st"

    def test_update_unknown_clinic(self, clinics):
        """Updating a missing clinic fails."""
        with pytest.raises(ClinicNotFoundException):
            clinics.update_clinic("clinic_missing", {"name": "X"})

    def test_id_cannot_be_patched(self, clinics):
        """The clinic id is immutable."""
        clinic = clinics.create_clinic({"name": "Smile"})

        with pytest.raises(ValidationException):
            clinics.update_clinic(clinic.id, {"id": "other"})

    def test_list_clinics(self, clinics):
        """All clinics are listed."""
        clinics.create_clinic({"name": "A"})
        clinics.create_clinic({"name": "B"})

        assert [c.name for c in clinics.list_clinics()] == ["A", "B"]


class TestSubscriptions:
    """Subscription records."""

    def test_create_subscription_defaults(self, clinics, clock):
        """Defaults: starter, active, one year."""
        subscription = clinics.create_subscription("clinic_a")

        assert subscription.plan == SubscriptionPlan.STARTER
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.expires_at == clock() + timedelta(days=365)
        assert subscription.limits.doctors == 3

    def test_create_subscription_upserts(self, clinics):
        """A clinic keeps a single subscription."""
        clinics.create_subscription("clinic_a", plan=SubscriptionPlan.STARTER)
        clinics.create_subscription("clinic_a", plan=SubscriptionPlan.PROFESSIONAL, days=10)

        subscriptions = clinics.list_subscriptions()

        assert len(subscriptions) == 1
        assert subscriptions[0].plan == SubscriptionPlan.PROFESSIONAL
        assert subscriptions[0].limits.doctors == 10

    def test_update_subscription(self, clinics):
        """Changing the plan refreshes its limits."""
        clinics.create_subscription("clinic_a", plan=SubscriptionPlan.STARTER)

        updated = clinics.update_subscription(
            "clinic_a", {"plan": "professional", "status": "blocked"}
        )

        assert updated.plan == SubscriptionPlan.PROFESSIONAL
        assert updated.status == SubscriptionStatus.BLOCKED
        assert updated.limits.patients == 5000
        assert updated.limits.storage_mb == 2048

    def test_update_with_naive_expiry(self, clinics):
        """Naive datetimes are treated as UTC by the access check."""
        clinics.create_subscription("clinic_a")

        clinics.update_subscription("clinic_a", {"expires_at": datetime(2026, 3, 1)})
        access = clinics.check_access("clinic_a", UserRole.DOCTOR)

        assert clinics.get_subscription("clinic_a").expires_at.tzinfo is not None
        assert access.active is False
        assert access.status == "expired"

    def test_update_missing_subscription(self, clinics):
        """Updating without a record fails."""
        with pytest.raises(SubscriptionNotFoundException):
            clinics.update_subscription("clinic_a", {"status": "active"})


class TestCheckAccess:
    """Subscription gating."""

    @pytest.mark.security_critical
    def test_superadmin_bypass(self, clinics):
        """The superadmin passes whatever the subscription says."""
        clinics.create_subscription("clinic_a", status=SubscriptionStatus.BLOCKED)

        access = clinics.check_access("clinic_a", UserRole.SUPERADMIN)

        assert access.active is True
        assert access.plan == "superadmin"

    def test_legacy_user_without_clinic(self, clinics):
        """Users without a clinic id pass."""
        access = clinics.check_access("", UserRole.ADMIN)

        assert access.active is True
        assert access.plan == "legacy"

    def test_missing_subscription_fails_open(self, clinics):
        """No record means access by default."""
        access = clinics.check_access("clinic_new", UserRole.ADMIN)

        assert access.active is True
        assert access.plan == "unmanaged"

    def test_missing_subscription_fail_closed(self, storage, clock, make_settings):
        """The strict policy denies clinics without a record."""
        service = ClinicService(
            storage,
            make_settings(missing_subscription_policy=MissingSubscriptionPolicy.FAIL_CLOSED),
            clock,
        )

        access = service.check_access("clinic_new", UserRole.ADMIN)

        assert access.active is False
        assert access.plan == "unmanaged"

    def test_active_subscription(self, clinics, clock):
        """A live subscription passes and reports days left."""
        clinics.create_subscription("clinic_a", days=10)
        clock.advance(days=2, hours=1)

        access = clinics.check_access("clinic_a", UserRole.DOCTOR)

        assert access.active is True
        assert access.status == "active"
        assert access.plan == "starter"
        assert access.days_left == 8
        assert access.limits.doctors == 3

    @pytest.mark.security_critical
    def test_expiry_normalization(self, clinics, clock):
        """A stored "active" past its expiry reads as expired."""
        clinics.create_subscription("clinic_a", days=1)
        clock.advance(days=1)

        access = clinics.check_access("clinic_a", UserRole.ADMIN)

        assert access.active is False
        assert access.status == "expired"
        assert access.days_left == 0

    def test_stored_expired_status(self, clinics):
        """An expired status denies even before the date."""
        clinics.create_subscription("clinic_a", status=SubscriptionStatus.EXPIRED)

        access = clinics.check_access("clinic_a", UserRole.ADMIN)

        assert access.active is False
        assert access.status == "expired"

    def test_blocked_subscription(self, clinics):
        """Blocked clinics are denied and reported as blocked."""
        clinics.create_subscription("clinic_a", status=SubscriptionStatus.BLOCKED)

        access = clinics.check_access("clinic_a", UserRole.DOCTOR)

        assert access.active is False
        assert access.status == "blocked"

    def test_trial_is_active(self, clinics):
        """Trials grant access until they run out."""
        clinic = clinics.create_clinic({"name": "Smile"})

        access = clinics.check_access(clinic.id, UserRole.CLINIC_ADMIN)

        assert access.active is True
        assert access.status == "trial"
        assert access.days_left == 30


class TestExport:
    """Clinic data export."""

    def test_export_clinic_data(self, clinics, audit, clock):
        """Exports bundle clinic, subscription and visible log rows."""
        clinic = clinics.create_clinic({"name": "Smile"})
        audit.append_action(clinic.id, "u1", "Ann", ActionType.LOGIN, EntityType.USER, "u1")
        audit.append_action("clinic_other", "u2", "Bob", ActionType.LOGIN, EntityType.USER, "u2")
        audit.append_action(None, "", "eve", ActionType.LOGIN_FAILED, EntityType.USER, "eve")

        data = clinics.export_clinic_data(clinic.id)

        assert data["clinic"]["id"] == clinic.id
        assert data["subscription"]["plan"] == "trial"
        assert [row["user_name"] for row in data["logs"]] == ["eve", "Ann"]
        assert data["exported_at"] == clock().isoformat()

    def test_export_unknown_clinic(self, clinics):
        """Exporting a missing clinic fails."""
        with pytest.raises(ClinicNotFoundException):
            clinics.export_clinic_data("clinic_missing")
