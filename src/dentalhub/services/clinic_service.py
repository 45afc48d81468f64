"""
Clinic and subscription registry.

Clinics are the tenants of the system. Each clinic has at most one
subscription, which gates whether its non-superadmin users may log in.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from dentalhub.config import MissingSubscriptionPolicy
from dentalhub.core.constants import CLINICS_KEY, SUBSCRIPTIONS_KEY
from dentalhub.models.clinic import (
    AccessStatus,
    Clinic,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    limits_for,
)
from dentalhub.models.user import UserRole
from dentalhub.services.audit_service import AuditService
from dentalhub.services.base import BaseService
from dentalhub.utils.exceptions import (
    ClinicNotFoundException,
    SubscriptionNotFoundException,
    ValidationException,
)
from dentalhub.utils.id_generator import generate_id
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)

CLINIC_FIELDS = frozenset({"name", "phone", "email", "address", "license", "is_active"})
SUBSCRIPTION_FIELDS = frozenset({"plan", "status", "expires_at", "limits"})

EXPORT_LOG_LIMIT = 1000

INACTIVE_STATUSES = (SubscriptionStatus.BLOCKED.value, SubscriptionStatus.EXPIRED.value)


class ClinicService(BaseService):
    """Service for clinics, subscriptions and subscription access checks."""

    # Clinics

    def list_clinics(self) -> List[Clinic]:
        """Return every clinic."""
        return self.load_list(CLINICS_KEY, Clinic)

    def get_clinic(self, clinic_id: str) -> Optional[Clinic]:
        """Find a clinic by id."""
        return next((c for c in self.list_clinics() if c.id == clinic_id), None)

    def create_clinic(
        self, fields: Dict[str, Any], clinic_id: Optional[str] = None
    ) -> Clinic:
        """Create a clinic together with its trial subscription.

        Args:
            fields: Clinic attributes (name, phone, email, address, license)
            clinic_id: Explicit id, used when seeding the default clinic

        Returns:
            The created clinic
        """
        unknown = set(fields) - CLINIC_FIELDS
        if unknown:
            raise ValidationException(
                f"Unknown clinic fields: {', '.join(sorted(unknown))}"
            )

        clinics = self.list_clinics()
        clinic = Clinic(
            id=clinic_id or generate_id("clinic"),
            name=(fields.get("name") or "").strip(),
            phone=(fields.get("phone") or "").strip(),
            email=(fields.get("email") or "").strip(),
            address=(fields.get("address") or "").strip(),
            license=(fields.get("license") or "").strip(),
            is_active=fields.get("is_active", True),
            created_at=self.clock(),
        )
        if any(c.id == clinic.id for c in clinics):
            raise ValidationException(f"Clinic {clinic.id} already exists")

        clinics.append(clinic)
        self.save_list(CLINICS_KEY, clinics)

        self.create_subscription(
            clinic.id,
            plan=SubscriptionPlan.TRIAL,
            status=SubscriptionStatus.TRIAL,
            days=self.settings.trial_days,
        )

        logger.info("clinic_created", clinic_id=clinic.id)
        return clinic

    def update_clinic(self, clinic_id: str, patch: Dict[str, Any]) -> Clinic:
        """Apply a partial update. The clinic id is immutable."""
        unknown = set(patch) - CLINIC_FIELDS
        if unknown:
            raise ValidationException(
                f"Clinic fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        clinics = self.list_clinics()
        for index, clinic in enumerate(clinics):
            if clinic.id == clinic_id:
                clinics[index] = Clinic.model_validate({**clinic.model_dump(), **patch})
                self.save_list(CLINICS_KEY, clinics)
                logger.info("clinic_updated", clinic_id=clinic_id, fields=sorted(patch))
                return clinics[index]

        raise ClinicNotFoundException(clinic_id)

    # Subscriptions

    def list_subscriptions(self) -> List[Subscription]:
        """Return every subscription."""
        return self.load_list(SUBSCRIPTIONS_KEY, Subscription)

    def get_subscription(self, clinic_id: str) -> Optional[Subscription]:
        """Find the subscription of a clinic."""
        return next(
            (s for s in self.list_subscriptions() if s.clinic_id == clinic_id), None
        )

    def create_subscription(
        self,
        clinic_id: str,
        plan: SubscriptionPlan = SubscriptionPlan.STARTER,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        days: Optional[int] = None,
    ) -> Subscription:
        """Create or replace the subscription of a clinic."""
        plan = SubscriptionPlan(plan)
        now = self.clock()
        subscription = Subscription(
            id=generate_id("sub"),
            clinic_id=clinic_id,
            plan=plan,
            status=SubscriptionStatus(status),
            expires_at=now
            + timedelta(days=days or self.settings.default_subscription_days),
            limits=limits_for(plan),
            created_at=now,
        )

        subscriptions = [s for s in self.list_subscriptions() if s.clinic_id != clinic_id]
        subscriptions.append(subscription)
        self.save_list(SUBSCRIPTIONS_KEY, subscriptions)

        logger.info(
            "subscription_saved",
            clinic_id=clinic_id,
            plan=plan.value,
            status=subscription.status.value,
            expires_at=subscription.expires_at.isoformat(),
        )
        return subscription

    def update_subscription(self, clinic_id: str, patch: Dict[str, Any]) -> Subscription:
        """Apply a partial update to a clinic's subscription.

        Changing the plan without giving explicit limits resets the limits to
        the new plan's defaults.
        """
        unknown = set(patch) - SUBSCRIPTION_FIELDS
        if unknown:
            raise ValidationException(
                f"Subscription fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        subscriptions = self.list_subscriptions()
        for index, subscription in enumerate(subscriptions):
            if subscription.clinic_id != clinic_id:
                continue
            changes = dict(patch)
            if "plan" in changes and "limits" not in changes:
                changes["limits"] = limits_for(SubscriptionPlan(changes["plan"]))
            subscriptions[index] = Subscription.model_validate(
                {**subscription.model_dump(), **changes}
            )
            self.save_list(SUBSCRIPTIONS_KEY, subscriptions)
            logger.info(
                "subscription_updated", clinic_id=clinic_id, fields=sorted(patch)
            )
            return subscriptions[index]

        raise SubscriptionNotFoundException(clinic_id)

    def check_access(self, clinic_id: Optional[str], role: UserRole) -> AccessStatus:
        """Decide whether users of a clinic may currently log in.

        The superadmin and users without a clinic always pass. A clinic with
        no subscription record is governed by the configured
        :class:`MissingSubscriptionPolicy`.
        """
        if role == UserRole.SUPERADMIN:
            return AccessStatus(active=True, status="active", plan="superadmin")

        if not clinic_id:
            return AccessStatus(active=True, status="active", plan="legacy")

        subscription = self.get_subscription(clinic_id)
        if subscription is None:
            policy = self.settings.missing_subscription_policy
            if policy == MissingSubscriptionPolicy.FAIL_CLOSED:
                logger.warning("subscription_missing", clinic_id=clinic_id)
                return AccessStatus(active=False, status="missing", plan="unmanaged")
            return AccessStatus(active=True, status="active", plan="unmanaged")

        now = self.clock()
        days_left = self._days_left(subscription.expires_at, now)

        if subscription.status == SubscriptionStatus.BLOCKED:
            status = SubscriptionStatus.BLOCKED.value
        elif (
            now >= subscription.expires_at
            or subscription.status == SubscriptionStatus.EXPIRED
        ):
            status = SubscriptionStatus.EXPIRED.value
        else:
            status = subscription.status.value

        return AccessStatus(
            active=status not in INACTIVE_STATUSES,
            days_left=days_left,
            status=status,
            plan=subscription.plan.value,
            limits=subscription.limits,
        )

    @staticmethod
    def _days_left(expires_at: datetime, now: datetime) -> int:
        seconds = (expires_at - now).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    # Export

    def export_clinic_data(self, clinic_id: str) -> Dict[str, Any]:
        """Bundle a clinic's metadata and recent action log for export."""
        clinic = self.get_clinic(clinic_id)
        if clinic is None:
            raise ClinicNotFoundException(clinic_id)

        subscription = self.get_subscription(clinic_id)
        logs = AuditService(self.storage, self.settings, self.clock).list_actions(
            clinic_id=clinic_id, limit=EXPORT_LOG_LIMIT
        )
        return {
            "clinic": clinic.to_document(),
            "subscription": subscription.to_document() if subscription else None,
            "logs": [entry.to_document() for entry in logs],
            "exported_at": self.clock().isoformat(),
        }
