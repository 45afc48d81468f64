"""Clinic tenant and subscription models."""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from dentalhub.models.base import DocumentModel


class SubscriptionPlan(str, Enum):
    """Commercial plans."""

    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"


class SubscriptionStatus(str, Enum):
    """Lifecycle states of a subscription."""

    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"
    BLOCKED = "blocked"


class PlanLimits(BaseModel):
    """Informational quotas attached to a plan; not enforced."""

    doctors: int
    patients: int
    storage_mb: int


PLAN_LIMITS: Dict[SubscriptionPlan, PlanLimits] = {
    SubscriptionPlan.PROFESSIONAL: PlanLimits(doctors=10, patients=5000, storage_mb=2048),
    SubscriptionPlan.STARTER: PlanLimits(doctors=3, patients=500, storage_mb=256),
    SubscriptionPlan.TRIAL: PlanLimits(doctors=1, patients=100, storage_mb=50),
}


def limits_for(plan: SubscriptionPlan) -> PlanLimits:
    """Return a copy of the limits for ``plan``."""
    return PLAN_LIMITS[plan].model_copy()


class Clinic(DocumentModel):
    """A tenant: one dental practice."""

    id: str
    name: str
    phone: str = ""
    email: str = ""
    address: str = ""
    license: str = ""
    is_active: bool = True
    created_at: datetime


class Subscription(DocumentModel):
    """Commercial entitlement of a clinic. At most one per clinic."""

    id: str
    clinic_id: str
    plan: SubscriptionPlan
    status: SubscriptionStatus
    expires_at: datetime
    limits: PlanLimits
    created_at: datetime


class AccessStatus(BaseModel):
    """Answer of a subscription access check.

    ``plan`` carries a :class:`SubscriptionPlan` value or one of the labels
    ``superadmin``, ``legacy`` and ``unmanaged`` for bypassed checks.
    """

    active: bool
    days_left: Optional[int] = None
    status: Optional[str] = None
    plan: Optional[str] = None
    limits: Optional[PlanLimits] = Field(default=None)
