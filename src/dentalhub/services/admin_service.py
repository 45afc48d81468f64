"""
Administration service.

Console operations of the superadmin and of clinic administrators. Every
mutation runs in one storage transaction together with its audit and action
log entries.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from dentalhub.config import Settings
from dentalhub.core.constants import CLINIC_WILDCARD
from dentalhub.models.audit_log import ActionType, AuditAction, EntityType
from dentalhub.models.auth import Session
from dentalhub.models.clinic import Clinic, Subscription, SubscriptionPlan, SubscriptionStatus
from dentalhub.models.user import User, UserRole
from dentalhub.security.access_control import can_manage_users
from dentalhub.services.audit_service import AuditService
from dentalhub.services.auth_service import validate_new_password
from dentalhub.services.base import BaseService
from dentalhub.services.clinic_service import ClinicService
from dentalhub.services.credential_service import CredentialService
from dentalhub.storage import StorageManager
from dentalhub.utils.exceptions import AuthorizationException, ClinicNotFoundException
from dentalhub.utils.logging import get_logger
from dentalhub.utils.time import Clock

logger = get_logger(__name__)

# Roles a clinic administrator may hand out
CLINIC_ASSIGNABLE_ROLES = frozenset({UserRole.ADMIN, UserRole.DOCTOR, UserRole.REGISTRAR})


class AdministrationService(BaseService):
    """Service for user, clinic and subscription administration."""

    def __init__(
        self,
        storage: StorageManager,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize administration service and its component services."""
        super().__init__(storage, settings, clock)
        self.credentials = CredentialService(storage, self.settings, self.clock)
        self.clinics = ClinicService(storage, self.settings, self.clock)
        self.audit = AuditService(storage, self.settings, self.clock)

    # Authorization helpers

    def _require_superadmin(self, actor: Session) -> None:
        if actor.role != UserRole.SUPERADMIN:
            logger.warning("superadmin_required", actor_id=actor.id, role=actor.role.value)
            raise AuthorizationException("Only the superadmin may do this")

    def _require_user_manager(self, actor: Session, target: Optional[User] = None) -> None:
        if actor.role == UserRole.SUPERADMIN:
            return
        if not can_manage_users(actor.role):
            raise AuthorizationException("Not allowed to manage users")
        if target is not None and (
            target.is_superadmin or target.clinic_id != actor.clinic_id
        ):
            logger.warning(
                "cross_clinic_user_management_denied",
                actor_id=actor.id,
                target_id=target.id,
            )
            raise AuthorizationException("User belongs to another clinic")

    def _check_assignable(
        self, actor: Session, role: Optional[UserRole], clinic_id: Optional[str]
    ) -> None:
        if actor.role == UserRole.SUPERADMIN:
            return
        if role is not None and UserRole(role) not in CLINIC_ASSIGNABLE_ROLES:
            raise AuthorizationException(f"Cannot assign role {UserRole(role).value}")
        if clinic_id is not None and clinic_id != actor.clinic_id:
            raise AuthorizationException("Cannot assign users to another clinic")

    @staticmethod
    def _log_clinic(user: User) -> str:
        return CLINIC_WILDCARD if user.is_superadmin else user.clinic_id

    # Users

    def create_user(
        self,
        actor: Session,
        name: str,
        username: str,
        password: str,
        role: UserRole,
        clinic_id: Optional[str] = None,
        phone: str = "",
        email: str = "",
    ) -> User:
        """Create an account.

        Clinic administrators create users in their own clinic only.
        """
        self._require_user_manager(actor)
        self._check_assignable(actor, role, clinic_id)
        validate_new_password(password, password, self.settings.password_min_length)
        if actor.role != UserRole.SUPERADMIN:
            clinic_id = actor.clinic_id

        with self.storage.transaction():
            if clinic_id and clinic_id != CLINIC_WILDCARD:
                self._get_clinic(clinic_id)
            user = self.credentials.create(
                name=name,
                username=username,
                password=password,
                role=role,
                clinic_id=clinic_id,
                phone=phone,
                email=email,
            )
            self.audit.append_audit(
                AuditAction.USER_CREATED,
                actor_id=actor.id,
                actor_name=actor.name,
                target_id=user.id,
                target_name=user.name,
                details=f"Role: {user.role.value}",
            )
            self.audit.append_action(
                self._log_clinic(user),
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.USER_CREATED,
                entity=EntityType.USER,
                entity_id=user.id,
                details=f"{user.role.value}: {user.username}",
            )
        return user

    def update_user(self, actor: Session, user_id: str, patch: Dict[str, Any]) -> User:
        """Edit an account's profile, role or clinic.

        Users may always edit their own profile fields.
        """
        with self.storage.transaction():
            target = self.credentials.get(user_id)
            own = target.id == actor.id
            if own:
                if actor.role != UserRole.SUPERADMIN and (
                    "role" in patch or "clinic_id" in patch or "is_active" in patch
                ):
                    raise AuthorizationException("Cannot change own role or clinic")
            else:
                self._require_user_manager(actor, target)
                self._check_assignable(actor, patch.get("role"), patch.get("clinic_id"))
            if patch.get("clinic_id") not in (None, CLINIC_WILDCARD):
                self._get_clinic(patch["clinic_id"])

            user = self.credentials.update(user_id, patch)
            fields = ", ".join(sorted(patch))
            self.audit.append_audit(
                AuditAction.USER_EDITED,
                actor_id=actor.id,
                actor_name=actor.name,
                target_id=user.id,
                target_name=user.name,
                details=f"Fields: {fields}",
            )
            self.audit.append_action(
                self._log_clinic(user),
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.PROFILE_UPDATED if own else ActionType.USER_EDITED,
                entity=EntityType.USER,
                entity_id=user.id,
                details=f"Fields: {fields}",
            )
        return user

    def toggle_user_active(self, actor: Session, user_id: str) -> User:
        """Block an active account or unblock a blocked one."""
        with self.storage.transaction():
            target = self.credentials.get(user_id)
            if target.id == actor.id:
                raise AuthorizationException("Cannot block your own account")
            self._require_user_manager(actor, target)

            user = self.credentials.toggle_active(user_id)
            verb = "unblocked" if user.is_active else "blocked"
            self.audit.append_audit(
                AuditAction.USER_UNBLOCKED if user.is_active else AuditAction.USER_BLOCKED,
                actor_id=actor.id,
                actor_name=actor.name,
                target_id=user.id,
                target_name=user.name,
                details=f"{actor.role.value} {verb} user",
            )
            self.audit.append_action(
                self._log_clinic(user),
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.USER_UNBLOCK if user.is_active else ActionType.USER_BLOCK,
                entity=EntityType.USER,
                entity_id=user.id,
                details=user.name,
            )
        return user

    def reset_temporary_password(self, actor: Session, user_id: str) -> str:
        """Issue a temporary password; the user must change it on next login.

        Returns:
            The temporary password, shown once to the administrator
        """
        with self.storage.transaction():
            target = self.credentials.get(user_id)
            if target.id == actor.id:
                raise AuthorizationException(
                    "Own passwords are changed with a one-time code"
                )
            self._require_user_manager(actor, target)

            temp_password = self.credentials.reset_to_temporary(user_id)
            self.audit.append_audit(
                AuditAction.PASSWORD_RESET,
                actor_id=actor.id,
                actor_name=actor.name,
                target_id=target.id,
                target_name=target.name,
                details="Temporary password issued",
            )
            self.audit.append_action(
                self._log_clinic(target),
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.PASSWORD_RESET,
                entity=EntityType.USER,
                entity_id=target.id,
                details=f"Temporary password set for {target.name}",
            )
        return temp_password

    # Clinics and subscriptions

    def _get_clinic(self, clinic_id: str) -> Clinic:
        clinic = self.clinics.get_clinic(clinic_id)
        if clinic is None:
            raise ClinicNotFoundException(clinic_id)
        return clinic

    def create_clinic_with_admin(
        self,
        actor: Session,
        clinic_fields: Dict[str, Any],
        admin_fields: Dict[str, Any],
    ) -> Tuple[Clinic, User]:
        """Create a clinic, its trial subscription and its first administrator.

        Args:
            actor: Superadmin session
            clinic_fields: Clinic attributes
            admin_fields: ``name``, ``username``, ``password`` and optional
                ``phone`` and ``email`` of the clinic administrator

        Returns:
            The clinic and its administrator
        """
        self._require_superadmin(actor)
        password = admin_fields.get("password") or ""
        validate_new_password(password, password, self.settings.password_min_length)

        with self.storage.transaction():
            clinic = self.clinics.create_clinic(clinic_fields)
            admin = self.credentials.create(
                name=admin_fields.get("name") or "",
                username=admin_fields.get("username") or "",
                password=password,
                role=UserRole.CLINIC_ADMIN,
                clinic_id=clinic.id,
                phone=admin_fields.get("phone") or "",
                email=admin_fields.get("email") or "",
            )
            self.audit.append_action(
                clinic.id,
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.CLINIC_CREATED,
                entity=EntityType.CLINIC,
                entity_id=clinic.id,
                details=clinic.name,
            )
            self.audit.append_action(
                clinic.id,
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.USER_CREATED,
                entity=EntityType.USER,
                entity_id=admin.id,
                details=f"{admin.role.value}: {admin.username}",
            )
            self.audit.append_audit(
                AuditAction.USER_CREATED,
                actor_id=actor.id,
                actor_name=actor.name,
                target_id=admin.id,
                target_name=admin.name,
                details=f"Administrator of {clinic.name}",
            )

        logger.info("clinic_onboarded", clinic_id=clinic.id, admin_id=admin.id)
        return clinic, admin

    def update_clinic(self, actor: Session, clinic_id: str, patch: Dict[str, Any]) -> Clinic:
        """Edit clinic details."""
        self._require_superadmin(actor)
        with self.storage.transaction():
            clinic = self.clinics.update_clinic(clinic_id, patch)
            self.audit.append_action(
                clinic.id,
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.CLINIC_UPDATED,
                entity=EntityType.CLINIC,
                entity_id=clinic.id,
                details=f"Fields: {', '.join(sorted(patch))}",
            )
        return clinic

    def set_subscription(
        self,
        actor: Session,
        clinic_id: str,
        plan: SubscriptionPlan,
        status: SubscriptionStatus,
        expires_at: datetime,
    ) -> Subscription:
        """Set a clinic's plan, status and expiry, creating the record if needed."""
        self._require_superadmin(actor)
        plan = SubscriptionPlan(plan)
        status = SubscriptionStatus(status)

        with self.storage.transaction():
            self._get_clinic(clinic_id)
            if self.clinics.get_subscription(clinic_id) is None:
                self.clinics.create_subscription(clinic_id, plan=plan, status=status)
            subscription = self.clinics.update_subscription(
                clinic_id, {"plan": plan, "status": status, "expires_at": expires_at}
            )
            self.audit.append_action(
                clinic_id,
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.SUBSCRIPTION_UPDATED,
                entity=EntityType.SUBSCRIPTION,
                entity_id=subscription.id,
                details=(
                    f"{plan.value}, {status.value}, "
                    f"expires {subscription.expires_at.date().isoformat()}"
                ),
            )
        return subscription

    def export_clinic_data(self, actor: Session, clinic_id: str) -> Dict[str, Any]:
        """Export a clinic's metadata and recent action log."""
        if actor.role != UserRole.SUPERADMIN and not (
            can_manage_users(actor.role) and actor.clinic_id == clinic_id
        ):
            raise AuthorizationException("Not allowed to export this clinic")

        with self.storage.transaction():
            data = self.clinics.export_clinic_data(clinic_id)
            self.audit.append_action(
                clinic_id,
                user_id=actor.id,
                user_name=actor.name,
                action=ActionType.DATA_EXPORTED,
                entity=EntityType.CLINIC,
                entity_id=clinic_id,
            )
        return data
