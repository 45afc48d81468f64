"""
Credential store.

Owns user records: identity, role, clinic membership, password hash and the
active and forced-password-change flags. The store never writes audit or
action log entries itself; callers do that in the same transaction.
"""

import secrets
from typing import Any, Dict, List, Optional

import bcrypt

from dentalhub.core.constants import CLINIC_WILDCARD, USERS_KEY
from dentalhub.models.user import User, UserRole
from dentalhub.services.base import BaseService
from dentalhub.utils.exceptions import (
    UserNotFoundException,
    UsernameTakenException,
    ValidationException,
)
from dentalhub.utils.id_generator import generate_id
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)

# Unambiguous alphanumerics: no 0/O, 1/I/l or i/L lookalikes
TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
TEMP_PASSWORD_LENGTH = 10

UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "username",
        "phone",
        "email",
        "role",
        "clinic_id",
        "is_active",
        "must_change_password",
    }
)


def normalize_username(username: str) -> str:
    """Trim and lower-case a username, rejecting empty or spaced values."""
    cleaned = (username or "").strip()
    if not cleaned:
        raise ValidationException("Username must not be empty")
    if any(ch.isspace() for ch in cleaned):
        raise ValidationException("Username must not contain whitespace")
    return cleaned.lower()


class CredentialService(BaseService):
    """Service for reading and mutating user accounts."""

    def _load(self) -> List[User]:
        return self.load_list(USERS_KEY, User)

    def _save(self, users: List[User]) -> None:
        self.save_list(USERS_KEY, users)

    def _index_of(self, users: List[User], user_id: str) -> int:
        for index, user in enumerate(users):
            if user.id == user_id:
                return index
        raise UserNotFoundException(user_id)

    # Lookups

    def list_users(self) -> List[User]:
        """Return every user account."""
        return self._load()

    def list_for_clinic(self, clinic_id: str, role: UserRole) -> List[User]:
        """Users visible to a viewer of ``role`` in ``clinic_id``.

        The superadmin sees every account, everyone else only their clinic.
        """
        users = self._load()
        if role == UserRole.SUPERADMIN:
            return users
        return [u for u in users if u.clinic_id == clinic_id]

    def find_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive exact username match."""
        wanted = (username or "").strip().lower()
        if not wanted:
            return None
        return next((u for u in self._load() if u.username == wanted), None)

    def find_by_id(self, user_id: str) -> Optional[User]:
        """Find a user by id."""
        return next((u for u in self._load() if u.id == user_id), None)

    def find_by_identifier(self, identifier: str) -> Optional[User]:
        """Match a username, e-mail or phone number.

        Usernames and e-mails compare case-insensitively, phone numbers
        ignore whitespace.
        """
        needle = (identifier or "").strip()
        if not needle:
            return None
        lowered = needle.lower()
        compact = "".join(needle.split())
        for user in self._load():
            if user.username == lowered:
                return user
            if user.email and user.email.strip().lower() == lowered:
                return user
            if user.phone and "".join(user.phone.split()) == compact:
                return user
        return None

    def get(self, user_id: str) -> User:
        """Return a user or raise :class:`UserNotFoundException`."""
        user = self.find_by_id(user_id)
        if user is None:
            raise UserNotFoundException(user_id)
        return user

    # Mutations

    def create(
        self,
        name: str,
        username: str,
        password: str,
        role: UserRole,
        clinic_id: Optional[str] = None,
        phone: str = "",
        email: str = "",
    ) -> User:
        """Create a user account.

        Args:
            name: Display name
            username: Login name, stored lower-cased
            password: Plaintext password, stored as a bcrypt hash
            role: Account role
            clinic_id: Owning clinic; ignored for the superadmin
            phone: Contact phone
            email: Contact e-mail

        Returns:
            The created user

        Raises:
            UsernameTakenException: If the username exists in any letter case
            ValidationException: For an empty or spaced username or a second
                superadmin
        """
        role = UserRole(role)
        login = normalize_username(username)
        users = self._load()

        if any(u.username == login for u in users):
            raise UsernameTakenException(login)
        if role == UserRole.SUPERADMIN and any(u.is_superadmin for u in users):
            raise ValidationException("A superadmin account already exists")

        if role == UserRole.SUPERADMIN:
            clinic_id = CLINIC_WILDCARD
        else:
            clinic_id = clinic_id or self.settings.default_clinic_id

        user = User(
            id=generate_id("user"),
            name=name.strip(),
            username=login,
            phone=phone.strip(),
            email=email.strip(),
            role=role,
            clinic_id=clinic_id,
            password_hash=self.hash_password(password),
            is_active=True,
            must_change_password=False,
            created_at=self.clock(),
        )
        users.append(user)
        self._save(users)

        logger.info("user_created", user_id=user.id, role=role.value, clinic_id=clinic_id)
        return user

    def update(self, user_id: str, patch: Dict[str, Any]) -> User:
        """Apply a partial update to a user.

        Password hashes cannot be patched; use :meth:`set_password`.

        Raises:
            UserNotFoundException: If the id is unknown
            UsernameTakenException: If the new username belongs to another user
            ValidationException: For unknown fields or an invalid username
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationException(
                f"Fields cannot be updated: {', '.join(sorted(unknown))}"
            )

        users = self._load()
        index = self._index_of(users, user_id)
        current = users[index]
        changes = dict(patch)

        if "username" in changes:
            login = normalize_username(changes["username"])
            if any(u.username == login and u.id != user_id for u in users):
                raise UsernameTakenException(login)
            changes["username"] = login

        if "role" in changes:
            changes["role"] = UserRole(changes["role"])
            if changes["role"] == UserRole.SUPERADMIN and any(
                u.is_superadmin and u.id != user_id for u in users
            ):
                raise ValidationException("A superadmin account already exists")

        updated = User.model_validate({**current.model_dump(), **changes})
        if updated.is_superadmin:
            updated.clinic_id = CLINIC_WILDCARD
        elif not updated.clinic_id or updated.clinic_id == CLINIC_WILDCARD:
            updated.clinic_id = self.settings.default_clinic_id

        users[index] = updated
        self._save(users)

        logger.info("user_updated", user_id=user_id, fields=sorted(changes))
        return updated

    def set_password(self, user_id: str, new_password: str) -> User:
        """Overwrite the password hash. Leaves ``must_change_password`` alone."""
        users = self._load()
        index = self._index_of(users, user_id)
        users[index].password_hash = self.hash_password(new_password)
        self._save(users)

        logger.info("password_set", user_id=user_id)
        return users[index]

    def reset_to_temporary(self, user_id: str) -> str:
        """Replace the password with a random temporary one.

        The account is flagged to change its password on next login.

        Returns:
            The temporary password in plaintext; it is not retrievable later
        """
        users = self._load()
        index = self._index_of(users, user_id)

        temp_password = "".join(
            secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(TEMP_PASSWORD_LENGTH)
        )
        users[index].password_hash = self.hash_password(temp_password)
        users[index].must_change_password = True
        self._save(users)

        logger.info("temporary_password_issued", user_id=user_id)
        return temp_password

    def toggle_active(self, user_id: str) -> User:
        """Flip the active flag."""
        users = self._load()
        index = self._index_of(users, user_id)
        users[index].is_active = not users[index].is_active
        self._save(users)

        logger.info(
            "user_active_toggled", user_id=user_id, is_active=users[index].is_active
        )
        return users[index]

    # Password hashing

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt."""
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, stored_hash: str) -> bool:
        """Check a password against a stored hash."""
        if not plain_password or not stored_hash:
            return False
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"), stored_hash.encode("utf-8")
            )
        except (ValueError, TypeError):
            # Malformed hash
            return False
