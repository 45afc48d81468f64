"""Advisory edit locks on patient records."""

from contextlib import contextmanager
from datetime import timedelta
from typing import Dict, Generator, Optional

from dentalhub.core.constants import EDIT_LOCKS_KEY
from dentalhub.models.auth import Session
from dentalhub.models.edit_lock import EditLock
from dentalhub.services.base import BaseService
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


class EditLockService(BaseService):
    """Marks patients as being edited so a second editor can be warned.

    Locks never block a writer: acquiring always overwrites the previous
    holder.
    """

    def _load(self) -> Dict[str, EditLock]:
        return self.load_map(EDIT_LOCKS_KEY, EditLock)

    def _save(self, locks: Dict[str, EditLock]) -> None:
        self.save_map(EDIT_LOCKS_KEY, locks)

    def acquire(self, patient_id: str, session: Session) -> EditLock:
        """Record ``session``'s user as the editor of a patient."""
        key = str(patient_id)
        lock = EditLock(
            patient_id=key,
            user_id=session.id,
            user_name=session.name or session.login,
            locked_at=self.clock(),
        )
        locks = self._load()
        locks[key] = lock
        self._save(locks)

        logger.debug("edit_lock_acquired", patient_id=key, user_id=session.id)
        return lock

    def inspect(self, patient_id: str) -> Optional[EditLock]:
        """Return the current lock, dropping it if it has gone stale."""
        key = str(patient_id)
        locks = self._load()
        lock = locks.get(key)
        if lock is None:
            return None

        ttl = timedelta(minutes=self.settings.edit_lock_ttl_minutes)
        if self.clock() - lock.locked_at > ttl:
            del locks[key]
            self._save(locks)
            logger.debug("edit_lock_expired", patient_id=key, user_id=lock.user_id)
            return None
        return lock

    def release(self, patient_id: str) -> None:
        """Drop the lock on a patient."""
        key = str(patient_id)
        locks = self._load()
        if locks.pop(key, None) is not None:
            self._save(locks)
            logger.debug("edit_lock_released", patient_id=key)

    @contextmanager
    def editing(
        self, patient_id: str, session: Session
    ) -> Generator[Optional[EditLock], None, None]:
        """Hold the edit lock for the duration of the block.

        Yields the live lock of another user, if there was one, so the caller
        can warn about concurrent editing. The lock is released on every exit
        path.
        """
        existing = self.inspect(patient_id)
        foreign = existing if existing and existing.user_id != session.id else None
        if foreign is not None:
            logger.info(
                "edit_lock_conflict",
                patient_id=str(patient_id),
                holder_id=foreign.user_id,
                user_id=session.id,
            )

        self.acquire(patient_id, session)
        try:
            yield foreign
        finally:
            self.release(patient_id)
