"""Login-attempt governor: failed-login counters and temporary lockouts."""

import math
from datetime import timedelta
from typing import Dict

from dentalhub.core.constants import LOGIN_FAILURES_KEY
from dentalhub.models.auth import FailureState, LoginFailureRecord
from dentalhub.services.base import BaseService
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


class LoginAttemptService(BaseService):
    """Tracks failed logins per lower-cased username."""

    def _load(self) -> Dict[str, LoginFailureRecord]:
        return self.load_map(LOGIN_FAILURES_KEY, LoginFailureRecord)

    def _save(self, records: Dict[str, LoginFailureRecord]) -> None:
        self.save_map(LOGIN_FAILURES_KEY, records)

    def get_failure_state(self, username: str) -> FailureState:
        """Current failure count and lock deadline.

        A lock whose deadline has passed is cleared on read and reported as
        a zero state.
        """
        key = username.strip().lower()
        records = self._load()
        record = records.get(key)
        if record is None:
            return FailureState()

        if record.locked_until is not None and self.clock() > record.locked_until:
            del records[key]
            self._save(records)
            logger.info("login_lock_expired", username=key)
            return FailureState()

        return FailureState(count=record.count, locked_until=record.locked_until)

    def is_locked(self, username: str) -> bool:
        """Check if the username is currently locked out."""
        return self.get_failure_state(username).locked_until is not None

    def minutes_remaining(self, state: FailureState) -> int:
        """Whole minutes left on a lock, rounded up."""
        if state.locked_until is None:
            return 0
        seconds = (state.locked_until - self.clock()).total_seconds()
        return max(0, math.ceil(seconds / 60))

    def record_failure(self, username: str) -> FailureState:
        """Count a failed attempt and lock the username at the threshold."""
        key = username.strip().lower()
        now = self.clock()
        records = self._load()
        record = records.get(key) or LoginFailureRecord(username=key)

        record.count += 1
        record.last_fail_at = now
        if record.count >= self.settings.max_failed_login_attempts:
            record.locked_until = now + timedelta(
                minutes=self.settings.lockout_window_minutes
            )
            logger.warning(
                "login_locked",
                username=key,
                attempts=record.count,
                locked_until=record.locked_until.isoformat(),
            )

        records[key] = record
        self._save(records)
        return FailureState(count=record.count, locked_until=record.locked_until)

    def clear_failures(self, username: str) -> None:
        """Drop the counter for a username."""
        key = username.strip().lower()
        records = self._load()
        if records.pop(key, None) is not None:
            self._save(records)

    def unlock_all(self) -> int:
        """Clear every counter. Returns how many records were dropped."""
        records = self._load()
        self.store.remove(LOGIN_FAILURES_KEY)
        logger.warning("login_locks_cleared", count=len(records))
        return len(records)
