"""One-time code issuer for password resets and password changes."""

import hmac
import secrets
from datetime import timedelta
from typing import Dict

from dentalhub.core.constants import OTP_CHALLENGES_KEY
from dentalhub.models.auth import OtpChallenge
from dentalhub.services.base import BaseService
from dentalhub.utils.logging import get_logger

logger = get_logger(__name__)


class OTPService(BaseService):
    """Issues and verifies short-lived numeric codes, one pending per user.

    Codes are returned to the caller for out-of-band delivery and are never
    logged.
    """

    def _load(self) -> Dict[str, OtpChallenge]:
        return self.load_map(OTP_CHALLENGES_KEY, OtpChallenge, self.storage.session_scope)

    def _save(self, challenges: Dict[str, OtpChallenge]) -> None:
        self.save_map(OTP_CHALLENGES_KEY, challenges, self.storage.session_scope)

    def issue(self, user_id: str) -> str:
        """Create a fresh code for ``user_id``, replacing any pending one."""
        code = "".join(str(secrets.randbelow(10)) for _ in range(self.settings.otp_length))
        expires_at = self.clock() + timedelta(minutes=self.settings.otp_ttl_minutes)

        challenges = self._load()
        challenges[user_id] = OtpChallenge(
            user_id=user_id, code=code, expires_at=expires_at
        )
        self._save(challenges)

        logger.info("otp_issued", user_id=user_id, expires_at=expires_at.isoformat())
        return code

    def verify(self, user_id: str, code: str) -> bool:
        """Check a code; a match consumes the challenge.

        Failures of any kind return ``False`` and leave the challenge in place
        so the user can retry until it expires.
        """
        challenges = self._load()
        challenge = challenges.get(user_id)
        if challenge is None:
            logger.info("otp_rejected", user_id=user_id)
            return False

        if self.clock() > challenge.expires_at:
            logger.info("otp_rejected", user_id=user_id)
            return False

        supplied = (code or "").strip()
        if not hmac.compare_digest(supplied.encode("utf-8"), challenge.code.encode("utf-8")):
            logger.info("otp_rejected", user_id=user_id)
            return False

        del challenges[user_id]
        self._save(challenges)

        logger.info("otp_verified", user_id=user_id)
        return True
