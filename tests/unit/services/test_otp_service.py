"""Tests for the one-time code issuer."""

import pytest


class TestIssue:
    """Code generation."""

    def test_code_is_six_digits(self, otp):
        """Codes are numeric with the configured length."""
        code = otp.issue("user_1")

        assert len(code) == 6
        assert code.isdigit()

    def test_challenges_live_in_session_scope(self, otp, storage):
        """Nothing about codes is written to the persistent scope."""
        otp.issue("user_1")

        assert storage.session_scope.get("otp_challenges") is not None
        assert storage.persistent.get("otp_challenges") is None


class TestVerify:
    """Code verification."""

    @pytest.mark.security_critical
    def test_single_use(self, otp):
        """A code verifies once."""
        code = otp.issue("user_1")

        assert otp.verify("user_1", code) is True
        assert otp.verify("user_1", code) is False

    @pytest.mark.security_critical
    def test_expiry(self, otp, clock):
        """Codes stop working after the TTL."""
        code = otp.issue("user_1")
        clock.advance(minutes=5, seconds=1)

        assert otp.verify("user_1", code) is False

    def test_valid_until_ttl(self, otp, clock):
        """A code is still good at the very end of its TTL."""
        code = otp.issue("user_1")
        clock.advance(minutes=5)

        assert otp.verify("user_1", code) is True

    @pytest.mark.security_critical
    def test_wrong_user(self, otp):
        """A code only works for the user it was issued to."""
        code = otp.issue("user_1")

        assert otp.verify("user_2", code) is False
        assert otp.verify("user_1", code) is True

    def test_wrong_code_keeps_challenge(self, otp):
        """A mistyped code can be retried."""
        code = otp.issue("user_1")
        wrong = "000000" if code != "000000" else "111111"

        assert otp.verify("user_1", wrong) is False
        assert otp.verify("user_1", code) is True

    def test_input_is_trimmed(self, otp):
        """Surrounding whitespace is ignored."""
        code = otp.issue("user_1")

        assert otp.verify("user_1", f"  {code}\n") is True

    def test_no_challenge(self, otp):
        """Verifying without an issued code fails."""
        assert otp.verify("user_1", "123456") is False
        assert otp.verify("user_1", "") is False

    def test_challenges_are_per_user(self, otp):
        """Issuing for one user does not clobber another's code."""
        first = otp.issue("user_1")
        second = otp.issue("user_2")

        assert otp.verify("user_1", first) is True
        assert otp.verify("user_2", second) is True

    def test_reissue_replaces_pending_code(self, otp):
        """Only the newest code of a user is valid."""
        old = otp.issue("user_1")
        new = otp.issue("user_1")

        if old != new:
            assert otp.verify("user_1", old) is False
        assert otp.verify("user_1", new) is True
