"""Tests for phone OTP issue/verify against the ORM session."""

import hashlib
from datetime import datetime, timedelta

import pytest

from hrm.models.security import User
from hrm.security.otp import OtpCooldownError, OtpError, generate_otp, issue_otp, verify_otp
from hrm.settings import Settings

PHONE = "+15551234567"
NOW = datetime(2026, 5, 1, 12, 0, 0)
SETTINGS = Settings()


@pytest.fixture
def user(db_session):
    user = User(username="otp_user", email="otp@example.com", phone=PHONE, role_id="employee")
    db_session.add(user)
    db_session.flush()
    return user


def test_generate_otp_is_numeric():
    code = generate_otp(6)
    assert len(code) == 6
    assert code.isdigit()


def test_issue_stores_digest_not_code(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)

    assert len(code) == 6
    assert user.otp_hash == hashlib.sha256(code.encode("utf-8")).hexdigest()
    assert user.otp_expires_at == NOW + timedelta(minutes=5)


def test_verify_accepts_code_once(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)

    assert verify_otp(db_session, PHONE, code, SETTINGS, now=NOW + timedelta(minutes=1)).id == user.id
    assert user.otp_hash is None

    with pytest.raises(OtpError, match="not generated"):
        verify_otp(db_session, PHONE, code, SETTINGS, now=NOW + timedelta(minutes=1))


def test_verify_rejects_wrong_code(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(OtpError, match="Invalid OTP"):
        verify_otp(db_session, PHONE, wrong, SETTINGS, now=NOW)
    # A wrong guess does not burn the code.
    assert verify_otp(db_session, PHONE, code, SETTINGS, now=NOW).id == user.id


def test_verify_rejects_expired_code(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)

    with pytest.raises(OtpError, match="expired"):
        verify_otp(db_session, PHONE, code, SETTINGS, now=NOW + timedelta(minutes=5, seconds=1))
    assert user.otp_hash is None


def test_unknown_or_inactive_phone(db_session, user):
    with pytest.raises(OtpError, match="User not found"):
        issue_otp(db_session, "+10000000000", SETTINGS, now=NOW)

    user.is_active = False
    db_session.flush()
    with pytest.raises(OtpError, match="User not found"):
        issue_otp(db_session, PHONE, SETTINGS, now=NOW)


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def test_code_is_discarded_after_max_attempts(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)

    for _ in range(SETTINGS.otp_max_attempts - 1):
        with pytest.raises(OtpError, match="Invalid OTP"):
            verify_otp(db_session, PHONE, _wrong(code), SETTINGS, now=NOW)
    with pytest.raises(OtpError, match="Too many attempts"):
        verify_otp(db_session, PHONE, _wrong(code), SETTINGS, now=NOW)

    assert user.otp_hash is None
    assert user.otp_attempts == 0
    with pytest.raises(OtpError, match="not generated"):
        verify_otp(db_session, PHONE, code, SETTINGS, now=NOW)


def test_new_code_resets_attempts(db_session, user):
    code = issue_otp(db_session, PHONE, SETTINGS, now=NOW)
    with pytest.raises(OtpError):
        verify_otp(db_session, PHONE, _wrong(code), SETTINGS, now=NOW)
    assert user.otp_attempts == 1

    later = NOW + timedelta(seconds=SETTINGS.otp_resend_cooldown_seconds)
    issue_otp(db_session, PHONE, SETTINGS, now=later)

    assert user.otp_attempts == 0


def test_resend_cooldown(db_session, user):
    issue_otp(db_session, PHONE, SETTINGS, now=NOW)

    with pytest.raises(OtpCooldownError):
        issue_otp(db_session, PHONE, SETTINGS, now=NOW + timedelta(seconds=30))
    assert issue_otp(db_session, PHONE, SETTINGS, now=NOW + timedelta(minutes=1))
