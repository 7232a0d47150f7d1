"""
Phone one-time-password login.

Flow:
    1. ``issue_otp(db, phone)`` generates a numeric code, stores its SHA-256
       digest and expiry on the user, and hands the plain code to
       ``deliver_otp``.
    2. ``verify_otp(db, phone, code, settings)`` checks the code and clears
       it, so each code works once. Too many wrong guesses also clear it.

Delivery over SMS is not implemented here; ``deliver_otp`` only records that
a code went out.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrm.models.security import User
from hrm.settings import Settings

logger = logging.getLogger(__name__)


class OtpError(Exception):
    """Raised when an OTP cannot be issued or verified."""


class OtpCooldownError(OtpError):
    """Raised when a new code is requested before the resend cooldown ends."""


def generate_otp(length: int = 6) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def _digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def _find_active_user(db: Session, phone: str) -> User:
    user = db.execute(select(User).where(User.phone == phone)).scalar_one_or_none()
    if user is None or not user.is_active:
        raise OtpError("User not found")
    return user


def deliver_otp(user: User, code: str) -> None:
    # Never log the code itself.
    logger.info("OTP issued user_id=%s", user.id)


def _clear(user: User) -> None:
    user.otp_hash = None
    user.otp_expires_at = None
    user.otp_attempts = 0


def issue_otp(db: Session, phone: str, settings: Settings, now: datetime | None = None) -> str:
    """Generate and store a new code for the user with this phone. Returns the code."""
    user = _find_active_user(db, phone)
    now = now or datetime.utcnow()

    cooldown = timedelta(seconds=settings.otp_resend_cooldown_seconds)
    if user.otp_sent_at is not None and now < user.otp_sent_at + cooldown:
        logger.info("OTP resend too soon user_id=%s", user.id)
        raise OtpCooldownError("Please wait before requesting a new OTP")

    code = generate_otp(settings.otp_length)
    user.otp_hash = _digest(code)
    user.otp_expires_at = now + timedelta(seconds=settings.otp_ttl_seconds)
    user.otp_sent_at = now
    user.otp_attempts = 0
    db.flush()

    deliver_otp(user, code)
    return code


def verify_otp(db: Session, phone: str, code: str, settings: Settings, now: datetime | None = None) -> User:
    """
    Check a code and clear it on success.

    Each mismatch counts against ``settings.otp_max_attempts``; the code is
    discarded on the last allowed miss and a new one must be requested.
    """
    user = _find_active_user(db, phone)
    now = now or datetime.utcnow()

    if not user.otp_hash or user.otp_expires_at is None:
        raise OtpError("OTP not generated")
    if now > user.otp_expires_at:
        _clear(user)
        db.flush()
        raise OtpError("OTP expired")
    if not hmac.compare_digest(user.otp_hash, _digest(code.strip())):
        user.otp_attempts += 1
        logger.info("OTP mismatch user_id=%s attempts=%s", user.id, user.otp_attempts)
        if user.otp_attempts >= settings.otp_max_attempts:
            _clear(user)
            db.flush()
            raise OtpError("Too many attempts. Request a new OTP")
        db.flush()
        raise OtpError("Invalid OTP")

    _clear(user)
    db.flush()
    return user
